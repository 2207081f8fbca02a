"""Unit tests for the AI completion proxy client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from app.core.exceptions import AIServiceNotConfiguredError, TransportError
from app.integrations.completion_client import (
    CompletionServiceClient,
    extract_completion_content,
)


def make_client(handler, **kwargs) -> CompletionServiceClient:
    return CompletionServiceClient(
        base_url="https://ai.example.test/",
        api_key=kwargs.pop("api_key", "test-key"),
        model="haiku",
        timeout_seconds=5,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_prompt_is_posted_with_credentials() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-api-key")
        seen["authorization"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": '{"headline": "Hello there world"}'})

    result = await make_client(handler).complete("Write a page", model="sonnet")

    assert seen == {
        "url": "https://ai.example.test/prompt",
        "api_key": "test-key",
        "authorization": "Bearer test-key",
        "body": {"prompt": "Write a page", "model": "sonnet"},
    }
    assert result.content == '{"headline": "Hello there world"}'
    assert result.model == "sonnet"
    assert result.prompt_length == len("Write a page")
    assert result.duration_ms >= 0


@pytest.mark.asyncio
async def test_default_model_is_used_when_none_given() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["model"] == "haiku"
        return httpx.Response(200, json={"response": "ok"})

    result = await make_client(handler).complete("prompt")

    assert result.content == "ok"
    assert result.model == "haiku"


@pytest.mark.asyncio
async def test_error_status_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(TransportError) as exc_info:
        await make_client(handler).complete("prompt")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "AI service error: 502 - bad gateway"


@pytest.mark.asyncio
async def test_timeout_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransportError, match="timed out after 5s"):
        await make_client(handler).complete("prompt")


@pytest.mark.asyncio
async def test_slow_response_is_bounded_by_overall_timeout() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={"result": "too late"})

    client = CompletionServiceClient(
        base_url="https://ai.example.test",
        api_key="test-key",
        timeout_seconds=0.05,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError, match="timed out after 0.05s"):
        await client.complete("prompt")


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="connection refused"):
        await make_client(handler).complete("prompt")


@pytest.mark.asyncio
async def test_malformed_body_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>not json</html>")

    with pytest.raises(TransportError, match="malformed response body"):
        await make_client(handler).complete("prompt")


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = make_client(handler, api_key="")

    assert not client.configured
    with pytest.raises(AIServiceNotConfiguredError):
        await client.complete("prompt")


def test_extract_completion_content_lookup_order() -> None:
    assert extract_completion_content({"result": "", "response": "second"}) == "second"
    assert extract_completion_content({"content": {"headline": "x"}}) == {"headline": "x"}
    assert extract_completion_content({"headline": "bare"}) == {"headline": "bare"}
    assert extract_completion_content("plain text") == "plain text"
    with pytest.raises(TransportError):
        extract_completion_content([1, 2])
