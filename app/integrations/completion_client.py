"""HTTP client for the external AI completion proxy."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from app.config import settings
from app.core.exceptions import AIServiceNotConfiguredError, TransportError
from app.services.seo.contracts import CompletionResult

logger = logging.getLogger(__name__)

# Keys the proxy may use for the completion payload, in lookup order.
_RESULT_KEYS = ("result", "response", "content")


def extract_completion_content(payload: Any) -> str | dict[str, Any]:
    """Pull the completion out of the proxy response body.

    Falls back to the whole body when none of the known keys is present.
    """
    if isinstance(payload, dict):
        for key in _RESULT_KEYS:
            value = payload.get(key)
            if value:
                return value
        return payload
    if isinstance(payload, str):
        return payload
    raise TransportError(f"unexpected response body type {type(payload).__name__}")


class CompletionServiceClient:
    """Sends prompts to the AI proxy at `{base_url}/prompt`.

    A single attempt per call: transport failures are raised as
    TransportError and never retried here.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ai_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ai_api_key
        self.model = model or settings.ai_model
        self.timeout_seconds = timeout_seconds or settings.ai_timeout_seconds
        self._http_client = http_client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-Key": str(self.api_key),
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        return await client.post(
            f"{self.base_url}/prompt",
            json=body,
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )

    async def complete(self, prompt: str, *, model: str | None = None) -> CompletionResult:
        if not self.configured:
            raise AIServiceNotConfiguredError()

        chosen_model = model or self.model
        body = {"prompt": prompt, "model": chosen_model}
        started = time.monotonic()

        own_client = self._http_client is None
        client = self._http_client or httpx.AsyncClient(timeout=self.timeout_seconds)
        try:
            # httpx bounds each phase separately; this bounds the whole call.
            response = await asyncio.wait_for(self._post(client, body), timeout=self.timeout_seconds)
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning(
                "AI completion timed out",
                extra={"model": chosen_model, "timeout_seconds": self.timeout_seconds},
            )
            raise TransportError(f"request timed out after {self.timeout_seconds}s") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "AI completion request failed",
                extra={"model": chosen_model, "error": str(exc)},
            )
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        finally:
            if own_client:
                await client.aclose()

        duration_ms = int((time.monotonic() - started) * 1000)

        if not 200 <= response.status_code < 300:
            logger.warning(
                "AI completion returned error status",
                extra={"model": chosen_model, "status_code": response.status_code},
            )
            raise TransportError(
                f"{response.status_code} - {response.text[:400]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                "malformed response body",
                status_code=response.status_code,
            ) from exc

        content = extract_completion_content(payload)
        logger.info(
            "AI completion received",
            extra={"model": chosen_model, "duration_ms": duration_ms},
        )
        return CompletionResult(
            content=content,
            duration_ms=duration_ms,
            prompt_length=len(prompt),
            model=chosen_model,
        )
