"""Unit tests for AI response extraction."""

from __future__ import annotations

import pytest

from app.core.exceptions import ResponseParseError
from app.services.seo.response_parser import (
    find_first_object,
    parse_ai_response,
    strip_code_fences,
)


def test_structured_payload_passes_through_unchanged() -> None:
    payload = {"headline": "Already structured"}

    assert parse_ai_response(payload) is payload


def test_fenced_json_block_is_extracted() -> None:
    raw = 'Sure!\n```json\n{"headline": "Fenced", "items": [1, 2]}\n```\nAnything else?'

    assert parse_ai_response(raw) == {"headline": "Fenced", "items": [1, 2]}


def test_unterminated_fence_is_dropped() -> None:
    raw = '```json\n{"headline": "Cut off fence"}'

    assert strip_code_fences(raw) == '{"headline": "Cut off fence"}'
    assert parse_ai_response(raw) == {"headline": "Cut off fence"}


def test_object_embedded_in_prose_is_found() -> None:
    raw = 'Here is the page: {"headline": "Inline", "nested": {"a": 1}} Hope it helps.'

    assert parse_ai_response(raw) == {"headline": "Inline", "nested": {"a": 1}}


def test_braces_inside_strings_do_not_break_balancing() -> None:
    raw = 'Result {"text": "use } and { freely", "quote": "say \\"hi\\""} end'

    assert parse_ai_response(raw) == {"text": "use } and { freely", "quote": 'say "hi"'}


def test_first_invalid_span_is_skipped_for_next_valid_object() -> None:
    assert find_first_object('{not json} then {"ok": true}') == {"ok": True}


def test_fence_without_object_falls_back_to_whole_completion() -> None:
    raw = '```\nno object in here\n```\n{"headline": "After the fence"}'

    assert parse_ai_response(raw) == {"headline": "After the fence"}


@pytest.mark.parametrize(
    "raw",
    [
        "I'm sorry, I can't help with that.",
        "[1, 2, 3]",
        '{"unterminated": "object"',
    ],
)
def test_text_without_object_raises_parse_error(raw: str) -> None:
    with pytest.raises(ResponseParseError) as exc_info:
        parse_ai_response(raw)

    assert exc_info.value.reason == "no JSON object found"
    assert exc_info.value.log_status == "failure"
    assert "Failed to parse AI response" in exc_info.value.message


def test_empty_and_non_text_responses_raise_parse_error() -> None:
    with pytest.raises(ResponseParseError, match="empty response"):
        parse_ai_response("   ")
    with pytest.raises(ResponseParseError, match="expected text or object"):
        parse_ai_response(42)
