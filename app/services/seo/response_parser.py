"""Extract the structured object from a raw AI completion."""

from __future__ import annotations

import json
import re
from typing import Any

from app.core.exceptions import ResponseParseError

_FENCED_BLOCK_RE = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)
_EXCERPT_LENGTH = 200


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged.

    An opening fence without a closing one is dropped as well, which covers
    completions cut off at the token limit.
    """
    match = _FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(2).strip()

    stripped = text.strip()
    if stripped.startswith("```"):
        first_newline = stripped.find("\n")
        return stripped[first_newline + 1 :].strip() if first_newline != -1 else ""
    return stripped


def _balanced_object_end(text: str, start: int) -> int | None:
    """Index of the brace closing the object opened at `start`, if balanced."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def find_first_object(text: str) -> dict[str, Any] | None:
    """Parse the first top-level balanced `{...}` span that is valid JSON."""
    position = text.find("{")
    while position != -1:
        end = _balanced_object_end(text, position)
        if end is None:
            return None
        try:
            parsed = json.loads(text[position : end + 1])
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        position = text.find("{", end + 1)
    return None


def parse_ai_response(content: Any) -> dict[str, Any]:
    """Turn a raw completion into a dict.

    Structured payloads pass through. Text is handled in two stages: strip
    markdown code fencing, then parse the first well-formed object literal.
    Anything else raises ResponseParseError.
    """
    if isinstance(content, dict):
        return content
    if not isinstance(content, str):
        raise ResponseParseError(f"expected text or object, got {type(content).__name__}")
    if not content.strip():
        raise ResponseParseError("empty response")

    body = strip_code_fences(content)
    parsed = find_first_object(body)
    if parsed is None and body != content:
        # Fence held something else (e.g. prose); look at the whole completion.
        parsed = find_first_object(content)
    if parsed is None:
        raise ResponseParseError(
            "no JSON object found",
            excerpt=body[:_EXCERPT_LENGTH],
        )
    return parsed
