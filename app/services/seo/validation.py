"""Declarative per-content-type validation of generated page content."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from app.core.exceptions import ContentValidationError

FieldKind = Literal["text", "list"]


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Requirement on one top-level field of the generated object.

    For text fields the bounds are character counts; for list fields
    `min_length` is the minimum number of items.
    """

    name: str
    kind: FieldKind = "text"
    min_length: int = 1
    max_length: int | None = None


COMMON_RULES: tuple[FieldRule, ...] = (
    FieldRule("headline", min_length=10),
    FieldRule("meta_title", max_length=70),
    FieldRule("meta_description", max_length=160),
)

CONTENT_SCHEMAS: dict[str, tuple[FieldRule, ...]] = {
    "location": COMMON_RULES
    + (
        FieldRule("local_description"),
        FieldRule("local_benefits", kind="list", min_length=3),
    ),
    "industry": COMMON_RULES
    + (
        FieldRule("problem_statement"),
        FieldRule("solution_description"),
        FieldRule("benefits", kind="list", min_length=4),
    ),
    "combo": COMMON_RULES
    + (
        FieldRule("intro"),
        FieldRule("why_need"),
        FieldRule("benefits", kind="list", min_length=3),
    ),
}


def _check_field(rule: FieldRule, value: Any) -> str | None:
    if value is None:
        return f"{rule.name}: missing"

    if rule.kind == "list":
        if not isinstance(value, list):
            return f"{rule.name}: expected a list"
        if len(value) < rule.min_length:
            return f"{rule.name}: needs at least {rule.min_length} items (got {len(value)})"
        return None

    if not isinstance(value, str):
        return f"{rule.name}: expected text"
    length = len(value.strip())
    if length == 0:
        return f"{rule.name}: missing"
    if length < rule.min_length:
        return f"{rule.name}: shorter than {rule.min_length} characters"
    if rule.max_length is not None and length > rule.max_length:
        return f"{rule.name}: longer than {rule.max_length} characters"
    return None


def collect_violations(content: dict[str, Any], content_type: str) -> list[str]:
    """Return one message per violated rule, in schema order."""
    rules = CONTENT_SCHEMAS.get(content_type)
    if rules is None:
        return [f"content_type: unknown value {content_type!r}"]

    violations: list[str] = []
    for rule in rules:
        message = _check_field(rule, content.get(rule.name))
        if message is not None:
            violations.append(message)
    return violations


def validate_content(content: dict[str, Any], content_type: str) -> dict[str, Any]:
    """Return content unchanged when valid; raise ContentValidationError otherwise."""
    violations = collect_violations(content, content_type)
    if violations:
        raise ContentValidationError(content_type, violations)
    return content
