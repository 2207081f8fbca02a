"""Work queue state machine.

Allowed transitions::

    queued -> processing -> completed | failed | skipped

Terminal states are final. Failed items are never retried in place; an
operator re-enqueue creates a fresh queued item instead.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.core.exceptions import QueueTransitionError
from app.services.seo.targets import QUEUE_TERMINAL_STATUSES

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "queued": frozenset({"processing"}),
    "processing": frozenset({"completed", "failed", "skipped"}),
    "completed": frozenset(),
    "failed": frozenset(),
    "skipped": frozenset(),
}

MAX_ERROR_LENGTH = 2000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: str) -> bool:
    return status in QUEUE_TERMINAL_STATUSES


def truncate_error(message: str) -> str:
    """Clamp error text stored on queue rows and log entries."""
    cleaned = message.strip() or "unknown_error"
    if len(cleaned) <= MAX_ERROR_LENGTH:
        return cleaned
    return cleaned[: MAX_ERROR_LENGTH - 3] + "..."


def build_transition_payload(
    *,
    queue_item_id: str | None,
    current: str,
    target: str,
    attempts: int = 0,
    published_ref: str | None = None,
    error_message: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return the column updates for one legal transition.

    Raises QueueTransitionError when the transition is not allowed.
    """
    if not can_transition(current, target):
        raise QueueTransitionError(queue_item_id, current, target)

    moment = now or _utc_now()
    payload: dict[str, Any] = {"status": target, "updated_at": moment}

    if target == "processing":
        payload.update(
            {
                "attempts": int(attempts or 0) + 1,
                "started_at": moment,
                "last_error": None,
            }
        )
    elif target == "completed":
        payload.update(
            {
                "published_ref": published_ref,
                "completed_at": moment,
                "last_error": None,
            }
        )
    elif target == "failed":
        payload.update(
            {
                "completed_at": moment,
                "last_error": truncate_error(error_message or "unknown_error"),
            }
        )
    else:
        payload.update({"completed_at": moment, "last_error": None})

    return payload
