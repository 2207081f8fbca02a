"""Repository for the content generation work queue."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import func, select, text, update
from sqlalchemy.dialects.postgresql import Insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import aliased

from app.core.database import get_session_context
from app.core.db_retry import run_with_transient_db_retry
from app.core.ids import generate_cuid
from app.models.queue import QueueItem
from app.services.seo.contracts import QueueRecord
from app.services.seo.queue_state import build_transition_payload
from app.services.seo.targets import (
    QUEUE_OUTSTANDING_STATUSES,
    QUEUE_STATUSES,
    GenerationTarget,
)

logger = logging.getLogger(__name__)

_OUTSTANDING_INDEX_WHERE = text("status IN ('queued', 'processing')")

# asyncpg caps one statement at 32767 bind parameters; each row binds 8.
ENQUEUE_CHUNK_SIZE = 1000


class QueueRepository:
    """Queue reads, bulk inserts and conditional status transitions."""

    def __init__(self, *, transition_attempts: int = 3) -> None:
        self.transition_attempts = transition_attempts

    async def get(self, item_id: str) -> QueueRecord | None:
        async with get_session_context(commit_on_exit=False) as session:
            item = await session.get(QueueItem, str(item_id))
            return QueueRecord.from_model(item) if item is not None else None

    async def outstanding_target_keys(self, content_types: Iterable[str]) -> set[str]:
        stmt = select(QueueItem.target_key).where(
            QueueItem.content_type.in_(list(content_types)),
            QueueItem.status.in_(sorted(QUEUE_OUTSTANDING_STATUSES)),
        )
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(stmt)
            return set(result.scalars().all())

    async def latest_failed(self, content_types: Iterable[str]) -> list[QueueRecord]:
        """Most recent item per target, kept only where that item failed."""
        latest = (
            select(QueueItem)
            .where(QueueItem.content_type.in_(list(content_types)))
            .distinct(QueueItem.target_key)
            .order_by(
                QueueItem.target_key,
                QueueItem.created_at.desc(),
                QueueItem.id.desc(),
            )
            .subquery()
        )
        latest_item = aliased(QueueItem, latest)
        stmt = (
            select(latest_item)
            .where(latest_item.status == "failed")
            .order_by(latest_item.priority.asc(), latest_item.created_at.asc())
        )
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(stmt)
            return [QueueRecord.from_model(item) for item in result.scalars().all()]

    def enqueue_statements(self, entries: Sequence[tuple[GenerationTarget, int]]) -> list[Insert]:
        """One multi-row INSERT per chunk, each under the driver's bind-parameter cap."""
        rows = [
            {
                "id": generate_cuid(),
                "content_type": target.content_type,
                "location_slug": target.location_slug,
                "industry_slug": target.industry_slug,
                "target_key": target.key,
                "status": "queued",
                "priority": int(priority),
                "attempts": 0,
            }
            for target, priority in entries
        ]
        return [
            pg_insert(QueueItem)
            .values(rows[start : start + ENQUEUE_CHUNK_SIZE])
            .on_conflict_do_nothing(
                index_elements=["target_key"],
                index_where=_OUTSTANDING_INDEX_WHERE,
            )
            .returning(QueueItem.id)
            for start in range(0, len(rows), ENQUEUE_CHUNK_SIZE)
        ]

    async def enqueue(self, entries: Sequence[tuple[GenerationTarget, int]]) -> int:
        """Bulk insert queued items; targets already outstanding are left alone.

        All chunks share one transaction.
        """
        if not entries:
            return 0

        inserted = 0
        async with get_session_context() as session:
            for stmt in self.enqueue_statements(entries):
                result = await session.execute(stmt)
                inserted += len(result.scalars().all())

        if inserted < len(entries):
            logger.info(
                "Some queue entries were already outstanding",
                extra={"requested": len(entries), "inserted": inserted},
            )
        return inserted

    async def next_queued(self, limit: int) -> list[QueueRecord]:
        stmt = (
            select(QueueItem)
            .where(QueueItem.status == "queued")
            .order_by(
                QueueItem.priority.asc(),
                QueueItem.created_at.asc(),
                QueueItem.id.asc(),
            )
            .limit(max(0, int(limit)))
        )
        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(stmt)
            return [QueueRecord.from_model(item) for item in result.scalars().all()]

    async def transition(
        self,
        item_id: str,
        *,
        expected: str,
        target: str,
        published_ref: str | None = None,
        error_message: str | None = None,
    ) -> bool:
        """Apply one transition as `UPDATE ... WHERE id = :id AND status = :expected`.

        Returns False when the row is no longer in `expected`, e.g. another
        orchestrator claimed it first.
        """
        item_id = str(item_id)
        payload: dict[str, Any] = build_transition_payload(
            queue_item_id=item_id,
            current=expected,
            target=target,
            published_ref=published_ref,
            error_message=error_message,
        )
        if target == "processing":
            payload["attempts"] = QueueItem.attempts + 1

        stmt = (
            update(QueueItem)
            .where(QueueItem.id == item_id, QueueItem.status == expected)
            .values(**payload)
            .execution_options(synchronize_session=False)
        )

        async def _transition_once() -> bool:
            async with get_session_context() as session:
                result = await session.execute(stmt)
                return result.rowcount == 1

        applied = await run_with_transient_db_retry(
            _transition_once,
            operation_name="queue_item_transition",
            attempts=self.transition_attempts,
            log_context={"queue_item_id": item_id, "from": expected, "to": target},
        )
        if not applied:
            logger.info(
                "Queue transition not applied; item no longer in expected state",
                extra={"queue_item_id": item_id, "from": expected, "to": target},
            )
        return applied

    async def stats(self) -> dict[str, Any]:
        """Counts by status, overall and per content type."""
        stmt = select(
            QueueItem.content_type,
            QueueItem.status,
            func.count(QueueItem.id),
        ).group_by(QueueItem.content_type, QueueItem.status)

        async with get_session_context(commit_on_exit=False) as session:
            rows = (await session.execute(stmt)).all()

        by_status = {status: 0 for status in QUEUE_STATUSES}
        by_content_type: dict[str, dict[str, int]] = {}
        for content_type, status, count in rows:
            by_status[status] = by_status.get(status, 0) + int(count)
            per_type = by_content_type.setdefault(content_type, {})
            per_type[status] = per_type.get(status, 0) + int(count)

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_content_type": by_content_type,
        }
