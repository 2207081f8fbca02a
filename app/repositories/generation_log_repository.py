"""Repository for the append-only generation log."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select

from app.core.database import get_session_context
from app.core.ids import generate_cuid
from app.models.generation_log import GenerationLogEntry
from app.services.seo.contracts import GenerationLogRecord

logger = logging.getLogger(__name__)


class GenerationLogRepository:
    """Inserts and reads generation log entries. Entries are never updated."""

    async def append(self, entry: GenerationLogRecord) -> None:
        async with get_session_context() as session:
            session.add(
                GenerationLogEntry(
                    id=generate_cuid(),
                    queue_item_id=entry.queue_item_id,
                    content_type=entry.content_type,
                    target_slug=entry.target_slug,
                    ai_model=entry.ai_model,
                    prompt_length=entry.prompt_length,
                    response_length=entry.response_length,
                    duration_ms=entry.duration_ms,
                    status=entry.status,
                    error_detail=entry.error_detail,
                )
            )

    async def list_logs(
        self,
        *,
        limit: int = 50,
        status: str | None = None,
        content_type: str | None = None,
    ) -> list[GenerationLogRecord]:
        """Newest entries first, optionally filtered."""
        stmt = select(GenerationLogEntry)
        if status:
            stmt = stmt.where(GenerationLogEntry.status == status)
        if content_type:
            stmt = stmt.where(GenerationLogEntry.content_type == content_type)
        stmt = stmt.order_by(
            GenerationLogEntry.created_at.desc(),
            GenerationLogEntry.id.desc(),
        ).limit(max(1, int(limit)))

        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(stmt)
            return [GenerationLogRecord.from_model(entry) for entry in result.scalars().all()]

    async def generation_stats(self, *, now: datetime | None = None) -> dict[str, Any]:
        """Totals by status, average success duration, per-type and last-24h counts."""
        since = (now or datetime.now(timezone.utc)) - timedelta(hours=24)
        by_status_stmt = select(
            GenerationLogEntry.status,
            func.count(GenerationLogEntry.id),
        ).group_by(GenerationLogEntry.status)
        by_type_stmt = select(
            GenerationLogEntry.content_type,
            GenerationLogEntry.status,
            func.count(GenerationLogEntry.id),
        ).group_by(GenerationLogEntry.content_type, GenerationLogEntry.status)
        avg_duration_stmt = select(func.avg(GenerationLogEntry.duration_ms)).where(
            GenerationLogEntry.status == "success"
        )
        recent_stmt = select(func.count(GenerationLogEntry.id)).where(
            GenerationLogEntry.created_at >= since
        )

        async with get_session_context(commit_on_exit=False) as session:
            by_status_rows = (await session.execute(by_status_stmt)).all()
            by_type_rows = (await session.execute(by_type_stmt)).all()
            avg_duration = (await session.execute(avg_duration_stmt)).scalar_one_or_none()
            last_24h = (await session.execute(recent_stmt)).scalar_one()

        by_status = {status: int(count) for status, count in by_status_rows}
        by_content_type: dict[str, dict[str, int]] = {}
        for content_type, status, count in by_type_rows:
            by_content_type.setdefault(content_type, {})[status] = int(count)

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_content_type": by_content_type,
            "avg_success_duration_ms": int(avg_duration) if avg_duration is not None else None,
            "last_24h": int(last_24h or 0),
        }
