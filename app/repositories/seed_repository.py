"""Repository for SEO seed items (locations and industries)."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.core.database import get_session_context
from app.core.exceptions import SeedItemNotFoundError
from app.core.ids import generate_cuid
from app.models.seed import SeedItem
from app.services.seo.contracts import SeedRecord
from app.services.seo.targets import SEED_DIMENSIONS

logger = logging.getLogger(__name__)


class SeedRepository:
    """Seed data reads and administrative writes via short-lived sessions."""

    async def list_active(
        self,
        dimension: str,
        max_priority: int | None = None,
    ) -> list[SeedRecord]:
        return await self.list_items(dimension, max_priority=max_priority)

    async def list_items(
        self,
        dimension: str,
        *,
        max_priority: int | None = None,
        include_inactive: bool = False,
    ) -> list[SeedRecord]:
        """Seeds of one dimension ordered by priority, then name."""
        stmt = select(SeedItem).where(SeedItem.dimension == dimension)
        if not include_inactive:
            stmt = stmt.where(SeedItem.is_active.is_(True))
        if max_priority is not None:
            stmt = stmt.where(SeedItem.priority <= max_priority)
        stmt = stmt.order_by(SeedItem.priority.asc(), SeedItem.name.asc())

        async with get_session_context(commit_on_exit=False) as session:
            result = await session.execute(stmt)
            return [SeedRecord.from_model(item) for item in result.scalars().all()]

    async def get(self, dimension: str, slug: str) -> SeedRecord | None:
        async with get_session_context(commit_on_exit=False) as session:
            item = await self._load(session, dimension, slug)
            return SeedRecord.from_model(item) if item is not None else None

    async def bulk_add(self, dimension: str, items: Sequence[Mapping[str, Any]]) -> int:
        """Insert seeds, ignoring slugs that already exist. Returns inserted count."""
        if not items:
            return 0

        rows = [
            {
                "id": generate_cuid(),
                "dimension": dimension,
                "slug": str(item["slug"]),
                "name": str(item["name"]),
                "priority": int(item.get("priority") or 5),
                "is_active": bool(item.get("is_active", True)),
                "metadata": dict(item.get("metadata") or {}),
            }
            for item in items
        ]
        # Core table insert: the `metadata` column is mapped under another attribute name.
        table = SeedItem.__table__
        stmt = (
            pg_insert(table)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["dimension", "slug"])
            .returning(table.c.id)
        )
        async with get_session_context() as session:
            result = await session.execute(stmt)
            inserted = len(result.scalars().all())

        logger.info(
            "Seed items added",
            extra={"dimension": dimension, "requested": len(rows), "inserted": inserted},
        )
        return inserted

    async def update(
        self,
        dimension: str,
        slug: str,
        *,
        name: str | None = None,
        priority: int | None = None,
        is_active: bool | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SeedRecord:
        """Edit mutable seed fields; identity (dimension, slug) never changes."""
        async with get_session_context() as session:
            item = await self._load(session, dimension, slug)
            if item is None:
                raise SeedItemNotFoundError(dimension, slug)
            if name is not None:
                item.name = name
            if priority is not None:
                item.priority = int(priority)
            if is_active is not None:
                item.is_active = bool(is_active)
            if metadata is not None:
                item.seed_metadata = dict(metadata)
            await session.flush()
            await session.refresh(item)
            return SeedRecord.from_model(item)

    async def deactivate(self, dimension: str, slug: str) -> SeedRecord:
        return await self.update(dimension, slug, is_active=False)

    async def stats(self) -> dict[str, Any]:
        """Totals, active counts and priority histogram per dimension."""
        stmt = select(
            SeedItem.dimension,
            SeedItem.priority,
            SeedItem.is_active,
            func.count(SeedItem.id),
        ).group_by(SeedItem.dimension, SeedItem.priority, SeedItem.is_active)

        async with get_session_context(commit_on_exit=False) as session:
            rows = (await session.execute(stmt)).all()

        stats: dict[str, Any] = {
            dimension: {"total": 0, "active": 0, "by_priority": {}}
            for dimension in SEED_DIMENSIONS
        }
        for dimension, priority, is_active, count in rows:
            bucket = stats.setdefault(dimension, {"total": 0, "active": 0, "by_priority": {}})
            bucket["total"] += int(count)
            if is_active:
                bucket["active"] += int(count)
                key = str(priority)
                bucket["by_priority"][key] = bucket["by_priority"].get(key, 0) + int(count)

        stats["potential_combos"] = stats["location"]["active"] * stats["industry"]["active"]
        return stats

    @staticmethod
    async def _load(session: Any, dimension: str, slug: str) -> SeedItem | None:
        result = await session.execute(
            select(SeedItem).where(
                SeedItem.dimension == dimension,
                SeedItem.slug == slug,
            )
        )
        return result.scalar_one_or_none()
