"""Repositories for published SEO pages, one per content type."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.core.database import get_session_context
from app.core.ids import generate_cuid
from app.models.pages import ComboPage, IndustryPage, LocationPage
from app.services.seo.contracts import ContentStore, PageRecord
from app.services.seo.targets import ContentType

logger = logging.getLogger(__name__)

PageModel = type[LocationPage] | type[IndustryPage] | type[ComboPage]

PAGE_MODELS: dict[ContentType, PageModel] = {
    "location": LocationPage,
    "industry": IndustryPage,
    "combo": ComboPage,
}

# Combo lookups at full seed scale run to tens of thousands of slugs.
SLUG_LOOKUP_CHUNK_SIZE = 5000


class PageRepository:
    """Upsert-on-slug page store; always reads through to the database."""

    def __init__(self, content_type: ContentType) -> None:
        self.content_type = content_type
        self.model = PAGE_MODELS[content_type]

    def _record(self, row: Any) -> PageRecord:
        return PageRecord(
            id=str(row.id),
            content_type=self.content_type,
            slug=row.slug,
            status=row.status,
            published_at=row.published_at,
        )

    async def upsert(self, slug: str, fields: Mapping[str, Any]) -> PageRecord:
        """INSERT ... ON CONFLICT (slug) DO UPDATE; last write wins."""
        model = self.model
        values = {**fields, "slug": slug}
        updates = {key: value for key, value in values.items() if key != "slug"}
        updates["updated_at"] = func.now()

        stmt = (
            pg_insert(model)
            .values(id=generate_cuid(), **values)
            .on_conflict_do_update(index_elements=["slug"], set_=updates)
            .returning(model.id, model.slug, model.status, model.published_at)
        )
        async with get_session_context() as session:
            row = (await session.execute(stmt)).one()

        logger.info(
            "Page upserted",
            extra={"content_type": self.content_type, "slug": slug, "page_id": str(row.id)},
        )
        return self._record(row)

    async def get(self, slug: str) -> PageRecord | None:
        model = self.model
        stmt = select(model.id, model.slug, model.status, model.published_at).where(
            model.slug == slug
        )
        async with get_session_context(commit_on_exit=False) as session:
            row = (await session.execute(stmt)).one_or_none()
        return self._record(row) if row is not None else None

    async def exists_published(self, slug: str) -> bool:
        model = self.model
        stmt = select(model.id).where(model.slug == slug, model.status == "published").limit(1)
        async with get_session_context(commit_on_exit=False) as session:
            return (await session.execute(stmt)).first() is not None

    def published_slug_statements(self, slugs: Iterable[str]) -> list[Select]:
        """One `slug IN (...)` lookup per chunk of distinct slugs."""
        wanted = list(dict.fromkeys(slugs))
        model = self.model
        return [
            select(model.slug).where(
                model.slug.in_(wanted[start : start + SLUG_LOOKUP_CHUNK_SIZE]),
                model.status == "published",
            )
            for start in range(0, len(wanted), SLUG_LOOKUP_CHUNK_SIZE)
        ]

    async def published_slugs(self, slugs: Iterable[str]) -> set[str]:
        statements = self.published_slug_statements(slugs)
        if not statements:
            return set()
        found: set[str] = set()
        async with get_session_context(commit_on_exit=False) as session:
            for stmt in statements:
                result = await session.execute(stmt)
                found.update(result.scalars().all())
        return found

    async def count_published(self) -> int:
        model = self.model
        stmt = select(func.count(model.id)).where(model.status == "published")
        async with get_session_context(commit_on_exit=False) as session:
            return int((await session.execute(stmt)).scalar_one())

    async def list_published(
        self,
        *,
        location_slug: str | None = None,
        industry_slug: str | None = None,
    ) -> list[PageRecord]:
        model = self.model
        stmt = select(model.id, model.slug, model.status, model.published_at).where(
            model.status == "published"
        )
        if location_slug is not None or industry_slug is not None:
            if model is not ComboPage:
                raise ValueError("location/industry filters apply to combo pages only")
            if location_slug is not None:
                stmt = stmt.where(ComboPage.location_slug == location_slug)
            if industry_slug is not None:
                stmt = stmt.where(ComboPage.industry_slug == industry_slug)
        stmt = stmt.order_by(model.slug.asc())

        async with get_session_context(commit_on_exit=False) as session:
            rows = (await session.execute(stmt)).all()
        return [self._record(row) for row in rows]

    async def unpublish(self, slug: str) -> bool:
        model = self.model
        stmt = (
            update(model)
            .where(model.slug == slug, model.status == "published")
            .values(status="draft", updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        async with get_session_context() as session:
            result = await session.execute(stmt)
            changed = result.rowcount == 1

        if changed:
            logger.info(
                "Page unpublished",
                extra={"content_type": self.content_type, "slug": slug},
            )
        return changed


def build_page_repositories() -> dict[ContentType, ContentStore]:
    return {content_type: PageRepository(content_type) for content_type in PAGE_MODELS}
