"""Idempotent publishing of validated content into the page stores."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from app.core.exceptions import InvalidTargetError
from app.services.seo.contracts import ContentStore, PageRecord, SeedRecord
from app.services.seo.targets import CONTENT_TYPES, GenerationTarget

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _text(content: Mapping[str, Any], key: str) -> str | None:
    value = content.get(key)
    if value is None:
        return None
    return str(value).strip()


def build_page_fields(
    target: GenerationTarget,
    content: Mapping[str, Any],
    *,
    location: SeedRecord | None,
    industry: SeedRecord | None,
    published_at: datetime,
) -> dict[str, Any]:
    """Map validated content onto the page columns for the target's type."""
    fields: dict[str, Any] = {
        "headline": _text(content, "headline"),
        "subheadline": _text(content, "subheadline"),
        "meta_title": _text(content, "meta_title"),
        "meta_description": _text(content, "meta_description"),
        "content": dict(content),
        "status": "published",
        "published_at": published_at,
    }

    if target.content_type == "location":
        if location is None:
            raise InvalidTargetError(f"Location seed required for {target.key}")
        fields.update(
            {
                "city_name": location.name,
                "region": location.metadata.get("county") or location.metadata.get("region"),
                "local_description": _text(content, "local_description"),
                "local_benefits": list(content.get("local_benefits") or []),
            }
        )
    elif target.content_type == "industry":
        if industry is None:
            raise InvalidTargetError(f"Industry seed required for {target.key}")
        fields.update(
            {
                "industry_name": industry.name,
                "problem_statement": _text(content, "problem_statement"),
                "solution_description": _text(content, "solution_description"),
                "benefits": list(content.get("benefits") or []),
            }
        )
    else:
        if location is None or industry is None:
            raise InvalidTargetError(f"Both seeds required for {target.key}")
        fields.update(
            {
                "location_slug": location.slug,
                "industry_slug": industry.slug,
                "city_name": location.name,
                "industry_name": industry.name,
                "intro": _text(content, "intro"),
                "why_need": _text(content, "why_need"),
                "benefits": list(content.get("benefits") or []),
            }
        )
    return fields


class ContentPublisher:
    """Routes existence checks and upserts to the store of each content type.

    Existence checks always hit the store; nothing is cached because they
    gate whether an AI call is spent.
    """

    def __init__(self, stores: Mapping[str, ContentStore]) -> None:
        missing = [content_type for content_type in CONTENT_TYPES if content_type not in stores]
        if missing:
            raise ValueError(f"Missing page stores for: {', '.join(missing)}")
        self._stores = dict(stores)

    def store_for(self, content_type: str) -> ContentStore:
        try:
            return self._stores[content_type]
        except KeyError:
            raise InvalidTargetError(f"Unknown content type: {content_type}") from None

    async def exists(self, target: GenerationTarget) -> bool:
        return await self.store_for(target.content_type).exists_published(target.page_slug)

    async def published_slugs(self, content_type: str, slugs: Iterable[str]) -> set[str]:
        return await self.store_for(content_type).published_slugs(slugs)

    async def publish(
        self,
        target: GenerationTarget,
        content: Mapping[str, Any],
        *,
        location: SeedRecord | None = None,
        industry: SeedRecord | None = None,
    ) -> PageRecord:
        """Upsert the page for `target`; publishing twice overwrites the first."""
        fields = build_page_fields(
            target,
            content,
            location=location,
            industry=industry,
            published_at=_utc_now(),
        )
        page = await self.store_for(target.content_type).upsert(target.page_slug, fields)
        logger.info(
            "Page published",
            extra={
                "content_type": target.content_type,
                "slug": target.page_slug,
                "page_id": page.id,
            },
        )
        return page

    async def published_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for content_type in CONTENT_TYPES:
            counts[content_type] = await self._stores[content_type].count_published()
        counts["total"] = sum(counts.values())
        return counts

    async def unpublish(self, content_type: str, slug: str) -> bool:
        return await self.store_for(content_type).unpublish(slug)

    async def combos_by_location(self, location_slug: str) -> list[PageRecord]:
        """Published combo pages for every industry in one location."""
        return await self._stores["combo"].list_published(location_slug=location_slug)

    async def combos_by_industry(self, industry_slug: str) -> list[PageRecord]:
        """Published combo pages for one industry across locations."""
        return await self._stores["combo"].list_published(industry_slug=industry_slug)
