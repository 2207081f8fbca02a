"""Builds the combinatorial work list from seed data and enqueues what is missing."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass

from app.core.exceptions import InvalidTargetError
from app.services.seo.contracts import SeedRecord, SeedStore, WorkQueue
from app.services.seo.publisher import ContentPublisher
from app.services.seo.targets import CONTENT_TYPES, GenerationTarget, is_content_type

logger = logging.getLogger(__name__)

TargetEntry = tuple[GenerationTarget, int]


@dataclass(slots=True)
class PopulateResult:
    """Items inserted per content type, plus targets left out."""

    locations: int = 0
    industries: int = 0
    combos: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.locations + self.industries + self.combos

    def to_dict(self) -> dict[str, int]:
        return {**asdict(self), "total": self.total}


def normalize_content_types(content_types: Iterable[str] | None) -> tuple[str, ...]:
    """Deduplicate and validate requested content types, keeping canonical order."""
    if content_types is None:
        return CONTENT_TYPES
    requested = set(content_types)
    unknown = sorted(value for value in requested if not is_content_type(value))
    if unknown:
        raise InvalidTargetError(f"Unknown content types: {', '.join(unknown)}")
    return tuple(content_type for content_type in CONTENT_TYPES if content_type in requested)


def build_candidates(
    content_types: Sequence[str],
    locations: Sequence[SeedRecord],
    industries: Sequence[SeedRecord],
) -> dict[str, list[TargetEntry]]:
    """Eligible targets per content type with their inherited priority.

    Combo targets are the full cross product; each takes the more urgent
    (numerically smaller) priority of its two seeds.
    """
    candidates: dict[str, list[TargetEntry]] = {}
    if "location" in content_types:
        candidates["location"] = [
            (GenerationTarget.location(seed.slug), seed.priority) for seed in locations
        ]
    if "industry" in content_types:
        candidates["industry"] = [
            (GenerationTarget.industry(seed.slug), seed.priority) for seed in industries
        ]
    if "combo" in content_types:
        candidates["combo"] = [
            (
                GenerationTarget.combo(location.slug, industry.slug),
                min(location.priority, industry.priority),
            )
            for location in locations
            for industry in industries
        ]
    return candidates


class QueuePopulator:
    """Creates new queued items. Never transitions existing ones."""

    def __init__(
        self,
        *,
        seeds: SeedStore,
        queue: WorkQueue,
        publisher: ContentPublisher,
    ) -> None:
        self.seeds = seeds
        self.queue = queue
        self.publisher = publisher

    async def populate(
        self,
        content_types: Iterable[str] | None = None,
        max_priority: int = 3,
    ) -> PopulateResult:
        """Enqueue every eligible target that is not already accounted for.

        A target is left out when it has an outstanding item, when its most
        recent item failed (those wait for `requeue_failed`), or when its page
        is already published. Safe to call on every run.
        """
        types = normalize_content_types(content_types)
        if not types:
            return PopulateResult()

        locations: list[SeedRecord] = []
        industries: list[SeedRecord] = []
        if "location" in types or "combo" in types:
            locations = await self.seeds.list_active("location", max_priority)
        if "industry" in types or "combo" in types:
            industries = await self.seeds.list_active("industry", max_priority)

        candidates = build_candidates(types, locations, industries)

        excluded = await self.queue.outstanding_target_keys(types)
        excluded |= {item.target.key for item in await self.queue.latest_failed(types)}

        result = PopulateResult()
        for content_type, entries in candidates.items():
            published = await self.publisher.published_slugs(
                content_type,
                [target.page_slug for target, _ in entries],
            )
            fresh = [
                (target, priority)
                for target, priority in entries
                if target.key not in excluded and target.page_slug not in published
            ]
            fresh.sort(key=lambda entry: entry[1])
            inserted = await self.queue.enqueue(fresh) if fresh else 0
            result.skipped += len(entries) - inserted
            if content_type == "location":
                result.locations = inserted
            elif content_type == "industry":
                result.industries = inserted
            else:
                result.combos = inserted

        logger.info(
            "Queue populated",
            extra={
                "content_types": list(types),
                "max_priority": max_priority,
                "locations": result.locations,
                "industries": result.industries,
                "combos": result.combos,
                "skipped": result.skipped,
            },
        )
        return result

    async def requeue_failed(self, content_types: Iterable[str] | None = None) -> int:
        """Create fresh queued items for targets whose latest item failed.

        The failed rows stay untouched for audit. Targets published since the
        failure are not requeued.
        """
        types = normalize_content_types(content_types)
        if not types:
            return 0

        failed = await self.queue.latest_failed(types)
        if not failed:
            return 0

        outstanding = await self.queue.outstanding_target_keys(types)
        entries: list[TargetEntry] = []
        by_type: dict[str, list[TargetEntry]] = {}
        for item in failed:
            target = item.target
            if target.key in outstanding:
                continue
            by_type.setdefault(target.content_type, []).append((target, item.priority))

        for content_type, typed_entries in by_type.items():
            published = await self.publisher.published_slugs(
                content_type,
                [target.page_slug for target, _ in typed_entries],
            )
            entries.extend(entry for entry in typed_entries if entry[0].page_slug not in published)

        requeued = await self.queue.enqueue(entries) if entries else 0
        logger.info(
            "Failed queue items requeued",
            extra={"failed": len(failed), "requeued": requeued},
        )
        return requeued
