"""Records and collaborator contracts consumed by the content pipeline."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from app.services.seo.targets import ContentType, GenerationTarget


@dataclass(frozen=True, slots=True)
class SeedRecord:
    """Read-only view of a seed item."""

    dimension: str
    slug: str
    name: str
    priority: int
    is_active: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, item: Any) -> SeedRecord:
        return cls(
            dimension=item.dimension,
            slug=item.slug,
            name=item.name,
            priority=int(item.priority),
            is_active=bool(item.is_active),
            metadata=dict(item.seed_metadata or {}),
        )


@dataclass(frozen=True, slots=True)
class QueueRecord:
    """Read-only view of a queue item."""

    id: str
    content_type: ContentType
    location_slug: str | None
    industry_slug: str | None
    status: str
    priority: int
    attempts: int = 0
    published_ref: str | None = None
    last_error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def target(self) -> GenerationTarget:
        return GenerationTarget.from_queue_item(self)

    @classmethod
    def from_model(cls, item: Any) -> QueueRecord:
        return cls(
            id=str(item.id),
            content_type=item.content_type,
            location_slug=item.location_slug,
            industry_slug=item.industry_slug,
            status=item.status,
            priority=int(item.priority),
            attempts=int(item.attempts or 0),
            published_ref=item.published_ref,
            last_error=item.last_error,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


@dataclass(frozen=True, slots=True)
class PageRecord:
    """Identity and publication state of an upserted page."""

    id: str
    content_type: ContentType
    slug: str
    status: str
    published_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class GenerationLogRecord:
    """One AI invocation attempt to append to the generation log."""

    queue_item_id: str | None
    content_type: str
    target_slug: str
    status: str
    ai_model: str | None = None
    prompt_length: int = 0
    response_length: int = 0
    duration_ms: int = 0
    error_detail: str | None = None
    id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, entry: Any) -> GenerationLogRecord:
        return cls(
            queue_item_id=entry.queue_item_id,
            content_type=entry.content_type,
            target_slug=entry.target_slug,
            status=entry.status,
            ai_model=entry.ai_model,
            prompt_length=int(entry.prompt_length or 0),
            response_length=int(entry.response_length or 0),
            duration_ms=int(entry.duration_ms or 0),
            error_detail=entry.error_detail,
            id=str(entry.id),
            created_at=entry.created_at,
        )


@dataclass(frozen=True, slots=True)
class CompletionResult:
    """Raw output of one AI completion call."""

    content: str | dict[str, Any]
    duration_ms: int
    prompt_length: int
    model: str

    @property
    def response_length(self) -> int:
        if isinstance(self.content, str):
            return len(self.content)
        return len(str(self.content))


class SeedStore(Protocol):
    """Seed data access."""

    async def list_active(
        self,
        dimension: str,
        max_priority: int | None = None,
    ) -> list[SeedRecord]:
        """Active seeds of one dimension, optionally capped by priority."""

    async def get(self, dimension: str, slug: str) -> SeedRecord | None:
        """Look up one seed regardless of its active flag."""


class WorkQueue(Protocol):
    """Persisted generation queue."""

    async def outstanding_target_keys(self, content_types: Iterable[str]) -> set[str]:
        """Target keys that have a queued or processing item."""

    async def latest_failed(self, content_types: Iterable[str]) -> list[QueueRecord]:
        """Items that failed and are the most recent item for their target."""

    async def enqueue(self, entries: Sequence[tuple[GenerationTarget, int]]) -> int:
        """Insert queued items; outstanding duplicates are ignored. Returns inserted count."""

    async def next_queued(self, limit: int) -> list[QueueRecord]:
        """Queued items by priority, then age, then id."""

    async def transition(
        self,
        item_id: str,
        *,
        expected: str,
        target: str,
        published_ref: str | None = None,
        error_message: str | None = None,
    ) -> bool:
        """Apply a transition only if the item is still in `expected`."""


class ContentStore(Protocol):
    """Page table for one content type."""

    async def upsert(self, slug: str, fields: dict[str, Any]) -> PageRecord:
        """Insert or overwrite the page keyed by slug."""

    async def exists_published(self, slug: str) -> bool:
        """Whether a published page exists for slug."""

    async def published_slugs(self, slugs: Iterable[str]) -> set[str]:
        """Subset of slugs that have a published page."""

    async def count_published(self) -> int:
        """Number of published pages."""

    async def unpublish(self, slug: str) -> bool:
        """Move a published page back to draft; False when nothing changed."""

    async def list_published(
        self,
        *,
        location_slug: str | None = None,
        industry_slug: str | None = None,
    ) -> list[PageRecord]:
        """Published pages ordered by slug; the slug filters apply to combo pages only."""


class GenerationLogSink(Protocol):
    """Append-only generation log."""

    async def append(self, entry: GenerationLogRecord) -> None:
        """Persist one log entry."""


class CompletionClient(Protocol):
    """External AI completion endpoint."""

    async def complete(self, prompt: str, *, model: str | None = None) -> CompletionResult:
        """Send one prompt; raise TransportError on transport failures."""
