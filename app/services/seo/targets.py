"""Content types, queue statuses and generation target identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from app.core.exceptions import InvalidTargetError

ContentType = Literal["location", "industry", "combo"]
SeedDimension = Literal["location", "industry"]
QueueStatus = Literal["queued", "processing", "completed", "failed", "skipped"]
GenerationStatus = Literal["success", "failure", "validation_error"]
PageStatus = Literal["draft", "published"]

CONTENT_TYPES: tuple[ContentType, ...] = ("location", "industry", "combo")
SEED_DIMENSIONS: tuple[SeedDimension, ...] = ("location", "industry")

QUEUE_OUTSTANDING_STATUSES: frozenset[str] = frozenset({"queued", "processing"})
QUEUE_TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "skipped"})
QUEUE_STATUSES: tuple[QueueStatus, ...] = (
    "queued",
    "processing",
    "completed",
    "failed",
    "skipped",
)


def is_content_type(value: object) -> bool:
    return value in CONTENT_TYPES


def is_seed_dimension(value: object) -> bool:
    return value in SEED_DIMENSIONS


def combo_page_slug(location_slug: str, industry_slug: str) -> str:
    """Deterministic combo page slug: `{industry}-{location}`."""
    return f"{industry_slug}-{location_slug}"


@dataclass(frozen=True, slots=True)
class GenerationTarget:
    """One page to generate: a location, an industry, or a pair of both."""

    content_type: ContentType
    location_slug: str | None = None
    industry_slug: str | None = None

    def __post_init__(self) -> None:
        if self.content_type == "location":
            valid = bool(self.location_slug) and self.industry_slug is None
        elif self.content_type == "industry":
            valid = bool(self.industry_slug) and self.location_slug is None
        elif self.content_type == "combo":
            valid = bool(self.location_slug) and bool(self.industry_slug)
        else:
            raise InvalidTargetError(f"Unknown content type: {self.content_type}")
        if not valid:
            raise InvalidTargetError(
                f"Invalid slugs for {self.content_type} target: "
                f"location={self.location_slug!r}, industry={self.industry_slug!r}"
            )

    @classmethod
    def location(cls, slug: str) -> GenerationTarget:
        return cls("location", location_slug=slug)

    @classmethod
    def industry(cls, slug: str) -> GenerationTarget:
        return cls("industry", industry_slug=slug)

    @classmethod
    def combo(cls, location_slug: str, industry_slug: str) -> GenerationTarget:
        return cls("combo", location_slug=location_slug, industry_slug=industry_slug)

    @classmethod
    def from_queue_item(cls, item: Any) -> GenerationTarget:
        """Build the target described by a queue item row."""
        return cls(
            item.content_type,
            location_slug=item.location_slug,
            industry_slug=item.industry_slug,
        )

    @property
    def page_slug(self) -> str:
        """Slug of the page this target publishes to."""
        if self.content_type == "location":
            return str(self.location_slug)
        if self.content_type == "industry":
            return str(self.industry_slug)
        return combo_page_slug(str(self.location_slug), str(self.industry_slug))

    @property
    def key(self) -> str:
        """Unambiguous identity used for queue de-duplication."""
        if self.content_type == "combo":
            return f"combo:{self.location_slug}:{self.industry_slug}"
        return f"{self.content_type}:{self.page_slug}"
