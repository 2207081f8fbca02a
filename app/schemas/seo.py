"""SEO content pipeline operator API schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ContentTypeName = Literal["location", "industry", "combo"]
SeedDimensionName = Literal["location", "industry"]

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class RunRequest(BaseModel):
    """Overrides for one manual pipeline run; unset fields use configured defaults."""

    batch_size: int | None = Field(default=None, ge=1, le=500)
    auto_populate: bool | None = None
    populate_max_priority: int | None = Field(default=None, ge=1, le=5)


class PopulateRequest(BaseModel):
    content_types: list[ContentTypeName] = Field(
        default_factory=lambda: ["location", "industry", "combo"],
        min_length=1,
    )
    max_priority: int = Field(default=3, ge=1, le=5)


class PopulateResponse(BaseModel):
    locations: int
    industries: int
    combos: int
    skipped: int
    total: int


class RequeueFailedRequest(BaseModel):
    content_types: list[ContentTypeName] | None = None


class RequeueFailedResponse(BaseModel):
    requeued: int


class QueueStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_content_type: dict[str, dict[str, int]]
    published: dict[str, int]


class GenerationLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    queue_item_id: str | None = None
    content_type: str
    target_slug: str
    status: str
    ai_model: str | None = None
    prompt_length: int
    response_length: int
    duration_ms: int
    error_detail: str | None = None
    created_at: datetime | None = None


class GenerationLogsResponse(BaseModel):
    logs: list[GenerationLogResponse]
    stats: dict[str, Any]


class SeedItemInput(BaseModel):
    slug: str = Field(..., min_length=1, max_length=200, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    priority: int = Field(default=5, ge=1, le=5)
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class SeedBulkRequest(BaseModel):
    dimension: SeedDimensionName
    items: list[SeedItemInput] = Field(..., min_length=1, max_length=1000)


class SeedBulkResponse(BaseModel):
    dimension: SeedDimensionName
    requested: int
    inserted: int


class SeedItemUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    priority: int | None = Field(default=None, ge=1, le=5)
    is_active: bool | None = None
    metadata: dict[str, Any] | None = None


class SeedItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dimension: str
    slug: str
    name: str
    priority: int
    is_active: bool
    metadata: dict[str, Any]


class SeedListResponse(BaseModel):
    items: list[SeedItemResponse]
    stats: dict[str, Any]


class GenerateSingleRequest(BaseModel):
    content_type: ContentTypeName
    location_slug: str | None = Field(default=None, pattern=SLUG_PATTERN)
    industry_slug: str | None = Field(default=None, pattern=SLUG_PATTERN)

    @model_validator(mode="after")
    def _check_slugs(self) -> "GenerateSingleRequest":
        if self.content_type in ("location", "combo") and not self.location_slug:
            raise ValueError("location_slug is required for location and combo pages")
        if self.content_type in ("industry", "combo") and not self.industry_slug:
            raise ValueError("industry_slug is required for industry and combo pages")
        if self.content_type == "location":
            self.industry_slug = None
        elif self.content_type == "industry":
            self.location_slug = None
        return self


class PageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    content_type: str
    slug: str
    status: str
    published_at: datetime | None = None


class GenerateSingleResponse(BaseModel):
    page: PageResponse
    content: dict[str, Any]


class PageListResponse(BaseModel):
    items: list[PageResponse]
    total: int


class UnpublishResponse(BaseModel):
    content_type: ContentTypeName
    slug: str
    unpublished: bool
