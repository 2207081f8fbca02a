"""SEO content pipeline operator endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.seo.dependencies import (
    GenerationLogs,
    Pipeline,
    Publisher,
    Queue,
    Seeds,
    require_worker_secret,
)
from app.core.exceptions import (
    AIServiceNotConfiguredError,
    ContentValidationError,
    GenerationError,
    InvalidTargetError,
    SeedItemNotFoundError,
)
from app.schemas.seo import (
    ContentTypeName,
    GenerateSingleRequest,
    GenerateSingleResponse,
    GenerationLogResponse,
    GenerationLogsResponse,
    PageListResponse,
    PageResponse,
    PopulateRequest,
    PopulateResponse,
    QueueStatsResponse,
    RequeueFailedRequest,
    RequeueFailedResponse,
    RunRequest,
    SeedBulkRequest,
    SeedBulkResponse,
    SeedDimensionName,
    SeedItemResponse,
    SeedItemUpdateRequest,
    SeedListResponse,
    UnpublishResponse,
)
from app.services.seo.scheduler import RunOptions

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_worker_secret)])


@router.post(
    "/run",
    summary="Run the pipeline once",
    description=(
        "Trigger one pipeline run (optional populate, then one batch). Returns "
        '`{"skipped": true}` when a run is already in progress.'
    ),
)
async def run_pipeline(pipeline: Pipeline, request: RunRequest | None = None) -> dict[str, Any]:
    """Run the content pipeline once."""
    defaults = pipeline.default_options
    overrides = request or RunRequest()
    options = RunOptions(
        batch_size=overrides.batch_size or defaults.batch_size,
        auto_populate=(
            overrides.auto_populate
            if overrides.auto_populate is not None
            else defaults.auto_populate
        ),
        populate_max_priority=overrides.populate_max_priority or defaults.populate_max_priority,
        content_types=defaults.content_types,
    )
    summary = await pipeline.run_once(options)
    return summary.to_dict()


@router.post(
    "/queue/populate",
    response_model=PopulateResponse,
    summary="Populate the work queue",
    description="Enqueue eligible targets from active seed data that are not queued or published.",
)
async def populate_queue(request: PopulateRequest, pipeline: Pipeline) -> PopulateResponse:
    """Populate queue from seed data."""
    result = await pipeline.populator.populate(request.content_types, request.max_priority)
    return PopulateResponse(**result.to_dict())


@router.post(
    "/queue/requeue-failed",
    response_model=RequeueFailedResponse,
    summary="Requeue failed targets",
    description="Create fresh queued items for targets whose latest item failed.",
)
async def requeue_failed(
    pipeline: Pipeline,
    request: RequeueFailedRequest | None = None,
) -> RequeueFailedResponse:
    """Requeue failed targets."""
    content_types = request.content_types if request is not None else None
    requeued = await pipeline.populator.requeue_failed(content_types)
    return RequeueFailedResponse(requeued=requeued)


@router.get(
    "/queue/stats",
    response_model=QueueStatsResponse,
    summary="Queue statistics",
)
async def queue_stats(queue: Queue, publisher: Publisher) -> QueueStatsResponse:
    """Get queue counts and published page counts."""
    stats = await queue.stats()
    published = await publisher.published_counts()
    return QueueStatsResponse(**stats, published=published)


@router.get(
    "/logs",
    response_model=GenerationLogsResponse,
    summary="Generation logs",
)
async def list_generation_logs(
    logs: GenerationLogs,
    limit: int = Query(50, ge=1, le=500),
    log_status: str | None = Query(None, alias="status"),
    content_type: ContentTypeName | None = Query(None),
) -> GenerationLogsResponse:
    """Get recent generation log entries and aggregate stats."""
    entries = await logs.list_logs(limit=limit, status=log_status, content_type=content_type)
    stats = await logs.generation_stats()
    return GenerationLogsResponse(
        logs=[GenerationLogResponse.model_validate(entry) for entry in entries],
        stats=stats,
    )


@router.post(
    "/seed/bulk",
    response_model=SeedBulkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bulk add seed items",
    description="Insert seed items for one dimension; existing slugs are left unchanged.",
)
async def bulk_add_seeds(request: SeedBulkRequest, seeds: Seeds) -> SeedBulkResponse:
    """Bulk add seed items."""
    inserted = await seeds.bulk_add(
        request.dimension,
        [item.model_dump() for item in request.items],
    )
    return SeedBulkResponse(
        dimension=request.dimension,
        requested=len(request.items),
        inserted=inserted,
    )


@router.get(
    "/seed/{dimension}",
    response_model=SeedListResponse,
    summary="List seed items",
)
async def list_seeds(
    dimension: SeedDimensionName,
    seeds: Seeds,
    include_inactive: bool = Query(False),
) -> SeedListResponse:
    """List seed items of one dimension."""
    items = await seeds.list_items(dimension, include_inactive=include_inactive)
    stats = await seeds.stats()
    return SeedListResponse(
        items=[SeedItemResponse.model_validate(item) for item in items],
        stats=stats,
    )


@router.patch(
    "/seed/{dimension}/{slug}",
    response_model=SeedItemResponse,
    summary="Update a seed item",
)
async def update_seed(
    dimension: SeedDimensionName,
    slug: str,
    request: SeedItemUpdateRequest,
    seeds: Seeds,
) -> SeedItemResponse:
    """Update priority, active flag, name or metadata of a seed item."""
    try:
        item = await seeds.update(
            dimension,
            slug,
            name=request.name,
            priority=request.priority,
            is_active=request.is_active,
            metadata=request.metadata,
        )
    except SeedItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    return SeedItemResponse.model_validate(item)


@router.post(
    "/seed/{dimension}/{slug}/deactivate",
    response_model=SeedItemResponse,
    summary="Deactivate a seed item",
)
async def deactivate_seed(
    dimension: SeedDimensionName,
    slug: str,
    seeds: Seeds,
) -> SeedItemResponse:
    """Soft-deactivate a seed item."""
    try:
        item = await seeds.deactivate(dimension, slug)
    except SeedItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    return SeedItemResponse.model_validate(item)


@router.post(
    "/generate/single",
    response_model=GenerateSingleResponse,
    summary="Generate one page",
    description="Generate and publish a single target outside the queue.",
)
async def generate_single(
    request: GenerateSingleRequest,
    pipeline: Pipeline,
) -> GenerateSingleResponse:
    """Generate and publish a single page."""
    try:
        generated = await pipeline.orchestrator.generate_single(
            request.content_type,
            location_slug=request.location_slug,
            industry_slug=request.industry_slug,
        )
    except SeedItemNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except InvalidTargetError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except AIServiceNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.message,
        ) from exc
    except ContentValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": exc.message, "violations": exc.violations},
        ) from exc
    except GenerationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message) from exc

    return GenerateSingleResponse(
        page=PageResponse.model_validate(generated.page),
        content=dict(generated.content),
    )


@router.post(
    "/pages/{content_type}/{slug}/unpublish",
    response_model=UnpublishResponse,
    summary="Unpublish a page",
)
async def unpublish_page(
    content_type: ContentTypeName,
    slug: str,
    publisher: Publisher,
) -> UnpublishResponse:
    """Move a published page back to draft."""
    unpublished = await publisher.unpublish(content_type, slug)
    if not unpublished:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Published page not found",
        )
    return UnpublishResponse(content_type=content_type, slug=slug, unpublished=True)


@router.get(
    "/pages/combo/by-location/{location_slug}",
    response_model=PageListResponse,
    summary="Combo pages for a location",
)
async def combos_by_location(location_slug: str, publisher: Publisher) -> PageListResponse:
    pages = await publisher.combos_by_location(location_slug)
    return PageListResponse(
        items=[PageResponse.model_validate(page) for page in pages],
        total=len(pages),
    )


@router.get(
    "/pages/combo/by-industry/{industry_slug}",
    response_model=PageListResponse,
    summary="Combo pages for an industry",
)
async def combos_by_industry(industry_slug: str, publisher: Publisher) -> PageListResponse:
    pages = await publisher.combos_by_industry(industry_slug)
    return PageListResponse(
        items=[PageResponse.model_validate(page) for page in pages],
        total=len(pages),
    )
