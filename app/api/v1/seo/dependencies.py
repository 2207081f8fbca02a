"""Dependencies for the SEO content pipeline operator routes."""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from app.config import settings
from app.repositories.generation_log_repository import GenerationLogRepository
from app.repositories.page_repository import build_page_repositories
from app.repositories.queue_repository import QueueRepository
from app.repositories.seed_repository import SeedRepository
from app.services.seo.factory import get_content_pipeline
from app.services.seo.publisher import ContentPublisher
from app.services.seo.scheduler import ContentPipeline

logger = logging.getLogger(__name__)

worker_secret_header = APIKeyHeader(name="X-Worker-Secret", auto_error=False)


async def require_worker_secret(
    secret: Annotated[str | None, Security(worker_secret_header)],
) -> None:
    """Validate the shared operator secret."""
    expected = (settings.seo_worker_secret or "").strip()
    if not expected:
        logger.error("Worker secret check failed: no secret configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker secret is not configured",
        )

    candidate = (secret or "").strip()
    if not candidate or not hmac.compare_digest(candidate, expected):
        logger.warning("Worker secret check failed: invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing worker secret",
        )


def get_pipeline() -> ContentPipeline:
    return get_content_pipeline()


def get_seed_repository() -> SeedRepository:
    return SeedRepository()


def get_queue_repository() -> QueueRepository:
    return QueueRepository()


def get_generation_log_repository() -> GenerationLogRepository:
    return GenerationLogRepository()


def get_publisher() -> ContentPublisher:
    return ContentPublisher(build_page_repositories())


Pipeline = Annotated[ContentPipeline, Depends(get_pipeline)]
Seeds = Annotated[SeedRepository, Depends(get_seed_repository)]
Queue = Annotated[QueueRepository, Depends(get_queue_repository)]
GenerationLogs = Annotated[GenerationLogRepository, Depends(get_generation_log_repository)]
Publisher = Annotated[ContentPublisher, Depends(get_publisher)]
