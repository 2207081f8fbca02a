"""Wires the content pipeline to its database, AI and Redis collaborators."""

from __future__ import annotations

from app.config import Settings, settings
from app.core.redis import get_redis_lock_client
from app.integrations.completion_client import CompletionServiceClient
from app.repositories.generation_log_repository import GenerationLogRepository
from app.repositories.page_repository import build_page_repositories
from app.repositories.queue_repository import QueueRepository
from app.repositories.seed_repository import SeedRepository
from app.services.seo.generation_log import GenerationLogRecorder
from app.services.seo.orchestrator import GenerationOrchestrator
from app.services.seo.populator import QueuePopulator
from app.services.seo.publisher import ContentPublisher
from app.services.seo.scheduler import (
    ContentPipeline,
    DistributedRunLock,
    RunOptions,
    ScheduledRunner,
)

_content_pipeline: ContentPipeline | None = None
_scheduled_runner: ScheduledRunner | None = None


def build_content_pipeline(config: Settings | None = None) -> ContentPipeline:
    """Build a pipeline backed by Postgres, the AI proxy and (optionally) Redis."""
    config = config or settings
    seeds = SeedRepository()
    queue = QueueRepository()
    publisher = ContentPublisher(build_page_repositories())

    distributed_lock = None
    if config.seo_cron_distributed_lock:
        distributed_lock = DistributedRunLock(
            get_redis_lock_client(),
            ttl_seconds=config.seo_cron_lock_ttl_seconds,
        )

    return ContentPipeline(
        populator=QueuePopulator(seeds=seeds, queue=queue, publisher=publisher),
        orchestrator=GenerationOrchestrator(
            queue=queue,
            seeds=seeds,
            publisher=publisher,
            completion_client=CompletionServiceClient(
                base_url=config.ai_api_url,
                api_key=config.ai_api_key,
                model=config.ai_model,
                timeout_seconds=config.ai_timeout_seconds,
            ),
            log_recorder=GenerationLogRecorder(GenerationLogRepository()),
            model=config.ai_model,
        ),
        distributed_lock=distributed_lock,
        default_options=RunOptions.from_settings(config),
    )


def get_content_pipeline() -> ContentPipeline:
    """Get singleton content pipeline."""
    global _content_pipeline
    if _content_pipeline is None:
        _content_pipeline = build_content_pipeline()
    return _content_pipeline


def get_scheduled_runner() -> ScheduledRunner:
    """Get singleton scheduler bound to the singleton pipeline."""
    global _scheduled_runner
    if _scheduled_runner is None:
        _scheduled_runner = ScheduledRunner.from_settings(get_content_pipeline(), settings)
    return _scheduled_runner
