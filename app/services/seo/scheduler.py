"""Single-flight pipeline runs and the cron-driven scheduler loop."""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from app.config import Settings
from app.core.redis import RedisLockClient
from app.services.seo.cron import CronSchedule, resolve_timezone
from app.services.seo.orchestrator import GenerationOrchestrator
from app.services.seo.populator import PopulateResult, QueuePopulator
from app.services.seo.targets import CONTENT_TYPES

logger = logging.getLogger(__name__)

RUN_LOCK_KEY = "seo:content-pipeline:run-lock"


class SingleFlightGuard:
    """Process-wide non-blocking mutex: a second caller is turned away, not queued."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Yield True if this caller owns the guard; release on every exit path."""
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


# Shared by every pipeline instance in the process.
RUN_GUARD = SingleFlightGuard()


class DistributedRunLock:
    """Redis lock for deployments running more than one scheduler instance."""

    def __init__(self, client: RedisLockClient, *, key: str = RUN_LOCK_KEY, ttl_seconds: int = 3600) -> None:
        self.client = client
        self.key = key
        self.ttl_seconds = ttl_seconds

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[bool]:
        token = secrets.token_hex(16)
        acquired = await self.client.acquire(self.key, token, ttl_seconds=self.ttl_seconds)
        try:
            yield acquired
        finally:
            if acquired:
                try:
                    released = await self.client.release(self.key, token)
                except Exception as exc:
                    logger.warning(
                        "Failed to release distributed run lock; it will expire",
                        extra={"lock_key": self.key, "error": str(exc)},
                    )
                else:
                    if not released:
                        logger.warning(
                            "Distributed run lock expired before release",
                            extra={"lock_key": self.key},
                        )


@dataclass(frozen=True, slots=True)
class RunOptions:
    batch_size: int = 10
    auto_populate: bool = False
    populate_max_priority: int = 3
    content_types: tuple[str, ...] = CONTENT_TYPES

    @classmethod
    def from_settings(cls, settings: Settings) -> RunOptions:
        return cls(
            batch_size=settings.seo_cron_batch_size,
            auto_populate=settings.seo_cron_auto_populate,
            populate_max_priority=settings.seo_cron_populate_max_priority,
        )


@dataclass(slots=True)
class RunSummary:
    """Outcome of one pipeline run, or a marker that it did not run."""

    processed: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    populated: PopulateResult | None = None
    populate_error: str | None = None
    error: str | None = None
    duration_ms: int = 0
    run_skipped: bool = False
    started_at: datetime | None = None

    @classmethod
    def not_run(cls) -> RunSummary:
        return cls(run_skipped=True)

    def to_dict(self) -> dict[str, Any]:
        if self.run_skipped:
            return {"skipped": True}
        return {
            "skipped": False,
            "processed": self.processed,
            "success": self.success,
            "failed": self.failed,
            "skipped_items": self.skipped,
            "populated": self.populated.to_dict() if self.populated is not None else None,
            "populate_error": self.populate_error,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


class ContentPipeline:
    """Serializes runs: optional populate phase, then one orchestrator batch."""

    def __init__(
        self,
        *,
        populator: QueuePopulator,
        orchestrator: GenerationOrchestrator,
        guard: SingleFlightGuard | None = None,
        distributed_lock: DistributedRunLock | None = None,
        default_options: RunOptions | None = None,
    ) -> None:
        self.populator = populator
        self.orchestrator = orchestrator
        self.guard = guard or RUN_GUARD
        self.distributed_lock = distributed_lock
        self.default_options = default_options or RunOptions()

    @property
    def is_running(self) -> bool:
        return self.guard.is_running

    @asynccontextmanager
    async def _distributed_slot(self) -> AsyncIterator[bool]:
        if self.distributed_lock is None:
            yield True
            return
        async with self.distributed_lock.hold() as owned:
            yield owned

    async def run_once(
        self,
        options: RunOptions | None = None,
        *,
        stop_event: asyncio.Event | None = None,
    ) -> RunSummary:
        """Run the pipeline unless a run is already active.

        An overlapping call returns `RunSummary.not_run()` immediately and
        touches nothing. Errors inside the run are logged and reported in the
        summary; the guard is always released. Setting `stop_event` ends the
        batch after the item in progress.
        """
        options = options or self.default_options
        with self.guard.hold() as acquired:
            if not acquired:
                logger.info("Content pipeline run already in progress, skipping")
                return RunSummary.not_run()
            async with self._distributed_slot() as owned:
                if not owned:
                    logger.info("Content pipeline run held by another instance, skipping")
                    return RunSummary.not_run()
                return await self._run(options, stop_event)

    async def _run(self, options: RunOptions, stop_event: asyncio.Event | None) -> RunSummary:
        summary = RunSummary(started_at=datetime.now(timezone.utc))
        started = time.monotonic()
        logger.info(
            "Content pipeline run started",
            extra={
                "batch_size": options.batch_size,
                "auto_populate": options.auto_populate,
                "populate_max_priority": options.populate_max_priority,
            },
        )
        try:
            if options.auto_populate:
                try:
                    summary.populated = await self.populator.populate(
                        options.content_types,
                        options.populate_max_priority,
                    )
                except Exception as exc:
                    # Batch still runs on whatever is already queued.
                    logger.exception("Queue populate phase failed")
                    summary.populate_error = str(exc) or type(exc).__name__

            batch = await self.orchestrator.process_batch(options.batch_size, stop_event=stop_event)
            summary.processed = batch.processed
            summary.success = batch.success
            summary.failed = batch.failed
            summary.skipped = batch.skipped
        except Exception as exc:
            logger.exception("Content pipeline run failed")
            summary.error = str(exc) or type(exc).__name__
        finally:
            summary.duration_ms = int((time.monotonic() - started) * 1000)

        logger.info("Content pipeline run finished", extra=summary.to_dict())
        return summary


class ScheduledRunner:
    """Fires `ContentPipeline.run_once` on a cron schedule until stopped."""

    def __init__(
        self,
        pipeline: ContentPipeline,
        *,
        schedule: str,
        timezone_name: str = "UTC",
        enabled: bool = True,
        run_on_startup: bool = False,
        options: RunOptions | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.schedule = CronSchedule.parse(schedule)
        self.timezone = resolve_timezone(timezone_name)
        self.enabled = enabled
        self.run_on_startup = run_on_startup
        self.options = options
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @classmethod
    def from_settings(cls, pipeline: ContentPipeline, settings: Settings) -> ScheduledRunner:
        return cls(
            pipeline,
            schedule=settings.seo_cron_schedule,
            timezone_name=settings.seo_cron_timezone,
            enabled=settings.seo_cron_enabled,
            run_on_startup=settings.seo_cron_run_on_startup,
            options=RunOptions.from_settings(settings),
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_at(self, now: datetime | None = None) -> datetime:
        return self.schedule.next_after(now or datetime.now(timezone.utc), self.timezone)

    def start_scheduled(self) -> asyncio.Task[None] | None:
        """Start the loop task; a no-op when scheduling is disabled."""
        if not self.enabled:
            logger.info("Scheduled content generation disabled")
            return None
        if self.running:
            return self._task
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="seo-content-scheduler")
        logger.info(
            "Scheduled content generation started",
            extra={
                "schedule": self.schedule.expression,
                "timezone": str(self.timezone),
                "run_on_startup": self.run_on_startup,
            },
        )
        return self._task

    async def stop(self) -> None:
        """Stop the loop, letting an in-flight run finish its current item."""
        if self._task is None:
            return
        self._stopping.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Scheduled content generation stopped")

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run_safely(self) -> None:
        try:
            await self.pipeline.run_once(self.options, stop_event=self._stopping)
        except Exception:
            logger.exception("Scheduled content pipeline run crashed")

    async def _loop(self) -> None:
        # Exits only via `_stopping`, so a run is never cancelled mid-item.
        if self.run_on_startup:
            await self._run_safely()
        while not self._stopping.is_set():
            now = datetime.now(timezone.utc)
            fire_at = self.schedule.next_after(now, self.timezone)
            delay = max(0.0, (fire_at - now).total_seconds())
            logger.info(
                "Next scheduled content run",
                extra={"next_run_at": fire_at.isoformat(), "delay_seconds": int(delay)},
            )
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                await self._run_safely()

