"""Drives queued items through generation, validation and publishing."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any, Literal

from app.core.exceptions import SeedItemNotFoundError
from app.services.seo.contracts import (
    CompletionClient,
    CompletionResult,
    GenerationLogRecord,
    PageRecord,
    QueueRecord,
    SeedRecord,
    SeedStore,
    WorkQueue,
)
from app.services.seo.generation_log import GenerationLogRecorder
from app.services.seo.prompts import build_prompt
from app.services.seo.publisher import ContentPublisher
from app.services.seo.response_parser import parse_ai_response
from app.services.seo.targets import GenerationTarget
from app.services.seo.validation import validate_content

logger = logging.getLogger(__name__)

ItemOutcome = Literal["success", "failed", "skipped"]

_TERMINAL_STATUS: dict[ItemOutcome, str] = {
    "success": "completed",
    "failed": "failed",
    "skipped": "skipped",
}


@dataclass(slots=True)
class BatchResult:
    """Outcome counts of one batch; processed == success + failed + skipped."""

    processed: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, outcome: ItemOutcome) -> None:
        self.processed += 1
        if outcome == "success":
            self.success += 1
        elif outcome == "skipped":
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class GeneratedPage:
    page: PageRecord
    content: Mapping[str, Any]


class GenerationOrchestrator:
    """Processes queued items one at a time.

    Each item is claimed with a conditional transition, checked against the
    publisher before any AI spend, generated with a single AI call, parsed,
    validated and published. Failures end the item in `failed`; nothing is
    retried here.
    """

    def __init__(
        self,
        *,
        queue: WorkQueue,
        seeds: SeedStore,
        publisher: ContentPublisher,
        completion_client: CompletionClient,
        log_recorder: GenerationLogRecorder,
        model: str | None = None,
    ) -> None:
        self.queue = queue
        self.seeds = seeds
        self.publisher = publisher
        self.completion_client = completion_client
        self.log_recorder = log_recorder
        self.model = model

    async def process_batch(
        self,
        batch_size: int,
        *,
        stop_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Process up to `batch_size` queued items in pull order.

        When `stop_event` is set the batch ends after the current item; the
        rest stay queued for the next run.
        """
        result = BatchResult()
        items = await self.queue.next_queued(max(0, int(batch_size)))
        if not items:
            logger.info("No queued items to process")
            return result

        logger.info("Processing generation batch", extra={"items": len(items)})
        for index, item in enumerate(items):
            if stop_event is not None and stop_event.is_set():
                logger.info(
                    "Stop requested, leaving remaining items queued",
                    extra={"remaining": len(items) - index},
                )
                break
            try:
                outcome = await self.process_item(item)
            except Exception:
                logger.exception(
                    "Queue item processing crashed",
                    extra={"queue_item_id": item.id, "content_type": item.content_type},
                )
                outcome = "failed"
            if outcome is not None:
                result.record(outcome)

        logger.info("Generation batch finished", extra=result.to_dict())
        return result

    async def process_item(self, item: QueueRecord) -> ItemOutcome | None:
        """Run one item to a terminal state.

        Returns None when the claim or the terminal transition was not
        applied; such items are not counted in the batch.
        """
        claimed = await self.queue.transition(item.id, expected="queued", target="processing")
        if not claimed:
            return None

        log_extra = {
            "queue_item_id": item.id,
            "content_type": item.content_type,
            "location_slug": item.location_slug,
            "industry_slug": item.industry_slug,
        }
        generated: GeneratedPage | None = None
        try:
            target = item.target
            location, industry = await self.resolve_seeds(target)

            if not await self.publisher.exists(target):
                generated = await self.generate(
                    target,
                    location=location,
                    industry=industry,
                    queue_item_id=item.id,
                )
        except Exception as exc:
            logger.warning(
                "Queue item failed",
                extra={**log_extra, "error": str(exc), "error_type": type(exc).__name__},
            )
            return await self._finish(
                item,
                "failed",
                log_extra,
                error_message=str(exc) or type(exc).__name__,
            )

        if generated is None:
            logger.info("Target already published, skipped", extra=log_extra)
            return await self._finish(item, "skipped", log_extra)

        outcome = await self._finish(
            item,
            "success",
            {**log_extra, "page_id": generated.page.id},
            published_ref=generated.page.id,
        )
        if outcome is not None:
            logger.info("Queue item completed", extra={**log_extra, "page_id": generated.page.id})
        return outcome

    async def _finish(
        self,
        item: QueueRecord,
        outcome: ItemOutcome,
        log_extra: Mapping[str, Any],
        *,
        published_ref: str | None = None,
        error_message: str | None = None,
    ) -> ItemOutcome | None:
        status = _TERMINAL_STATUS[outcome]
        try:
            applied = await self.queue.transition(
                item.id,
                expected="processing",
                target=status,
                published_ref=published_ref,
                error_message=error_message,
            )
        except Exception:
            logger.exception(
                "Terminal queue transition failed; item left in processing",
                extra={**log_extra, "to": status},
            )
            return None
        if not applied:
            logger.error(
                "Terminal queue transition not applied; item no longer processing",
                extra={**log_extra, "to": status},
            )
            return None
        return outcome

    async def resolve_seeds(
        self,
        target: GenerationTarget,
    ) -> tuple[SeedRecord | None, SeedRecord | None]:
        location: SeedRecord | None = None
        industry: SeedRecord | None = None
        if target.location_slug is not None:
            location = await self.seeds.get("location", target.location_slug)
            if location is None:
                raise SeedItemNotFoundError("location", target.location_slug)
        if target.industry_slug is not None:
            industry = await self.seeds.get("industry", target.industry_slug)
            if industry is None:
                raise SeedItemNotFoundError("industry", target.industry_slug)
        return location, industry

    async def generate(
        self,
        target: GenerationTarget,
        *,
        location: SeedRecord | None,
        industry: SeedRecord | None,
        queue_item_id: str | None = None,
    ) -> GeneratedPage:
        """One AI attempt for `target`, ending in a published page or an exception.

        Exactly one log entry is recorded for the attempt either way.
        """
        prompt = build_prompt(target, location=location, industry=industry)
        completion: CompletionResult | None = None
        started = time.monotonic()
        try:
            completion = await self.completion_client.complete(prompt, model=self.model)
            content = validate_content(parse_ai_response(completion.content), target.content_type)
            page = await self.publisher.publish(
                target,
                content,
                location=location,
                industry=industry,
            )
        except Exception as exc:
            await self._record_attempt(
                target,
                queue_item_id=queue_item_id,
                prompt=prompt,
                completion=completion,
                started=started,
                status=getattr(exc, "log_status", "failure"),
                error_detail=str(exc) or type(exc).__name__,
            )
            raise

        await self._record_attempt(
            target,
            queue_item_id=queue_item_id,
            prompt=prompt,
            completion=completion,
            started=started,
            status="success",
        )
        return GeneratedPage(page=page, content=content)

    async def generate_single(
        self,
        content_type: str,
        *,
        location_slug: str | None = None,
        industry_slug: str | None = None,
    ) -> GeneratedPage:
        """Generate and publish one target outside the queue. Errors propagate."""
        target = GenerationTarget(
            content_type,  # type: ignore[arg-type]
            location_slug=location_slug,
            industry_slug=industry_slug,
        )
        location, industry = await self.resolve_seeds(target)
        logger.info(
            "Generating single target",
            extra={"content_type": content_type, "target": target.key},
        )
        return await self.generate(target, location=location, industry=industry)

    async def _record_attempt(
        self,
        target: GenerationTarget,
        *,
        queue_item_id: str | None,
        prompt: str,
        completion: CompletionResult | None,
        started: float,
        status: str,
        error_detail: str | None = None,
    ) -> None:
        duration_ms = (
            completion.duration_ms
            if completion is not None
            else int((time.monotonic() - started) * 1000)
        )
        await self.log_recorder.record(
            GenerationLogRecord(
                queue_item_id=queue_item_id,
                content_type=target.content_type,
                target_slug=target.page_slug,
                status=status,
                ai_model=completion.model if completion is not None else self.model,
                prompt_length=len(prompt),
                response_length=completion.response_length if completion is not None else 0,
                duration_ms=duration_ms,
                error_detail=error_detail,
            )
        )
