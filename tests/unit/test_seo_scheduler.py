"""Unit tests for single-flight pipeline runs and the scheduled runner."""

from __future__ import annotations

import asyncio
import json

import pytest

from app.services.seo.contracts import CompletionResult
from app.services.seo.generation_log import GenerationLogRecorder
from app.services.seo.orchestrator import BatchResult, GenerationOrchestrator
from app.services.seo.scheduler import (
    ContentPipeline,
    DistributedRunLock,
    RunOptions,
    RunSummary,
    ScheduledRunner,
    SingleFlightGuard,
)
from app.services.seo.targets import GenerationTarget


class CrashingOrchestrator:
    def __init__(self) -> None:
        self.calls = 0

    async def process_batch(self, batch_size: int, *, stop_event: asyncio.Event | None = None) -> BatchResult:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("database went away")
        return BatchResult()


class BlockingOrchestrator:
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def process_batch(self, batch_size: int, *, stop_event: asyncio.Event | None = None) -> BatchResult:
        self.started.set()
        await self.release.wait()
        result = BatchResult()
        result.record("success")
        return result


class SlowCompletionClient:
    """Signals when a call starts, then takes a while to answer."""

    def __init__(self, content: str) -> None:
        self.content = content
        self.started = asyncio.Event()
        self.calls = 0

    async def complete(self, prompt: str, *, model: str | None = None) -> CompletionResult:
        self.calls += 1
        self.started.set()
        await asyncio.sleep(0.05)
        return CompletionResult(content=self.content, duration_ms=50, prompt_length=len(prompt), model="haiku")


class FakeLockClient:
    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.acquired: list[str] = []
        self.released: list[str] = []

    async def acquire(self, key: str, token: str, *, ttl_seconds: int) -> bool:
        if not self.available:
            return False
        self.acquired.append(token)
        return True

    async def release(self, key: str, token: str) -> bool:
        self.released.append(token)
        return True


def valid_location_output(content_factory) -> str:
    return json.dumps(content_factory("location"))


@pytest.fixture
def guard() -> SingleFlightGuard:
    return SingleFlightGuard()


@pytest.fixture
def pipeline(populator, orchestrator, guard) -> ContentPipeline:
    return ContentPipeline(populator=populator, orchestrator=orchestrator, guard=guard)


@pytest.mark.asyncio
async def test_overlapping_run_is_skipped_without_side_effects(
    pipeline,
    guard,
    seed_store,
    work_queue,
    completion_client,
) -> None:
    seed_store.add("location", "dublin")
    work_queue.add(GenerationTarget.location("dublin"))

    with guard.hold() as acquired:
        assert acquired
        summary = await pipeline.run_once(RunOptions(auto_populate=True))

    assert summary.to_dict() == {"skipped": True}
    assert seed_store.list_calls == 0
    assert work_queue.history == []
    assert completion_client.prompts == []


@pytest.mark.asyncio
async def test_concurrent_trigger_returns_immediately(populator, guard) -> None:
    orchestrator = BlockingOrchestrator()
    pipeline = ContentPipeline(populator=populator, orchestrator=orchestrator, guard=guard)

    first = asyncio.create_task(pipeline.run_once())
    await orchestrator.started.wait()
    assert pipeline.is_running

    second = await pipeline.run_once()
    orchestrator.release.set()
    first_summary = await first

    assert second.run_skipped
    assert first_summary.success == 1
    assert not pipeline.is_running


@pytest.mark.asyncio
async def test_guard_is_released_after_failed_run(populator, guard) -> None:
    orchestrator = CrashingOrchestrator()
    pipeline = ContentPipeline(populator=populator, orchestrator=orchestrator, guard=guard)

    failed = await pipeline.run_once()
    recovered = await pipeline.run_once()

    assert failed.error == "database went away"
    assert not failed.run_skipped
    assert recovered.error is None
    assert orchestrator.calls == 2
    assert not guard.is_running


@pytest.mark.asyncio
async def test_populate_failure_still_runs_batch(
    pipeline,
    seed_store,
    work_queue,
    completion_client,
    content_factory,
) -> None:
    seed_store.add("location", "dublin")
    queued = work_queue.add(GenerationTarget.location("dublin"))
    seed_store.fail_reads = True
    completion_client.outputs.append(valid_location_output(content_factory))

    summary = await pipeline.run_once(RunOptions(auto_populate=True))

    assert summary.populate_error == "seed store unavailable"
    assert summary.populated is None
    assert summary.success == 1
    assert work_queue.status_of(queued.id) == "completed"


@pytest.mark.asyncio
async def test_repeated_runs_do_not_duplicate_work(
    pipeline,
    seed_store,
    work_queue,
    page_stores,
    completion_client,
    content_factory,
) -> None:
    seed_store.add("location", "dublin")
    seed_store.add("location", "cork", priority=2)
    completion_client.outputs.extend([valid_location_output(content_factory)] * 2)
    options = RunOptions(batch_size=1, auto_populate=True, content_types=("location",))

    first = await pipeline.run_once(options)
    second = await pipeline.run_once(options)
    third = await pipeline.run_once(options)

    assert first.populated.locations == 2
    assert first.success == 1
    assert "dublin" in page_stores["location"].pages
    assert second.populated.total == 0
    assert second.populated.skipped == 2
    assert second.success == 1
    assert third.populated.total == 0
    assert third.processed == 0
    assert len(work_queue.rows) == 2
    assert completion_client.outputs == []


@pytest.mark.asyncio
async def test_summary_payload_shape(pipeline, seed_store, work_queue, completion_client) -> None:
    seed_store.add("industry", "dentist")
    work_queue.add(GenerationTarget.industry("dentist"))
    completion_client.outputs.append("no json here")

    payload = (await pipeline.run_once(RunOptions(batch_size=5))).to_dict()

    assert payload["skipped"] is False
    assert payload["processed"] == 1
    assert payload["failed"] == 1
    assert payload["skipped_items"] == 0
    assert payload["populated"] is None
    assert payload["error"] is None
    assert payload["started_at"] is not None


@pytest.mark.asyncio
async def test_distributed_lock_held_elsewhere_skips_run(populator, orchestrator, guard) -> None:
    client = FakeLockClient(available=False)
    pipeline = ContentPipeline(
        populator=populator,
        orchestrator=orchestrator,
        guard=guard,
        distributed_lock=DistributedRunLock(client),
    )

    summary = await pipeline.run_once()

    assert summary.run_skipped
    assert client.released == []
    assert not guard.is_running


@pytest.mark.asyncio
async def test_distributed_lock_is_released_with_its_token(populator, orchestrator, guard) -> None:
    client = FakeLockClient()
    pipeline = ContentPipeline(
        populator=populator,
        orchestrator=orchestrator,
        guard=guard,
        distributed_lock=DistributedRunLock(client, ttl_seconds=60),
    )

    summary = await pipeline.run_once()

    assert not summary.run_skipped
    assert client.acquired == client.released
    assert len(client.acquired) == 1


def test_not_run_summary_reports_only_skip() -> None:
    assert RunSummary.not_run().to_dict() == {"skipped": True}


@pytest.mark.asyncio
async def test_disabled_runner_does_not_start(pipeline) -> None:
    runner = ScheduledRunner(pipeline, schedule="0 2 * * *", enabled=False)

    assert runner.start_scheduled() is None
    assert not runner.running


@pytest.mark.asyncio
async def test_runner_runs_on_startup_and_stops_cleanly() -> None:
    class RecordingPipeline:
        def __init__(self) -> None:
            self.options: list[RunOptions | None] = []
            self.ran = asyncio.Event()

        async def run_once(
            self,
            options: RunOptions | None = None,
            *,
            stop_event: asyncio.Event | None = None,
        ) -> RunSummary:
            self.options.append(options)
            self.ran.set()
            return RunSummary()

    recording = RecordingPipeline()
    options = RunOptions(batch_size=3)
    runner = ScheduledRunner(
        recording,  # type: ignore[arg-type]
        schedule="0 2 * * *",
        timezone_name="Europe/Dublin",
        run_on_startup=True,
        options=options,
    )

    task = runner.start_scheduled()
    assert task is not None
    await asyncio.wait_for(recording.ran.wait(), timeout=1)
    assert runner.running

    await runner.stop()

    assert recording.options == [options]
    assert not runner.running


def test_invalid_schedule_is_rejected_at_construction(pipeline) -> None:
    with pytest.raises(ValueError):
        ScheduledRunner(pipeline, schedule="every night")


@pytest.mark.asyncio
async def test_stop_during_ai_call_lets_current_item_finish(
    seed_store,
    work_queue,
    publisher,
    populator,
    log_sink,
    guard,
    content_factory,
) -> None:
    seed_store.add("location", "dublin")
    seed_store.add("location", "cork")
    first = work_queue.add(GenerationTarget.location("dublin"))
    second = work_queue.add(GenerationTarget.location("cork"))
    client = SlowCompletionClient(valid_location_output(content_factory))
    orchestrator = GenerationOrchestrator(
        queue=work_queue,
        seeds=seed_store,
        publisher=publisher,
        completion_client=client,
        log_recorder=GenerationLogRecorder(log_sink),
    )
    pipeline = ContentPipeline(populator=populator, orchestrator=orchestrator, guard=guard)
    runner = ScheduledRunner(
        pipeline,
        schedule="0 2 * * *",
        run_on_startup=True,
        options=RunOptions(batch_size=5),
    )

    runner.start_scheduled()
    await asyncio.wait_for(client.started.wait(), timeout=1)
    await runner.stop()

    assert work_queue.status_of(first.id) == "completed"
    assert work_queue.status_of(second.id) == "queued"
    assert client.calls == 1
    assert [entry.status for entry in log_sink.entries] == ["success"]
    assert not runner.running
    assert not guard.is_running


@pytest.mark.asyncio
async def test_stop_event_set_before_batch_leaves_items_queued(pipeline, work_queue, completion_client) -> None:
    queued = work_queue.add(GenerationTarget.location("dublin"))
    stop_event = asyncio.Event()
    stop_event.set()

    summary = await pipeline.run_once(stop_event=stop_event)

    assert summary.processed == 0
    assert work_queue.status_of(queued.id) == "queued"
    assert completion_client.prompts == []
