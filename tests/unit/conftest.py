"""In-memory collaborators for SEO content pipeline unit tests."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from app.services.seo.contracts import (
    CompletionResult,
    GenerationLogRecord,
    PageRecord,
    QueueRecord,
    SeedRecord,
)
from app.services.seo.generation_log import GenerationLogRecorder
from app.services.seo.orchestrator import GenerationOrchestrator
from app.services.seo.populator import QueuePopulator
from app.services.seo.publisher import ContentPublisher
from app.services.seo.queue_state import build_transition_payload
from app.services.seo.targets import (
    CONTENT_TYPES,
    QUEUE_OUTSTANDING_STATUSES,
    GenerationTarget,
)

_BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeSeedStore:
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], SeedRecord] = {}
        self.fail_reads = False
        self.list_calls = 0

    def add(
        self,
        dimension: str,
        slug: str,
        *,
        priority: int = 1,
        name: str | None = None,
        active: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> SeedRecord:
        record = SeedRecord(
            dimension=dimension,
            slug=slug,
            name=name or slug.replace("-", " ").title(),
            priority=priority,
            is_active=active,
            metadata=metadata or {},
        )
        self.items[(dimension, slug)] = record
        return record

    async def list_active(self, dimension: str, max_priority: int | None = None) -> list[SeedRecord]:
        self.list_calls += 1
        if self.fail_reads:
            raise RuntimeError("seed store unavailable")
        rows = [
            item
            for (item_dimension, _), item in self.items.items()
            if item_dimension == dimension
            and item.is_active
            and (max_priority is None or item.priority <= max_priority)
        ]
        return sorted(rows, key=lambda item: (item.priority, item.name))

    async def get(self, dimension: str, slug: str) -> SeedRecord | None:
        return self.items.get((dimension, slug))


class FakeWorkQueue:
    """Queue rows kept as dicts; transitions go through the real payload builder."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.history: list[tuple[str, str, str]] = []
        self.lost_claims: set[str] = set()
        # Target status -> exception to raise, or None to report the update as not applied.
        self.failing_transitions: dict[str, Exception | None] = {}
        self.enqueue_calls = 0
        self._ids = itertools.count(1)

    def _record(self, row: dict[str, Any]) -> QueueRecord:
        return QueueRecord(
            id=row["id"],
            content_type=row["content_type"],
            location_slug=row["location_slug"],
            industry_slug=row["industry_slug"],
            status=row["status"],
            priority=row["priority"],
            attempts=row["attempts"],
            published_ref=row.get("published_ref"),
            last_error=row.get("last_error"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )

    def add(self, target: GenerationTarget, *, priority: int = 1, status: str = "queued") -> QueueRecord:
        index = next(self._ids)
        row = {
            "id": f"q{index:04d}",
            "content_type": target.content_type,
            "location_slug": target.location_slug,
            "industry_slug": target.industry_slug,
            "target_key": target.key,
            "status": status,
            "priority": priority,
            "attempts": 0,
            "created_at": _BASE_TIME + timedelta(seconds=index),
        }
        self.rows[row["id"]] = row
        return self._record(row)

    def status_of(self, item_id: str) -> str:
        return self.rows[item_id]["status"]

    def items_for(self, key: str) -> list[dict[str, Any]]:
        return [row for row in self.rows.values() if row["target_key"] == key]

    def queued_keys(self) -> list[str]:
        return [row["target_key"] for row in self.rows.values() if row["status"] == "queued"]

    async def outstanding_target_keys(self, content_types: Iterable[str]) -> set[str]:
        types = set(content_types)
        return {
            row["target_key"]
            for row in self.rows.values()
            if row["content_type"] in types and row["status"] in QUEUE_OUTSTANDING_STATUSES
        }

    async def latest_failed(self, content_types: Iterable[str]) -> list[QueueRecord]:
        types = set(content_types)
        latest: dict[str, dict[str, Any]] = {}
        for row in self.rows.values():
            if row["content_type"] not in types:
                continue
            current = latest.get(row["target_key"])
            if current is None or (row["created_at"], row["id"]) > (current["created_at"], current["id"]):
                latest[row["target_key"]] = row
        return [self._record(row) for row in latest.values() if row["status"] == "failed"]

    async def enqueue(self, entries: Sequence[tuple[GenerationTarget, int]]) -> int:
        self.enqueue_calls += 1
        inserted = 0
        for target, priority in entries:
            outstanding = any(
                row["status"] in QUEUE_OUTSTANDING_STATUSES for row in self.items_for(target.key)
            )
            if outstanding:
                continue
            self.add(target, priority=priority)
            inserted += 1
        return inserted

    async def next_queued(self, limit: int) -> list[QueueRecord]:
        queued = [row for row in self.rows.values() if row["status"] == "queued"]
        queued.sort(key=lambda row: (row["priority"], row["created_at"], row["id"]))
        return [self._record(row) for row in queued[:limit]]

    async def transition(
        self,
        item_id: str,
        *,
        expected: str,
        target: str,
        published_ref: str | None = None,
        error_message: str | None = None,
    ) -> bool:
        row = self.rows[item_id]
        if target == "processing" and item_id in self.lost_claims:
            row["status"] = "processing"
            return False
        if target in self.failing_transitions:
            error = self.failing_transitions[target]
            if error is not None:
                raise error
            return False
        if row["status"] != expected:
            return False
        payload = build_transition_payload(
            queue_item_id=item_id,
            current=expected,
            target=target,
            attempts=row["attempts"],
            published_ref=published_ref,
            error_message=error_message,
        )
        row.update(payload)
        self.history.append((item_id, expected, target))
        return True


class FakePageStore:
    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        self.pages: dict[str, dict[str, Any]] = {}
        self.upsert_calls = 0
        self.fail_upsert = False
        self._ids = itertools.count(1)

    def seed_published(self, slug: str) -> None:
        self.pages[slug] = {"id": f"{self.content_type}-page-{slug}", "status": "published"}

    async def upsert(self, slug: str, fields: dict[str, Any]) -> PageRecord:
        self.upsert_calls += 1
        if self.fail_upsert:
            raise RuntimeError("content store write failed")
        existing = self.pages.get(slug)
        page_id = existing["id"] if existing else f"{self.content_type}-page-{next(self._ids)}"
        self.pages[slug] = {**dict(fields), "id": page_id}
        return PageRecord(
            id=page_id,
            content_type=self.content_type,  # type: ignore[arg-type]
            slug=slug,
            status=fields.get("status", "draft"),
            published_at=fields.get("published_at"),
        )

    async def exists_published(self, slug: str) -> bool:
        page = self.pages.get(slug)
        return page is not None and page.get("status") == "published"

    async def published_slugs(self, slugs: Iterable[str]) -> set[str]:
        return {slug for slug in slugs if await self.exists_published(slug)}

    async def count_published(self) -> int:
        return sum(1 for page in self.pages.values() if page.get("status") == "published")

    async def list_published(
        self,
        *,
        location_slug: str | None = None,
        industry_slug: str | None = None,
    ) -> list[PageRecord]:
        return [
            PageRecord(
                id=page["id"],
                content_type=self.content_type,  # type: ignore[arg-type]
                slug=slug,
                status=page["status"],
                published_at=page.get("published_at"),
            )
            for slug, page in sorted(self.pages.items())
            if page.get("status") == "published"
            and (location_slug is None or page.get("location_slug") == location_slug)
            and (industry_slug is None or page.get("industry_slug") == industry_slug)
        ]

    async def unpublish(self, slug: str) -> bool:
        if not await self.exists_published(slug):
            return False
        self.pages[slug]["status"] = "draft"
        return True


class FakeLogSink:
    def __init__(self) -> None:
        self.entries: list[GenerationLogRecord] = []
        self.fail = False

    async def append(self, entry: GenerationLogRecord) -> None:
        if self.fail:
            raise RuntimeError("log table unavailable")
        self.entries.append(entry)


class FakeCompletionClient:
    """Returns scripted outputs in order; an Exception output is raised."""

    def __init__(self) -> None:
        self.outputs: list[Any] = []
        self.prompts: list[str] = []

    async def complete(self, prompt: str, *, model: str | None = None) -> CompletionResult:
        self.prompts.append(prompt)
        if not self.outputs:
            raise AssertionError("unexpected AI call")
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return CompletionResult(
            content=output,
            duration_ms=42,
            prompt_length=len(prompt),
            model=model or "haiku",
        )


def _benefits(count: int) -> list[dict[str, str]]:
    return [{"title": f"Benefit {index}", "description": "Helps."} for index in range(count)]


def make_content(content_type: str, **overrides: Any) -> dict[str, Any]:
    content: dict[str, Any] = {
        "headline": "Never miss another customer call",
        "subheadline": "Answering that works around the clock",
        "meta_title": "Call answering that never sleeps",
        "meta_description": "Local call answering for busy businesses.",
    }
    if content_type == "location":
        content.update(
            {
                "local_description": "A busy local market with many small firms.",
                "local_benefits": _benefits(3),
            }
        )
    elif content_type == "industry":
        content.update(
            {
                "problem_statement": "Calls arrive while hands are full.",
                "solution_description": "Every call is answered and booked.",
                "benefits": _benefits(4),
            }
        )
    else:
        content.update(
            {
                "intro": "Local practices lose bookings to voicemail.",
                "why_need": "Patients call the next practice on the list.",
                "benefits": _benefits(3),
            }
        )
    content.update(overrides)
    return content


@pytest.fixture
def content_factory() -> Callable[..., dict[str, Any]]:
    return make_content


@pytest.fixture
def seed_store() -> FakeSeedStore:
    return FakeSeedStore()


@pytest.fixture
def work_queue() -> FakeWorkQueue:
    return FakeWorkQueue()


@pytest.fixture
def page_stores() -> dict[str, FakePageStore]:
    return {content_type: FakePageStore(content_type) for content_type in CONTENT_TYPES}


@pytest.fixture
def publisher(page_stores: dict[str, FakePageStore]) -> ContentPublisher:
    return ContentPublisher(page_stores)


@pytest.fixture
def log_sink() -> FakeLogSink:
    return FakeLogSink()


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def populator(
    seed_store: FakeSeedStore,
    work_queue: FakeWorkQueue,
    publisher: ContentPublisher,
) -> QueuePopulator:
    return QueuePopulator(seeds=seed_store, queue=work_queue, publisher=publisher)


@pytest.fixture
def orchestrator(
    seed_store: FakeSeedStore,
    work_queue: FakeWorkQueue,
    publisher: ContentPublisher,
    completion_client: FakeCompletionClient,
    log_sink: FakeLogSink,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        queue=work_queue,
        seeds=seed_store,
        publisher=publisher,
        completion_client=completion_client,
        log_recorder=GenerationLogRecorder(log_sink),
    )
