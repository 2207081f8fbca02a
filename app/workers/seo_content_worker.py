"""SEO content pipeline worker entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
from contextlib import suppress

from app.config import settings
from app.core.database import close_db
from app.core.logging import setup_logging
from app.core.redis import close_redis
from app.services.seo.factory import build_content_pipeline
from app.services.seo.scheduler import RunOptions, ScheduledRunner

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse worker runtime arguments."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run the pipeline a single time and exit instead of following the schedule.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.seo_cron_batch_size,
        help="Maximum queued items to process per run.",
    )
    parser.add_argument(
        "--auto-populate",
        action=argparse.BooleanOptionalAction,
        default=settings.seo_cron_auto_populate,
        help="Populate the queue from seed data before each batch.",
    )
    parser.add_argument(
        "--max-priority",
        type=int,
        default=settings.seo_cron_populate_max_priority,
        help="Highest seed priority number to include when populating.",
    )
    return parser.parse_args()


async def run_worker(*, once: bool, options: RunOptions) -> int:
    """Run one pipeline pass, or the scheduler loop until a shutdown signal."""
    setup_logging()
    pipeline = build_content_pipeline()

    try:
        if once:
            summary = await pipeline.run_once(options)
            print(json.dumps(summary.to_dict(), default=str))
            return 1 if summary.error else 0

        runner = ScheduledRunner(
            pipeline,
            schedule=settings.seo_cron_schedule,
            timezone_name=settings.seo_cron_timezone,
            enabled=True,
            run_on_startup=settings.seo_cron_run_on_startup,
            options=options,
        )
        if not settings.seo_cron_enabled:
            logger.warning("SEO_CRON_ENABLED is false; worker started explicitly, running anyway")

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def _request_stop() -> None:
            if not stop_event.is_set():
                logger.info("SEO content worker received shutdown signal")
                stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError):
                loop.add_signal_handler(sig, _request_stop)

        runner.start_scheduled()
        logger.info(
            "SEO content worker started",
            extra={"next_run_at": runner.next_run_at().isoformat()},
        )
        await stop_event.wait()
        await runner.stop()
        return 0
    finally:
        logger.info("SEO content worker stopping")
        await close_redis()
        await close_db()


def main() -> int:
    """CLI entrypoint."""
    args = parse_args()
    options = RunOptions(
        batch_size=max(1, int(args.batch_size)),
        auto_populate=bool(args.auto_populate),
        populate_max_priority=max(1, int(args.max_priority)),
    )
    try:
        return asyncio.run(run_worker(once=args.once, options=options))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
