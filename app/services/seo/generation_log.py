"""Best-effort recording of AI generation attempts."""

from __future__ import annotations

import logging
from dataclasses import replace

from app.services.seo.contracts import GenerationLogRecord, GenerationLogSink
from app.services.seo.queue_state import truncate_error

logger = logging.getLogger(__name__)


class GenerationLogRecorder:
    """Appends log entries without ever failing the caller."""

    def __init__(self, sink: GenerationLogSink) -> None:
        self.sink = sink

    async def record(self, entry: GenerationLogRecord) -> bool:
        """Append `entry`; return False (and warn) when the sink fails."""
        if entry.error_detail:
            entry = replace(entry, error_detail=truncate_error(entry.error_detail))
        try:
            await self.sink.append(entry)
        except Exception as exc:
            logger.warning(
                "Failed to write generation log entry",
                extra={
                    "queue_item_id": entry.queue_item_id,
                    "content_type": entry.content_type,
                    "target_slug": entry.target_slug,
                    "log_status": entry.status,
                    "error": str(exc),
                },
            )
            return False
        return True
