"""Logging setup: one readable line per record with structured extras as JSON."""

import json
import logging
import sys
from typing import Any

from app.config import settings

# Chatty at INFO: one line per AI proxy request.
_QUIET_LOGGERS = ("httpx", "httpcore")

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONExtrasFormatter(logging.Formatter):
    """Formats `2026-03-01 02:00:00 | INFO     | app.module | Message {"key": "value"}`."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        parts = [
            self.formatTime(record, self.datefmt),
            f"{record.levelname:<8}",
            record.name,
            record.message,
        ]
        line = " | ".join(parts)

        extras = record_extras(record)
        if extras:
            line = f"{line} {json.dumps(extras, default=str, ensure_ascii=False)}"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line = f"{line}\n{record.exc_text}"
        return line


def setup_logging(level: str | None = None) -> None:
    """Attach the formatter to the `app` logger; safe to call more than once.

    Logs go to stderr so `seo-content-worker --once` keeps stdout for its
    JSON summary.
    """
    resolved = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    app_logger = logging.getLogger("app")
    app_logger.setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    app_logger.addHandler(handler)
    app_logger.propagate = False
