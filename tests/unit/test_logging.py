"""Tests for the log line formatter."""

import json
import logging
import sys

from app.core.logging import JSONExtrasFormatter, record_extras


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("app.services.seo.orchestrator", logging.INFO, __file__, 10, "Generated %s", ("dublin",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_record_extras_only_returns_extra_fields() -> None:
    record = _record(queue_item_id="q-1", duration_ms=42, _private=True)

    assert record_extras(record) == {"queue_item_id": "q-1", "duration_ms": 42}


def test_formatter_appends_extras_as_json() -> None:
    line = JSONExtrasFormatter(datefmt="%Y-%m-%d").format(_record(target_key="location:dublin"))

    prefix, _, extras = line.partition(" {")
    assert prefix.split(" | ")[1:] == ["INFO    ", "app.services.seo.orchestrator", "Generated dublin"]
    assert json.loads("{" + extras) == {"target_key": "location:dublin"}


def test_formatter_without_extras_has_no_json_suffix() -> None:
    line = JSONExtrasFormatter().format(_record())

    assert line.endswith("| Generated dublin")


def test_formatter_includes_traceback() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("app", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    line = JSONExtrasFormatter().format(record)

    assert "failed\nTraceback" in line
    assert "RuntimeError: boom" in line
