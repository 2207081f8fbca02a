"""Unit tests for transient database retry helpers."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.db_retry import is_transient_connection_error, run_with_transient_db_retry


def _dropped_connection() -> OperationalError:
    return OperationalError("UPDATE content_generation_queue", {}, Exception("connection is closed"))


def test_transient_error_detection() -> None:
    assert is_transient_connection_error(_dropped_connection())
    assert is_transient_connection_error(RuntimeError("Connection reset by peer"))
    assert not is_transient_connection_error(ValueError("bad slug"))
    assert not is_transient_connection_error(
        IntegrityError("INSERT", {}, Exception("duplicate key value"))
    )


@pytest.mark.asyncio
async def test_retries_until_success() -> None:
    calls = 0

    async def operation() -> bool:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise _dropped_connection()
        return True

    result = await run_with_transient_db_retry(
        operation,
        operation_name="queue_transition",
        base_delay_seconds=0,
    )

    assert result is True
    assert calls == 3


@pytest.mark.asyncio
async def test_gives_up_after_attempts() -> None:
    calls = 0

    async def operation() -> None:
        nonlocal calls
        calls += 1
        raise _dropped_connection()

    with pytest.raises(OperationalError):
        await run_with_transient_db_retry(
            operation,
            operation_name="queue_transition",
            attempts=2,
            base_delay_seconds=0,
        )
    assert calls == 2


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried() -> None:
    calls = 0

    async def operation() -> None:
        nonlocal calls
        calls += 1
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await run_with_transient_db_retry(operation, operation_name="queue_transition")
    assert calls == 1


@pytest.mark.asyncio
async def test_attempts_must_be_positive() -> None:
    async def operation() -> None:
        return None

    with pytest.raises(ValueError, match="attempts"):
        await run_with_transient_db_retry(operation, operation_name="noop", attempts=0)
