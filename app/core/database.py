"""Async engine and short-lived session contexts for the pipeline repositories."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(
        config.database_url,
        pool_size=config.database_pool_size,
        max_overflow=config.database_max_overflow,
        echo=config.database_echo,
        pool_pre_ping=True,
        # A batch holds no connection during AI calls, but pooled ones sit idle meanwhile.
        pool_recycle=300,
    )


engine = build_engine(settings)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def _has_unflushed_changes(session: AsyncSession) -> bool:
    return bool(session.new or session.dirty or session.deleted)


async def _rollback(session: AsyncSession, exc: BaseException) -> None:
    logger.warning("Rolling back database session", extra={"error": repr(exc)})
    try:
        await session.rollback()
    except Exception as rollback_exc:
        logger.warning(
            "Rollback failed; connection is probably gone",
            extra={"error": repr(rollback_exc)},
        )


@asynccontextmanager
async def get_session_context(
    *,
    commit_on_exit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session scoped to one repository call.

    Writers commit on clean exit. Readers pass `commit_on_exit=False`; leaving
    ORM changes behind in a read-only context is a programming error.
    """
    async with async_session_maker() as session:
        try:
            yield session
            if commit_on_exit:
                await session.commit()
            elif _has_unflushed_changes(session):
                raise RuntimeError("Read-only session context left uncommitted ORM changes")
        except InterfaceError as exc:
            if session.in_transaction() or _has_unflushed_changes(session):
                await _rollback(session, exc)
                raise
            # Work already finished; only the cleanup hit a closed connection.
            logger.debug("Ignoring closed connection during session cleanup")
        except Exception as exc:
            await _rollback(session, exc)
            raise


async def init_db() -> None:
    """Create missing tables; development only, migrations own the schema elsewhere."""
    from app.models import Base

    logger.info("Creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    logger.info("Closing database connections")
    await engine.dispose()
