"""FastAPI app for the SEO content pipeline operator API and scheduler."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import ContentPipelineError, InvalidTargetError
from app.core.logging import setup_logging
from app.core.redis import close_redis
from app.services.seo.factory import get_scheduled_runner
from app.services.seo.scheduler import RUN_GUARD

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the cron runner (when enabled) and release connections on shutdown."""
    setup_logging()
    logger.info(
        "Starting SEO content pipeline",
        extra={
            "environment": settings.environment,
            "version": settings.app_version,
            "ai_model": settings.ai_model,
            "ai_configured": settings.ai_configured,
            "cron_enabled": settings.seo_cron_enabled,
        },
    )
    if settings.environment == "development":
        await init_db()

    runner = get_scheduled_runner()
    runner.start_scheduled()
    try:
        yield
    finally:
        logger.info("Shutting down SEO content pipeline")
        await runner.stop()
        await close_redis()
        await close_db()


async def _pipeline_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ContentPipelineError)
    status_code = (
        status.HTTP_400_BAD_REQUEST
        if isinstance(exc, InvalidTargetError)
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.warning(
        "Pipeline error returned to client",
        extra={"path": request.url.path, "error_type": type(exc).__name__, "error": exc.message},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message, **exc.details})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Queue-backed generation of location, industry and combo SEO landing "
            "pages with idempotent publishing"
        ),
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.add_exception_handler(ContentPipelineError, _pipeline_error_handler)
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health", summary="Health check")
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "version": settings.app_version,
            "run_in_progress": RUN_GUARD.is_running,
        }

    @app.get(
        "/health/scheduler",
        summary="Scheduler health",
        description="Report whether scheduled runs are enabled, looping, and when the next fires.",
    )
    async def scheduler_health_check() -> dict[str, Any]:
        runner = get_scheduled_runner()
        return {
            "enabled": runner.enabled,
            "running": runner.running,
            "schedule": runner.schedule.expression,
            "timezone": str(runner.timezone),
            "next_run_at": runner.next_run_at().isoformat() if runner.enabled else None,
            "run_in_progress": RUN_GUARD.is_running,
        }

    return app


app = create_app()
