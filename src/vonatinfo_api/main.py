"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vonatinfo_api.config import get_settings
from vonatinfo_api.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from vonatinfo_api.routers.admin import router as admin_router
from vonatinfo_api.routers.roster import router as roster_router
from vonatinfo_api.services.feeds.worker import get_workers, reset_workers
from vonatinfo_api.services.roster.pipeline import get_pipeline, reset_pipeline

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    logger.info("Starting Vonatinfo API")

    settings = get_settings()
    if settings.feeds_auto_start:
        for worker in get_workers().values():
            await worker.start()

    yield

    for worker in get_workers().values():
        if worker.is_running:
            await worker.stop()
    reset_workers()
    reset_pipeline()

    logger.info("Shutting down Vonatinfo API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Live train positions for Hungary, reconciled from the MÁV and ÖBB feeds"
        ),
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    # The map UI is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        clear_request_context()
        return response

    app.include_router(roster_router)
    app.include_router(admin_router)

    @app.get("/health", tags=["meta"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint returning application status."""
        settings = get_settings()
        snapshot = get_pipeline().snapshot

        feeds: dict[str, Any] = {}
        issues: list[str] = []
        for source, worker in get_workers().items():
            status = await worker.get_status()
            feeds[source] = {
                "workerRunning": status["running"],
                "pollCount": status["poll_count"],
                "lastPollAt": status["last_poll_at"],
                "lastStatus": status["last_status"],
            }
            if settings.feeds_auto_start and not status["running"]:
                issues.append(f"{source} worker is not running")

        return {
            "service": settings.app_name,
            "status": "degraded" if issues else "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "feeds": feeds,
                "roster": {
                    "size": len(snapshot),
                    "publishedAt": snapshot.published_at or None,
                },
            },
            "issues": issues,
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    return app


app = create_app()
