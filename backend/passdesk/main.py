"""
Pass Desk API - Main Application Entry Point

Admission desk backend for a multi-department fest:
- Race-safe slot allocation with a row lock per pass
- Idempotent attendance marking and one-way pass flags (compare-and-swap)
- Cash payment verification bridged to the payment service, single-flight per pass
- Periodic event catalog sync that never overlaps itself
- Structured logging with request correlation, Prometheus metrics
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from passdesk.api.errors import register_exception_handlers
from passdesk.api.middleware import RequestLoggingMiddleware
from passdesk.api.router import api_router
from passdesk.core.config import Settings, get_settings
from passdesk.core.context import build_context
from passdesk.core.logging import setup_logging, get_logger
from passdesk.core.metrics import metrics_endpoint

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    settings: Settings = app.state.settings
    setup_logging(settings)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    # Tests install their own context before the app starts
    owns_context = getattr(app.state, "context", None) is None
    if owns_context:
        app.state.context = await build_context(settings)
    ctx = app.state.context

    if ctx.redis is not None:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Sync lock is process-local only")

    sync_task: Optional[asyncio.Task] = None
    if settings.SYNC_EVENTS_ENABLED and settings.EVENTS_API_URL:
        sync_task = asyncio.create_task(ctx.event_sync.run_forever(settings.SYNC_EVENTS_INTERVAL_SECONDS))

    yield

    if sync_task is not None:
        ctx.event_sync.stop()
        await sync_task
    if owns_context:
        await ctx.aclose()
    logger.info("application_shutdown")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Admission desk API: passes, slots, attendance and payment verification",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.context = None

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    # Routes
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        ctx = app.state.context
        database = "ok"
        try:
            async with ctx.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("health_database_unreachable", error=str(e))
            database = "unreachable"

        return {
            "status": "healthy" if database == "ok" else "degraded",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": database,
            "redis": "connected" if ctx.redis is not None else "disabled",
            "event_sync": ctx.event_sync.status(),
        }

    @app.get("/metrics", tags=["Monitoring"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
