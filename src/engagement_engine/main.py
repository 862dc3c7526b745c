"""FastAPI application entry point for the Engagement Engine.

Lifecycle:
    1. Startup: Initialize logging and the audit log database, build the engine.
    2. Running: Serve the REST API at /api/v1/* on a single Uvicorn process.
    3. Shutdown: Drain pending events, close HTTP clients and the database.

Run with:
    uv run uvicorn engagement_engine.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from engagement_engine import __version__
from engagement_engine.config import get_settings
from engagement_engine.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from engagement_engine.bootstrap import EngagementEngine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        simulated=settings.simulate_external_services,
    )

    # 2. Initialize the audit log database
    from engagement_engine.infrastructure.database.engine import (
        close_db,
        get_session_factory,
        init_db,
    )

    session_factory = None
    if settings.audit_log_enabled:
        try:
            await init_db()
            session_factory = get_session_factory()
        except Exception as exc:
            logger.warning("app.audit_log_unavailable", error=str(exc))

    # 3. Build the engine unless one was handed to create_app
    owns_engine = getattr(app.state, "engine", None) is None
    if owns_engine:
        from engagement_engine.bootstrap import build_engine

        app.state.engine = build_engine(settings, session_factory=session_factory)

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    if owns_engine:
        await app.state.engine.aclose()
    else:
        await app.state.engine.emitter.drain()
    await close_db()
    logger.info("app.stopped")


def create_app(engine: EngagementEngine | None = None) -> FastAPI:
    """Application factory - creates and configures the FastAPI app.

    Passing ``engine`` skips building one at startup; tests use this to
    inject in-memory backends.
    """
    settings = get_settings()

    app = FastAPI(
        title="Engagement Engine",
        description=(
            "Lifecycle, escrow, NDA and assessment gating for student "
            "engagements with corporate partners."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.engine = engine

    # --- Middleware ---
    from engagement_engine.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from engagement_engine.api.routes.assessments import router as assessments_router
    from engagement_engine.api.routes.engagements import router as engagements_router
    from engagement_engine.api.routes.escrow import router as escrow_router
    from engagement_engine.api.routes.health import router as health_router
    from engagement_engine.api.routes.nda import router as nda_router

    app.include_router(health_router)
    app.include_router(engagements_router)
    app.include_router(escrow_router)
    app.include_router(nda_router)
    app.include_router(assessments_router)

    return app


# The app instance used by Uvicorn
app = create_app()
