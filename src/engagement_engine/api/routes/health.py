"""Health check endpoint.

Verifies connectivity to the audit log database, returns structured status.
Used by Docker healthchecks, load balancers, and monitoring systems.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text

from engagement_engine import __version__
from engagement_engine.api.deps import get_app_settings
from engagement_engine.config import Settings
from engagement_engine.logging_config import get_logger
from engagement_engine.schemas.engagement import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Check connectivity to the audit log database."""
    db_status = "disabled"

    if settings.audit_log_enabled:
        try:
            from engagement_engine.infrastructure.database.engine import get_session_factory

            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
            db_status = "healthy"
        except Exception as exc:
            db_status = f"unhealthy: {exc}"
            logger.error("health.db_check_failed", error=str(exc))

    overall = "ok" if db_status in ("healthy", "disabled") else "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        simulated=settings.simulate_external_services,
    )
