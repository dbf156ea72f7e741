"""
Health check endpoints for the REST API.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.settings import settings
from shared.infrastructure.db import get_db_context
from shared.infrastructure.events import get_event_circuit_breaker, get_redis_client


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """Basic health check without touching dependencies."""
    return {
        "status": "healthy",
        "service": "spa-api",
        "environment": settings.environment,
    }


@router.get("/health/detailed")
def detailed_health_check():
    """
    Verify connectivity to the database and, when events are enabled, Redis.
    Returns 503 if any dependency is down.
    """
    checks = {
        "service": "spa-api",
        "environment": settings.environment,
        "dependencies": {},
    }
    all_healthy = True

    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        checks["dependencies"]["database"] = {"status": "healthy"}
    except Exception as e:
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": str(e)}
        all_healthy = False

    if settings.events_enabled:
        try:
            get_redis_client().ping()
            checks["dependencies"]["redis"] = {"status": "healthy"}
        except Exception as e:
            checks["dependencies"]["redis"] = {"status": "unhealthy", "error": str(e)}
            all_healthy = False
        checks["event_circuit_breaker"] = get_event_circuit_breaker().get_stats()

    checks["status"] = "healthy" if all_healthy else "degraded"
    if not all_healthy:
        return JSONResponse(content=checks, status_code=503)
    return checks
