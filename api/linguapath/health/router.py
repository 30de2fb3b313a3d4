"""Health check endpoints."""

from fastapi import APIRouter

from linguapath.config import get_settings
from linguapath.core.database import AsyncCassandraConnection
from linguapath.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness probe - reports the backing stores.

    Without Redis the pending-progress queue lives in process memory, so
    Redis is reported but does not make the service unready.
    """
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    return {
        "status": "ready" if database else "degraded",
        "environment": settings.environment,
        "database": database,
        "redis": get_redis() is not None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
