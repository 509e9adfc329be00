"""Health check endpoints."""

from fastapi import APIRouter, Request

from academy.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - reports whether the graph store is wired in."""
    settings = get_settings()
    connected = getattr(request.app.state, "enrolment_service", None) is not None
    return {
        "status": "ready" if connected else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "graph_backend": settings.graph_backend,
        "store_connected": connected,
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
