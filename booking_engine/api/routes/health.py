"""Health check endpoints."""

from fastapi import APIRouter, Request

from booking_engine import __version__
from booking_engine.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Basic health check."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "booking-engine",
        "version": __version__,
        "store": "sql" if settings.uses_database else "memory",
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - basic process health."""
    return {"status": "alive"}
