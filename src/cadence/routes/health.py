"""
Health Check Routes

Endpoints for service health monitoring.
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from ..services.engine_service import get_engine_service

router = APIRouter(prefix="/health", tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
@router.get("/")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "cadence",
        "timestamp": _now(),
    }


@router.get("/ready")
async def readiness_check():
    """Ready once storages are initialized"""
    engine = get_engine_service()
    return {
        "ready": engine.is_initialized,
        "scheduler_running": engine.scheduler_service.is_running,
        "timestamp": _now(),
    }


@router.get("/live")
async def liveness_check():
    """Liveness check - indicates if service is running"""
    return {
        "alive": True,
        "timestamp": _now(),
    }
