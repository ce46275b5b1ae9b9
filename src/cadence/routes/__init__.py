"""
Cadence API Routes

FastAPI route handlers for the scheduled event engine.
"""
from .health import router as health_router
from .events import router as events_router
from .availability import router as availability_router
from .handlers import router as handlers_router
from .processing import router as processing_router

__all__ = [
    'health_router',
    'events_router',
    'availability_router',
    'handlers_router',
    'processing_router',
]
