"""
Cadence Application

FastAPI application for the scheduled event engine.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Config
from .services.engine_service import get_engine_service, init_engine_service
from .routes import (
    health_router,
    events_router,
    availability_router,
    handlers_router,
    processing_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("cadence.app")

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("asyncpg").setLevel(logging.WARNING)

# Create FastAPI application
app = FastAPI(
    title="Cadence API",
    description="Scheduled event engine with pluggable handlers",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("Starting Cadence...")

    try:
        await init_engine_service()
        logger.info("Cadence started successfully")
    except Exception as e:
        logger.error(f"Failed to start Cadence: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down Cadence...")

    try:
        engine = get_engine_service()
        await engine.close()
        logger.info("Cadence shutdown complete")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Include routers
app.include_router(health_router, prefix="/api/v1", tags=["health"])
app.include_router(events_router, prefix="/api/v1", tags=["scheduling"])
app.include_router(availability_router, prefix="/api/v1", tags=["availability"])
app.include_router(handlers_router, prefix="/api/v1", tags=["handlers"])
app.include_router(processing_router, prefix="/api/v1", tags=["processing"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Cadence",
        "version": __version__,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=Config.API_HOST,
        port=Config.API_PORT
    )
