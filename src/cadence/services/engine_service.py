"""
Engine Service

Main composite service that manages all storages and services.
Singleton pattern - one instance per process.
"""
import logging
from typing import Optional

from ..config import Config
from ..handlers.manifest import build_handler_registry
from ..storage.scheduled_event_storage import ScheduledEventStorage
from ..storage.availability_storage import AvailabilityStorage
from ..storage.blog_post_storage import BlogPostStorage
from .scheduling_service import SchedulingService
from .availability_service import AvailabilityService
from .batch_processor import BatchProcessor
from .scheduler_service import SchedulerService

logger = logging.getLogger("cadence.services.engine")

# Singleton instance
_engine_service: Optional["EngineService"] = None


class EngineService:
    """
    Composite engine service.

    Manages:
    - All storage connections (PostgreSQL)
    - The handler registry
    - Business logic services and the background scheduler
    """

    def __init__(self):
        """Initialize engine service with all storages"""
        self.postgres_dsn = Config.get_postgres_dsn()

        # Initialize storages
        self.event_storage = ScheduledEventStorage(self.postgres_dsn)
        self.availability_storage = AvailabilityStorage(self.postgres_dsn)
        self.post_storage = BlogPostStorage(self.postgres_dsn)

        # Handler registry is rebuilt from the manifest on every start
        self.handler_registry = build_handler_registry(
            self.event_storage,
            self.post_storage,
            disabled=Config.DISABLED_HANDLERS,
        )

        # Initialize services (after storages)
        self.scheduling_service = SchedulingService(
            self.event_storage,
            self.handler_registry,
            max_retry_attempts=Config.MAX_RETRY_ATTEMPTS,
            upcoming_window_days=Config.UPCOMING_WINDOW_DAYS,
        )
        self.availability_service = AvailabilityService(
            self.event_storage,
            self.availability_storage,
        )
        self.batch_processor = BatchProcessor(
            self.event_storage,
            self.handler_registry,
            max_retry_attempts=Config.MAX_RETRY_ATTEMPTS,
            concurrency=Config.BATCH_CONCURRENCY,
        )

        # Initialize scheduler (started in initialize(), stopped in close())
        self.scheduler_service = SchedulerService(
            batch_processor=self.batch_processor,
            poll_interval=Config.SCHEDULER_POLL_INTERVAL,
            cron_expression=Config.SCHEDULER_CRON,
            enabled=Config.SCHEDULER_ENABLED,
        )

        self._initialized = False
        logger.info(f"EngineService created ({len(self.handler_registry)} handlers)")

    async def initialize(self):
        """Initialize all storages"""
        if self._initialized:
            logger.info("EngineService already initialized")
            return

        logger.info("Initializing EngineService...")

        await self.event_storage.init()
        await self.availability_storage.init()
        await self.post_storage.init()

        # Start background scheduler
        await self.scheduler_service.start()

        self._initialized = True
        logger.info("EngineService initialized successfully")

    async def close(self):
        """Stop the scheduler and close all connections"""
        logger.info("Closing EngineService...")

        await self.scheduler_service.stop()
        await self.event_storage.close()
        await self.availability_storage.close()
        await self.post_storage.close()

        self._initialized = False
        logger.info("EngineService closed")

    @property
    def is_initialized(self) -> bool:
        """Check if service is initialized"""
        return self._initialized


def get_engine_service() -> EngineService:
    """Get or create engine service singleton"""
    global _engine_service
    if _engine_service is None:
        _engine_service = EngineService()
    return _engine_service


async def init_engine_service() -> EngineService:
    """Initialize and return engine service"""
    service = get_engine_service()
    await service.initialize()
    return service
