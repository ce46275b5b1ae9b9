"""
Cadence Services

Business logic services for the scheduled event engine.
"""
from .engine_service import EngineService
from .scheduling_service import SchedulingService
from .availability_service import AvailabilityService
from .batch_processor import BatchProcessor, BatchResult
from .scheduler_service import SchedulerService

__all__ = [
    'EngineService',
    'SchedulingService',
    'AvailabilityService',
    'BatchProcessor',
    'BatchResult',
    'SchedulerService',
]
