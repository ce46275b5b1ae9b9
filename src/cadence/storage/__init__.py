"""
Cadence Storage Layer

PostgreSQL storage implementations for Cadence entities.
"""
from .base import BaseStorage
from .scheduled_event_storage import ScheduledEventStorage
from .availability_storage import AvailabilityStorage
from .blog_post_storage import BlogPostStorage

__all__ = [
    'BaseStorage',
    'ScheduledEventStorage',
    'AvailabilityStorage',
    'BlogPostStorage',
]
