"""
Cadence Data Models

Domain models for the scheduled event engine.
"""
from .actor import Actor
from .availability import AvailabilityPreferences, WorkingHours
from .blog_post import BlogPost, PostStatus
from .scheduled_event import (
    Attendee,
    AttendeeStatus,
    EventStatus,
    EventType,
    Priority,
    ProcessingStatus,
    RecurrenceFrequency,
    RecurrencePattern,
    ScheduledEvent,
    Visibility,
)

__all__ = [
    'Actor',
    'AvailabilityPreferences',
    'WorkingHours',
    'BlogPost',
    'PostStatus',
    'Attendee',
    'AttendeeStatus',
    'EventStatus',
    'EventType',
    'Priority',
    'ProcessingStatus',
    'RecurrenceFrequency',
    'RecurrencePattern',
    'ScheduledEvent',
    'Visibility',
]
