"""
Cadence Handlers

Pluggable executors for scheduled events, keyed by handler type.
"""
from .base import ScheduledEventHandler
from .registry import HandlerRegistry, HandlerRegistration
from .blog_post import BlogPostHandler
from .meeting import MeetingHandler
from .manifest import build_handler_registry

__all__ = [
    'ScheduledEventHandler',
    'HandlerRegistry',
    'HandlerRegistration',
    'BlogPostHandler',
    'MeetingHandler',
    'build_handler_registry',
]
