"""
Handler Manifest

The fixed list of handlers shipped with the engine. The registry is
rebuilt from this list at every process start.
"""
import logging
from typing import Iterable

from .blog_post import BlogPostHandler
from .meeting import MeetingHandler
from .registry import HandlerRegistry
from ..clock import Clock, utc_now

logger = logging.getLogger("cadence.handlers.manifest")


def build_handler_registry(
    event_storage,
    post_storage,
    disabled: Iterable[str] = (),
    clock: Clock = utc_now,
) -> HandlerRegistry:
    """Create a registry holding every manifest handler"""
    disabled = set(disabled)
    registry = HandlerRegistry()

    for handler in (
        BlogPostHandler(event_storage, post_storage, clock=clock),
        MeetingHandler(event_storage),
    ):
        registry.register(handler, enabled=handler.type not in disabled)

    unknown = disabled - {r.handler.type for r in registry.list_all()}
    if unknown:
        logger.warning(f"DISABLED_HANDLERS lists unknown handler types: {sorted(unknown)}")

    return registry
