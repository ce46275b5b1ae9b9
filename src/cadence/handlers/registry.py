"""
Handler Registry

Maps handler type -> handler instance + enabled flag.
Built once at startup from the handler manifest and injected into the
services that need it.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .base import ScheduledEventHandler
from ..errors import HandlerNotFoundError

logger = logging.getLogger("cadence.handlers.registry")


@dataclass
class HandlerRegistration:
    handler: ScheduledEventHandler
    enabled: bool = True


class HandlerRegistry:
    """
    Registry of scheduled-event handlers.

    Usage:
        registry = HandlerRegistry()
        registry.register(BlogPostHandler(...))
        handler = registry.get("blog_post")

    Reads and writes go through a lock since set_enabled may run while
    the batch processor is resolving handlers.
    """

    def __init__(self):
        self._handlers: Dict[str, HandlerRegistration] = {}
        self._lock = threading.RLock()

    def register(self, handler: ScheduledEventHandler, enabled: bool = True):
        """Register a handler by its type, replacing any previous one"""
        if not handler.type:
            raise ValueError(f"{type(handler).__name__} has no handler type")
        with self._lock:
            replaced = handler.type in self._handlers
            self._handlers[handler.type] = HandlerRegistration(handler=handler, enabled=enabled)
        logger.info(
            f"{'Replaced' if replaced else 'Registered'} handler: {handler.type} "
            f"(enabled={enabled}, auto_process={handler.auto_process})"
        )

    def get(self, handler_type: str) -> Optional[ScheduledEventHandler]:
        """Get an enabled handler. None when unknown or disabled."""
        with self._lock:
            registration = self._handlers.get(handler_type)
        if registration is None or not registration.enabled:
            return None
        return registration.handler

    def is_registered(self, handler_type: str) -> bool:
        with self._lock:
            return handler_type in self._handlers

    def is_enabled(self, handler_type: str) -> bool:
        with self._lock:
            registration = self._handlers.get(handler_type)
        return bool(registration and registration.enabled)

    def set_enabled(self, handler_type: str, enabled: bool):
        """Toggle a handler at runtime. Not persisted across restarts."""
        with self._lock:
            registration = self._handlers.get(handler_type)
            if registration is None:
                raise HandlerNotFoundError(handler_type)
            registration.enabled = enabled
        logger.info(f"Handler {handler_type} {'enabled' if enabled else 'disabled'}")

    def list_enabled(self) -> List[ScheduledEventHandler]:
        with self._lock:
            return [r.handler for r in self._handlers.values() if r.enabled]

    def list_auto_processable(self) -> List[ScheduledEventHandler]:
        return [h for h in self.list_enabled() if h.auto_process]

    def list_all(self) -> List[HandlerRegistration]:
        with self._lock:
            return [HandlerRegistration(r.handler, r.enabled) for r in self._handlers.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)
