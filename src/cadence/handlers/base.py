"""
Base Handler

Contract every scheduled-event handler implements. One handler per
subject type (blog posts, meetings, ...), keyed by `type`.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID


class ScheduledEventHandler(ABC):
    """
    Pluggable executor for one kind of scheduled event.

    Lifecycle used by the batch processor:
        before_process -> process_scheduled -> after_process
    on_process_error runs when before_process or process_scheduled fails.

    Only process_scheduled is required; the hooks default to no-ops.
    """

    type: str = ""
    name: str = ""
    description: str = ""
    auto_process: bool = False
    icon: Optional[str] = None
    color: Optional[str] = None

    @abstractmethod
    async def process_scheduled(self, event_id: UUID) -> bool:
        """
        Perform the side effect for a due event.

        Implementations must re-read the subject entity rather than trust
        fields copied onto the event. Returning False counts as a failure.
        """
        ...

    async def validate_handler_data(self, data: Any) -> bool:
        """Sanity-check handler_data at creation time"""
        return True

    async def before_process(self, event_id: UUID) -> None:
        """Runs right before process_scheduled. Raising aborts this event only."""

    async def after_process(self, event_id: UUID) -> None:
        """Runs after a successful process_scheduled"""

    async def on_process_error(self, event_id: UUID, error: Exception) -> None:
        """Runs after before_process or process_scheduled failed"""

    async def get_event_data(self, event_id: UUID) -> dict:
        """Read-only presentation projection of the subject. Must not mutate."""
        return {}

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "auto_process": self.auto_process,
            "icon": self.icon,
            "color": self.color,
        }
