"""
Meeting Handler

Manually completed events (meetings, appointments). Completing one
just confirms that it took place; nothing runs unattended.
"""
import logging
from uuid import UUID

from .base import ScheduledEventHandler
from ..errors import EventNotFoundError
from ..models.scheduled_event import AttendeeStatus, EventStatus

logger = logging.getLogger("cadence.handlers.meeting")


class MeetingHandler(ScheduledEventHandler):
    type = "meeting"
    name = "Meeting"
    description = "Calendar meeting tracked by its organizer"
    auto_process = False
    icon = "users"
    color = "#10b981"

    def __init__(self, event_storage):
        self.event_storage = event_storage

    async def process_scheduled(self, event_id: UUID) -> bool:
        event = await self.event_storage.get_by_id(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")
        if event.status == EventStatus.CANCELLED:
            logger.warning(f"Meeting {event_id} was cancelled, refusing to complete it")
            return False
        logger.info(f"Meeting '{event.title}' ({event_id}) marked as held")
        return True

    async def get_event_data(self, event_id: UUID) -> dict:
        event = await self.event_storage.get_by_id(event_id)
        if event is None:
            return {}
        attendees = event.attendees or []
        return {
            "location": event.location,
            "attendee_count": len(attendees),
            "accepted_count": sum(1 for a in attendees if a.status == AttendeeStatus.ACCEPTED),
        }
