"""
Event Transitions

Processing-state transitions shared by manual completion and the batch
processor, plus the builder for spawned recurrence children.
"""
import secrets
from datetime import datetime

from ..models.scheduled_event import Attendee, EventStatus, ProcessingStatus, ScheduledEvent

PUBLIC_ID_PREFIX = "evt_"
_PUBLIC_ID_ATTEMPTS = 5


async def allocate_public_id(event_storage) -> str:
    """Random public id not yet used by any event"""
    for _ in range(_PUBLIC_ID_ATTEMPTS):
        candidate = PUBLIC_ID_PREFIX + secrets.token_urlsafe(12)
        if not await event_storage.public_id_exists(candidate):
            return candidate
    raise RuntimeError("Could not allocate a unique public id")


def mark_processed(event: ScheduledEvent, now: datetime, actor_id=None):
    """Successful handler run: both state machines end in completed"""
    event.processing_status = ProcessingStatus.COMPLETED
    event.status = EventStatus.COMPLETED
    event.processed_at = now
    event.processing_error = None
    event.updated_at = now
    if actor_id is not None:
        event.updated_by = actor_id


def record_failure(
    event: ScheduledEvent,
    error: BaseException,
    now: datetime,
    max_attempts: int,
    retryable: bool = True,
    actor_id=None,
):
    """
    Count a failed attempt.

    Retryable failures go back to pending while the count stays below
    max_attempts; otherwise the event is failed for good.
    """
    event.processing_retry_count = (event.processing_retry_count or 0) + 1
    can_retry = retryable and event.processing_retry_count < max_attempts
    event.processing_status = ProcessingStatus.PENDING if can_retry else ProcessingStatus.FAILED
    event.processing_error = str(error) or type(error).__name__
    event.updated_at = now
    if actor_id is not None:
        event.updated_by = actor_id


def build_next_occurrence(
    parent: ScheduledEvent,
    next_start: datetime,
    public_id: str,
    now: datetime,
) -> ScheduledEvent:
    """
    Fresh pending event for the next occurrence of `parent`.

    Only descriptive fields are copied; ids, processing results, retry
    counts, cancellation and deletion stamps start clean. RSVPs reset to
    pending.
    """
    attendees = None
    if parent.attendees is not None:
        attendees = [
            Attendee(user_id=a.user_id, user_name=a.user_name, email=a.email)
            for a in parent.attendees
        ]

    reminders = None
    if parent.reminders is not None:
        reminders = [{**r, "sent": False, "sent_at": None} for r in parent.reminders]

    return ScheduledEvent(
        public_id=public_id,
        title=parent.title,
        description=parent.description,
        type=parent.type,
        entity_type=parent.entity_type,
        entity_id=parent.entity_id,
        handler_type=parent.handler_type,
        handler_data=parent.handler_data,
        auto_process=parent.auto_process,
        processing_status=ProcessingStatus.PENDING,
        start_time=next_start,
        end_time=next_start + parent.duration,
        timezone=parent.timezone,
        all_day=parent.all_day,
        is_recurring=True,
        recurrence_pattern=parent.recurrence_pattern,
        parent_event_id=parent.id,
        occurrence_number=parent.occurrence_number + 1,
        organizer_id=parent.organizer_id,
        attendees=attendees,
        status=EventStatus.SCHEDULED,
        location=parent.location,
        visibility=parent.visibility,
        priority=parent.priority,
        reminders=reminders,
        color=parent.color,
        tags=list(parent.tags),
        metadata=dict(parent.metadata or {}),
        created_by=parent.created_by,
        created_at=now,
    )
