"""
Scheduling Service

Business logic for scheduled events: creation, patching, cancellation,
manual completion, rescheduling, RSVP and soft deletion, plus the read
queries built on the event storage indexes.
"""
import logging
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Iterable, List, Optional, Type
from uuid import UUID

from ..clock import Clock, as_utc, utc_now
from ..errors import (
    EventNotFoundError,
    HandlerExecutionError,
    HandlerNotFoundError,
    NotAttendeeError,
    ValidationError,
)
from ..handlers.registry import HandlerRegistry
from ..models.actor import Actor
from ..models.scheduled_event import (
    Attendee,
    AttendeeStatus,
    EventStatus,
    EventType,
    Priority,
    ProcessingStatus,
    RecurrencePattern,
    ScheduledEvent,
    Visibility,
)
from .availability_service import resolve_zone
from .transitions import allocate_public_id, mark_processed, record_failure

logger = logging.getLogger("cadence.services.scheduling")

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 5000

# Fields update_event accepts. Identity, subject link, handler type,
# organizer and recurrence are fixed at creation.
UPDATABLE_FIELDS = frozenset({
    "title", "description", "type", "handler_data", "processing_status",
    "start_time", "end_time", "timezone", "all_day", "attendees", "location",
    "visibility", "priority", "status", "reminders", "color", "tags", "metadata",
})

# Patch fields backed by NOT NULL columns
NON_NULLABLE_FIELDS = frozenset({
    "type", "processing_status", "start_time", "end_time", "all_day",
    "visibility", "priority", "status",
})

RSVP_RESPONSES = (AttendeeStatus.ACCEPTED, AttendeeStatus.DECLINED, AttendeeStatus.TENTATIVE)


def _coerce_enum(enum_cls: Type[Enum], value: Any, field_name: str, errors: List[str]):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        errors.append(f"Invalid {field_name} '{value}' (expected one of: {allowed})")
        return None


def _coerce_pattern(value: Any, errors: List[str]) -> Optional[RecurrencePattern]:
    if value is None:
        return None
    try:
        pattern = value if isinstance(value, RecurrencePattern) else RecurrencePattern.from_dict(value)
        problems = []
        if pattern.interval < 1:
            problems.append("Recurrence interval must be at least 1")
        if pattern.max_occurrences is not None and pattern.max_occurrences < 1:
            problems.append("max_occurrences must be at least 1")
        if pattern.day_of_month is not None and not 1 <= pattern.day_of_month <= 31:
            problems.append("day_of_month must be between 1 and 31")
        if pattern.month_of_year is not None and not 1 <= pattern.month_of_year <= 12:
            problems.append("month_of_year must be between 1 and 12")
        if pattern.days_of_week and any(not 0 <= d <= 6 for d in pattern.days_of_week):
            problems.append("days_of_week entries must be between 0 and 6")
        if pattern.end_date is not None:
            pattern.end_date = as_utc(pattern.end_date)
    except (KeyError, TypeError, ValueError) as e:
        errors.append(f"Invalid recurrence pattern: {e}")
        return None

    errors.extend(problems)
    return pattern


def _coerce_attendees(value: Any, errors: List[str]) -> Optional[List[Attendee]]:
    if value is None:
        return None
    try:
        return [a if isinstance(a, Attendee) else Attendee.from_dict(a) for a in value]
    except KeyError as e:
        errors.append(f"Attendee is missing {e}")
    except (TypeError, ValueError) as e:
        errors.append(f"Invalid attendee: {e}")
    return None


def _normalize_attendees(attendees: Optional[List[Attendee]]) -> Optional[List[Attendee]]:
    """Fresh invitations: every attendee starts pending and unsent"""
    if attendees is None:
        return None
    return [Attendee(user_id=a.user_id, user_name=a.user_name, email=a.email) for a in attendees]


def _normalize_reminders(reminders: Optional[Iterable[dict]]) -> Optional[List[dict]]:
    if reminders is None:
        return None
    return [{**r, "sent": False} for r in reminders]


def validate_event_data(
    title: Optional[str],
    entity_type: Optional[str],
    entity_id: Optional[str],
    organizer_id: Optional[UUID],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    description: Optional[str] = None,
) -> List[str]:
    """Shape and ordering checks for a new event; returns error messages"""
    errors = []

    if not title or not title.strip():
        errors.append("Event title is required")
    elif len(title) > TITLE_MAX_LENGTH:
        errors.append(f"Title must be less than {TITLE_MAX_LENGTH} characters")

    if description and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters")

    if not entity_type:
        errors.append("Entity type is required")
    if not entity_id:
        errors.append("Entity ID is required")
    if not organizer_id:
        errors.append("Organizer is required")

    if start_time is None:
        errors.append("Start time is required")
    if end_time is None:
        errors.append("End time is required")
    if start_time is not None and end_time is not None and as_utc(start_time) >= as_utc(end_time):
        errors.append("End time must be after start time")

    return errors


class SchedulingService:
    """Service for scheduled event operations"""

    def __init__(
        self,
        event_storage,
        handler_registry: HandlerRegistry,
        max_retry_attempts: int = 3,
        upcoming_window_days: int = 7,
        clock: Clock = utc_now,
    ):
        self.storage = event_storage
        self.registry = handler_registry
        self.max_retry_attempts = max_retry_attempts
        self.upcoming_window_days = upcoming_window_days
        self.clock = clock

    # ============================================
    # Mutations
    # ============================================

    async def create_event(
        self,
        actor: Actor,
        title: str,
        entity_type: str,
        entity_id: str,
        handler_type: str,
        start_time: datetime,
        end_time: datetime,
        organizer_id: UUID,
        type: Any = EventType.EVENT,
        description: Optional[str] = None,
        handler_data: Optional[dict] = None,
        auto_process: Optional[bool] = None,
        timezone: Optional[str] = None,
        all_day: bool = False,
        is_recurring: bool = False,
        recurrence_pattern: Any = None,
        attendees: Optional[Iterable[Any]] = None,
        location: Optional[dict] = None,
        visibility: Any = Visibility.INTERNAL,
        priority: Any = Priority.MEDIUM,
        reminders: Optional[Iterable[dict]] = None,
        color: Optional[str] = None,
        tags: Optional[List[str]] = None,
        metadata: Optional[dict] = None,
    ) -> ScheduledEvent:
        """
        Create a scheduled event in pending/scheduled state.

        auto_process defaults to the handler's own default when omitted.
        """
        errors = validate_event_data(
            title, entity_type, entity_id, organizer_id, start_time, end_time, description
        )
        event_type = _coerce_enum(EventType, type, "type", errors)
        visibility = _coerce_enum(Visibility, visibility, "visibility", errors)
        priority = _coerce_enum(Priority, priority, "priority", errors)
        pattern = _coerce_pattern(recurrence_pattern, errors)
        invited = _coerce_attendees(attendees, errors)
        if is_recurring and pattern is None:
            errors.append("Recurrence pattern is required for recurring events")
        if errors:
            raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)

        handler = self.registry.get(handler_type)
        if handler is None:
            raise HandlerNotFoundError(handler_type)

        if handler_data is not None and not await handler.validate_handler_data(handler_data):
            raise ValidationError("Invalid handler data")

        now = self.clock()
        event = ScheduledEvent(
            public_id=await allocate_public_id(self.storage),
            title=title.strip(),
            description=description,
            type=event_type,
            entity_type=entity_type,
            entity_id=str(entity_id),
            handler_type=handler_type,
            handler_data=handler_data,
            auto_process=handler.auto_process if auto_process is None else auto_process,
            processing_status=ProcessingStatus.PENDING,
            start_time=as_utc(start_time),
            end_time=as_utc(end_time),
            timezone=timezone,
            all_day=all_day,
            is_recurring=is_recurring,
            recurrence_pattern=pattern if is_recurring else None,
            organizer_id=organizer_id,
            attendees=_normalize_attendees(invited),
            status=EventStatus.SCHEDULED,
            location=location,
            visibility=visibility,
            priority=priority,
            reminders=_normalize_reminders(reminders),
            color=color,
            tags=list(tags or []),
            metadata=dict(metadata or {}),
            created_by=actor.id,
            created_at=now,
        )

        created = await self.storage.create(event)
        logger.info(
            f"Created {created.type.value} event '{created.title}' ({created.public_id}) "
            f"handler={handler_type} auto_process={created.auto_process} start={created.start_time}"
        )
        return created

    async def update_event(self, actor: Actor, event_id: UUID, changes: dict) -> ScheduledEvent:
        """Patch the supplied fields of a non-deleted event"""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        event = await self._get_live_event(event_id, "update")
        errors: List[str] = []
        patch = dict(changes)

        if "title" in patch:
            title = patch["title"]
            if not title or not title.strip():
                errors.append("Event title is required")
            elif len(title) > TITLE_MAX_LENGTH:
                errors.append(f"Title must be less than {TITLE_MAX_LENGTH} characters")
            else:
                patch["title"] = title.strip()
        if patch.get("description") and len(patch["description"]) > DESCRIPTION_MAX_LENGTH:
            errors.append(f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters")

        for field_name in sorted(NON_NULLABLE_FIELDS & patch.keys()):
            if patch[field_name] is None:
                errors.append(f"{field_name} cannot be cleared")
                del patch[field_name]

        for field_name, enum_cls in (
            ("type", EventType),
            ("visibility", Visibility),
            ("priority", Priority),
            ("status", EventStatus),
            ("processing_status", ProcessingStatus),
        ):
            if field_name in patch:
                patch[field_name] = _coerce_enum(enum_cls, patch[field_name], field_name, errors)

        for field_name in ("start_time", "end_time"):
            if field_name in patch:
                patch[field_name] = as_utc(patch[field_name])

        if "attendees" in patch:
            patch["attendees"] = _coerce_attendees(patch["attendees"], errors)

        if not errors:
            new_start = patch.get("start_time", event.start_time)
            new_end = patch.get("end_time", event.end_time)
            if new_start >= new_end:
                errors.append("End time must be after start time")

        if errors:
            raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)

        if patch.get("handler_data") is not None:
            handler = self.registry.get(event.handler_type)
            if handler is not None and not await handler.validate_handler_data(patch["handler_data"]):
                raise ValidationError("Invalid handler data")

        if "tags" in patch:
            patch["tags"] = list(patch["tags"] or [])
        if "metadata" in patch:
            patch["metadata"] = dict(patch["metadata"] or {})

        for field_name, value in patch.items():
            setattr(event, field_name, value)
        event.updated_by = actor.id
        event.updated_at = self.clock()

        updated = await self.storage.update(event)
        logger.info(f"Updated event {event_id}: {', '.join(sorted(patch))}")
        return updated

    async def cancel_event(self, actor: Actor, event_id: UUID, reason: Optional[str] = None) -> ScheduledEvent:
        event = await self._get_live_event(event_id, "cancel")
        now = self.clock()

        event.status = EventStatus.CANCELLED
        event.processing_status = ProcessingStatus.CANCELLED
        event.cancelled_by = actor.id
        event.cancelled_at = now
        event.cancellation_reason = reason
        event.updated_by = actor.id
        event.updated_at = now

        cancelled = await self.storage.update(event)
        logger.info(f"Cancelled event {event_id} by {actor.id}" + (f": {reason}" if reason else ""))
        return cancelled

    async def complete_event(self, actor: Actor, event_id: UUID) -> ScheduledEvent:
        """
        Run the event's handler synchronously.

        Failures are recorded on the event (failed, retry count + 1) and
        re-raised to the caller; there is no automatic retry here.
        """
        event = await self._get_live_event(event_id, "complete")

        handler = self.registry.get(event.handler_type)
        if handler is None:
            raise HandlerNotFoundError(event.handler_type)

        try:
            success = await handler.process_scheduled(event.id)
            if not success:
                raise HandlerExecutionError("Handler processing failed")
        except Exception as e:
            failed = await self.storage.get_by_id(event.id) or event
            record_failure(
                failed, e, self.clock(), self.max_retry_attempts,
                retryable=False, actor_id=actor.id,
            )
            await self.storage.update(failed)
            logger.error(f"Manual completion of event {event_id} failed: {e}")
            raise

        # handler may have written to the row; build on its version
        completed = await self.storage.get_by_id(event.id) or event
        mark_processed(completed, self.clock(), actor_id=actor.id)
        completed = await self.storage.update(completed)
        logger.info(f"Event {event_id} completed manually by {actor.id}")
        return completed

    async def reschedule_event(
        self,
        actor: Actor,
        event_id: UUID,
        new_start_time: datetime,
        new_end_time: datetime,
        reason: Optional[str] = None,
    ) -> ScheduledEvent:
        """Move an event, keeping the previous interval in its metadata"""
        new_start_time, new_end_time = as_utc(new_start_time), as_utc(new_end_time)
        if new_start_time >= new_end_time:
            raise ValidationError("Start time must be before end time")

        event = await self._get_live_event(event_id, "reschedule")
        now = self.clock()

        event.metadata = {
            **(event.metadata or {}),
            "reschedule_reason": reason or "",
            "original_start_time": event.start_time.isoformat(),
            "original_end_time": event.end_time.isoformat(),
            "rescheduled_at": now.isoformat(),
            "rescheduled_by": str(actor.id),
        }
        event.start_time = new_start_time
        event.end_time = new_end_time
        event.updated_by = actor.id
        event.updated_at = now

        rescheduled = await self.storage.update(event)
        logger.info(f"Rescheduled event {event_id} to {new_start_time} - {new_end_time}")
        return rescheduled

    async def respond_to_event(self, actor: Actor, event_id: UUID, response: Any) -> ScheduledEvent:
        """RSVP on behalf of the actor, who must already be an attendee"""
        errors: List[str] = []
        response = _coerce_enum(AttendeeStatus, response, "response", errors)
        if not errors and response not in RSVP_RESPONSES:
            errors.append("Response must be accepted, declined or tentative")
        if errors:
            raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)

        event = await self._get_live_event(event_id, "respond to")
        if not event.attendees:
            raise ValidationError("Event has no attendees")

        attendee = event.find_attendee(actor.id)
        if attendee is None:
            raise NotAttendeeError("User is not an attendee")

        now = self.clock()
        attendee.status = response
        attendee.response_at = now
        event.updated_at = now

        updated = await self.storage.update(event)
        logger.info(f"User {actor.id} responded '{response.value}' to event {event_id}")
        return updated

    async def delete_event(self, actor: Actor, event_id: UUID) -> ScheduledEvent:
        """Soft delete. Spawned recurrence children are left untouched."""
        event = await self._get_live_event(event_id, "delete")
        now = self.clock()
        event.deleted_at = now
        event.deleted_by = actor.id
        event.updated_at = now
        deleted = await self.storage.update(event)
        logger.info(f"Deleted event {event_id} by {actor.id}")
        return deleted

    # ============================================
    # Reads
    # ============================================

    async def get_event(self, event_id: UUID) -> Optional[ScheduledEvent]:
        event = await self.storage.get_by_id(event_id)
        return event if event and not event.is_deleted else None

    async def get_event_by_public_id(self, public_id: str) -> Optional[ScheduledEvent]:
        event = await self.storage.get_by_public_id(public_id)
        return event if event and not event.is_deleted else None

    async def list_by_entity(
        self, entity_type: str, entity_id: str, include_deleted: bool = False
    ) -> List[ScheduledEvent]:
        return await self.storage.list_by_entity(entity_type, entity_id, include_deleted=include_deleted)

    async def list_by_handler(self, handler_type: str, auto_process_only: bool = False) -> List[ScheduledEvent]:
        events = await self.storage.list_by_handler(handler_type)
        if auto_process_only:
            events = [e for e in events if e.auto_process]
        return events

    async def list_user_events(self, user_id: UUID, include_attending: bool = False) -> List[ScheduledEvent]:
        """Events the user organizes, optionally plus those they attend"""
        events = {e.id: e for e in await self.storage.list_by_organizer(user_id)}
        if include_attending:
            for event in await self.storage.list_by_attendee(user_id):
                events.setdefault(event.id, event)
        return sorted(events.values(), key=lambda e: e.start_time)

    async def list_upcoming(
        self,
        user_id: UUID,
        handler_type: Optional[str] = None,
        days: Optional[int] = None,
    ) -> List[ScheduledEvent]:
        """Scheduled events involving the user that start within the next `days`"""
        now = self.clock()
        window_end = now + timedelta(days=days or self.upcoming_window_days)
        events = await self.storage.list_by_start_range(now, window_end)
        return [
            e for e in events
            if e.start_time > now
            and e.status == EventStatus.SCHEDULED
            and e.involves(user_id)
            and (handler_type is None or e.handler_type == handler_type)
        ]

    async def list_today(self, user_id: UUID, timezone_name: Optional[str] = None) -> List[ScheduledEvent]:
        """Events involving the user that start today in the given timezone"""
        zone = resolve_zone(timezone_name)
        today = self.clock().astimezone(zone).date()
        day_start = as_utc(datetime.combine(today, time.min, tzinfo=zone))
        day_end = as_utc(datetime.combine(today + timedelta(days=1), time.min, tzinfo=zone))
        events = await self.storage.list_by_start_range(day_start, day_end)
        return [e for e in events if e.start_time < day_end and e.involves(user_id)]

    async def list_by_date_range(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
        handler_type: Optional[str] = None,
    ) -> List[ScheduledEvent]:
        start, end = as_utc(start), as_utc(end)
        if start > end:
            raise ValidationError("Range start must not be after range end")
        events = await self.storage.list_by_start_range(start, end)
        return [
            e for e in events
            if e.involves(user_id) and (handler_type is None or e.handler_type == handler_type)
        ]

    async def list_pending_processing(self) -> List[ScheduledEvent]:
        """Events the next batch pass would pick up"""
        return await self.storage.list_due_for_processing(self.clock())

    async def list_failed(self, handler_type: Optional[str] = None) -> List[ScheduledEvent]:
        events = await self.storage.list_by_processing_status(ProcessingStatus.FAILED)
        if handler_type:
            events = [e for e in events if e.handler_type == handler_type]
        return events

    async def get_event_data(self, event_id: UUID) -> dict:
        """Handler-specific presentation data for an event"""
        event = await self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")
        handler = self.registry.get(event.handler_type)
        if handler is None:
            raise HandlerNotFoundError(event.handler_type)
        return await handler.get_event_data(event.id)

    async def _get_live_event(self, event_id: UUID, action: str) -> ScheduledEvent:
        event = await self.storage.get_by_id(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")
        if event.is_deleted:
            raise EventNotFoundError(f"Cannot {action} deleted event: {event_id}")
        return event
