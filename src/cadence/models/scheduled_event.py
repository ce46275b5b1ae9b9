"""
Scheduled Event Model

A time-based action attached to a subject entity (a blog post to publish,
a meeting to hold). Carries two independent state machines:
`status` (user-facing lifecycle) and `processing_status` (execution lifecycle).
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Kind of scheduled event"""
    MEETING = "meeting"
    APPOINTMENT = "appointment"
    EVENT = "event"
    TASK = "task"
    REMINDER = "reminder"
    BLOCK = "block"
    OTHER = "other"


class EventStatus(str, Enum):
    """
    User-facing lifecycle.

    scheduled -> completed  (handler processed the event)
    scheduled -> cancelled  (cancel_event)
    confirmed / no_show are only set through update_event.
    """
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class ProcessingStatus(str, Enum):
    """
    Execution lifecycle driven by the batch processor.

    pending -> processing -> completed
                          -> pending  (retry, below MAX_RETRY_ATTEMPTS)
                          -> failed   (retries exhausted)
    any     -> cancelled  (cancel_event)
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AttendeeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _opt_int(value) -> Optional[int]:
    return None if value is None else int(value)


@dataclass
class RecurrencePattern:
    """
    Fixed frequency + interval recurrence.

    days_of_week is carried for display only; weekly recurrence always
    advances by whole weeks from the event start.
    """
    frequency: RecurrenceFrequency = RecurrenceFrequency.DAILY
    interval: int = 1
    days_of_week: Optional[List[int]] = None
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    end_date: Optional[datetime] = None
    max_occurrences: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "days_of_week": self.days_of_week,
            "day_of_month": self.day_of_month,
            "month_of_year": self.month_of_year,
            "end_date": _iso(self.end_date),
            "max_occurrences": self.max_occurrences,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrencePattern":
        """Create from dictionary (API payload or JSONB column)"""
        days_of_week = data.get("days_of_week")
        return cls(
            frequency=RecurrenceFrequency(data["frequency"]),
            interval=int(data.get("interval", 1)),
            days_of_week=[int(d) for d in days_of_week] if days_of_week is not None else None,
            day_of_month=_opt_int(data.get("day_of_month")),
            month_of_year=_opt_int(data.get("month_of_year")),
            end_date=_parse_dt(data.get("end_date")),
            max_occurrences=_opt_int(data.get("max_occurrences")),
        )


@dataclass
class Attendee:
    """Invited participant and their RSVP state"""
    user_id: UUID = field(default_factory=uuid4)
    user_name: str = ""
    email: Optional[str] = None
    status: AttendeeStatus = AttendeeStatus.PENDING
    response_at: Optional[datetime] = None
    sent: bool = False                                   # invitation delivered

    def to_dict(self) -> dict:
        return {
            "user_id": str(self.user_id),
            "user_name": self.user_name,
            "email": self.email,
            "status": self.status.value,
            "response_at": _iso(self.response_at),
            "sent": self.sent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Attendee":
        user_id = data["user_id"]
        return cls(
            user_id=UUID(user_id) if isinstance(user_id, str) else user_id,
            user_name=data.get("user_name", ""),
            email=data.get("email"),
            status=AttendeeStatus(data.get("status", AttendeeStatus.PENDING.value)),
            response_at=_parse_dt(data.get("response_at")),
            sent=data.get("sent", False),
        )


@dataclass
class ScheduledEvent:
    """
    Scheduled event entity.

    Invariants:
    - start_time < end_time
    - deleted events (deleted_at set) never appear in active queries
    - auto-processing eligibility: auto_process and processing_status=pending
      and status=scheduled and start_time <= now
    """
    id: UUID = field(default_factory=uuid4)
    public_id: str = ""
    title: str = ""
    description: Optional[str] = None
    type: EventType = EventType.EVENT

    # Subject link (opaque to the engine)
    entity_type: str = ""
    entity_id: str = ""

    # Handler configuration
    handler_type: str = ""
    handler_data: Optional[dict] = None
    auto_process: bool = False
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processed_at: Optional[datetime] = None
    processing_error: Optional[str] = None
    processing_retry_count: int = 0

    # Time
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    timezone: Optional[str] = None                       # IANA identifier, stored as-is
    all_day: bool = False

    # Recurrence
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    parent_event_id: Optional[UUID] = None
    occurrence_number: int = 1

    # Participants
    organizer_id: Optional[UUID] = None
    attendees: Optional[List[Attendee]] = None

    status: EventStatus = EventStatus.SCHEDULED
    location: Optional[dict] = None
    visibility: Visibility = Visibility.INTERNAL
    priority: Priority = Priority.MEDIUM
    reminders: Optional[List[dict]] = None               # [{type, minutes_before, sent}]
    color: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    # Cancellation
    cancelled_by: Optional[UUID] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    # Audit
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def duration(self):
        return self.end_time - self.start_time

    def is_due(self, now: datetime) -> bool:
        """Whether the batch processor may pick this event up at `now`"""
        return (
            not self.is_deleted
            and self.auto_process
            and self.processing_status == ProcessingStatus.PENDING
            and self.status == EventStatus.SCHEDULED
            and self.start_time <= now
        )

    def is_active(self) -> bool:
        """Counts as busy time for conflict and availability checks"""
        return not self.is_deleted and self.status not in (
            EventStatus.CANCELLED,
            EventStatus.COMPLETED,
        )

    def find_attendee(self, user_id: UUID) -> Optional[Attendee]:
        for attendee in self.attendees or []:
            if attendee.user_id == user_id:
                return attendee
        return None

    def involves(self, user_id: UUID) -> bool:
        return self.organizer_id == user_id or self.find_attendee(user_id) is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return {
            "id": str(self.id),
            "public_id": self.public_id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "handler_type": self.handler_type,
            "handler_data": self.handler_data,
            "auto_process": self.auto_process,
            "processing_status": self.processing_status.value,
            "processed_at": _iso(self.processed_at),
            "processing_error": self.processing_error,
            "processing_retry_count": self.processing_retry_count,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "timezone": self.timezone,
            "all_day": self.all_day,
            "is_recurring": self.is_recurring,
            "recurrence_pattern": self.recurrence_pattern.to_dict() if self.recurrence_pattern else None,
            "parent_event_id": str(self.parent_event_id) if self.parent_event_id else None,
            "occurrence_number": self.occurrence_number,
            "organizer_id": str(self.organizer_id) if self.organizer_id else None,
            "attendees": [a.to_dict() for a in self.attendees] if self.attendees is not None else None,
            "status": self.status.value,
            "location": self.location,
            "visibility": self.visibility.value,
            "priority": self.priority.value,
            "reminders": self.reminders,
            "color": self.color,
            "tags": self.tags,
            "metadata": self.metadata,
            "cancelled_by": str(self.cancelled_by) if self.cancelled_by else None,
            "cancelled_at": _iso(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "created_by": str(self.created_by) if self.created_by else None,
            "created_at": _iso(self.created_at),
            "updated_by": str(self.updated_by) if self.updated_by else None,
            "updated_at": _iso(self.updated_at),
        }
