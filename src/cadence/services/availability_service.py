"""
Availability Service

Conflict detection, availability checks and free-slot search over a
user's scheduled events and working-hours preferences.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..clock import Clock, as_utc, utc_now
from ..errors import ValidationError
from ..models.actor import Actor
from ..models.availability import AvailabilityPreferences, WorkingHours
from ..models.scheduled_event import ScheduledEvent
from .overlap import overlap_minutes, overlaps

logger = logging.getLogger("cadence.services.availability")

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


@dataclass
class EventConflict:
    event: ScheduledEvent
    overlap_minutes: int

    def to_dict(self) -> dict:
        return {"event": self.event.to_dict(), "overlap_minutes": self.overlap_minutes}


@dataclass
class ConflictCheck:
    has_conflicts: bool
    conflicts: List[EventConflict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "has_conflicts": self.has_conflicts,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass
class TimeSlot:
    start: datetime
    end: datetime

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class SlotSearchResult:
    slots: List[TimeSlot]
    message: str

    def to_dict(self) -> dict:
        return {"slots": [s.to_dict() for s in self.slots], "message": self.message}


@dataclass
class AvailabilityCheck:
    available: bool
    reason: str                  # conflict | outside_working_hours | within_working_hours | no_preferences
    conflicts: List[EventConflict] = field(default_factory=list)
    working_hours: Optional[List[WorkingHours]] = None

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "reason": self.reason,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "working_hours": [wh.to_dict() for wh in self.working_hours] if self.working_hours is not None else None,
        }


def resolve_zone(name: Optional[str]):
    """ZoneInfo for an IANA name, falling back to UTC for unknown names"""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using UTC")
        return timezone.utc


def day_of_week(value) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (value.weekday() + 1) % 7


def validate_working_hours(working_hours: List[WorkingHours]):
    errors = []
    for wh in working_hours:
        if not 0 <= wh.day_of_week <= 6:
            errors.append("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        if not _HHMM.match(wh.start_time) or not _HHMM.match(wh.end_time):
            errors.append("Time must be in HH:mm format")
    if errors:
        raise ValidationError(f"Validation errors: {', '.join(errors)}", errors)


class AvailabilityService:
    """Service for conflict and availability computations"""

    def __init__(self, event_storage, availability_storage, clock: Clock = utc_now):
        self.event_storage = event_storage
        self.availability_storage = availability_storage
        self.clock = clock

    async def check_conflicts(
        self,
        start: datetime,
        end: datetime,
        organizer_id: UUID,
        exclude_event_id: Optional[UUID] = None,
    ) -> ConflictCheck:
        """Organizer's active events overlapping [start, end)"""
        start, end = as_utc(start), as_utc(end)
        events = await self.event_storage.list_by_organizer(organizer_id)

        conflicts = [
            EventConflict(event, overlap_minutes(start, end, event.start_time, event.end_time))
            for event in events
            if event.id != exclude_event_id
            and event.is_active()
            and overlaps(start, end, event.start_time, event.end_time)
        ]
        return ConflictCheck(has_conflicts=bool(conflicts), conflicts=conflicts)

    async def find_available_slots(
        self,
        user_id: UUID,
        range_start: datetime,
        range_end: datetime,
        duration_minutes: int,
    ) -> SlotSearchResult:
        """
        Free slots of `duration_minutes` inside the user's working hours.

        Candidates start at each day's working-hours start and advance by the
        duration (back-to-back) or duration + buffer. Slots must lie within
        [range_start, range_end] and must not overlap an active event.
        """
        if duration_minutes <= 0:
            raise ValidationError("Duration must be positive")
        range_start, range_end = as_utc(range_start), as_utc(range_end)
        if range_start > range_end:
            raise ValidationError("Range start must not be after range end")

        prefs = await self.availability_storage.get_active_for_user(user_id)
        if prefs is None:
            return SlotSearchResult(slots=[], message="No availability preferences set")

        busy = [
            (event.start_time, event.end_time)
            for event in await self.event_storage.list_by_organizer(user_id)
            if event.is_active()
            and event.start_time <= range_end
            and event.end_time > range_start
        ]

        zone = resolve_zone(prefs.timezone)
        duration = timedelta(minutes=duration_minutes)
        step = duration if prefs.allow_back_to_back else duration + timedelta(minutes=prefs.buffer_time or 0)

        slots: List[TimeSlot] = []
        day = range_start.astimezone(zone).date()
        last_day = range_end.astimezone(zone).date()

        while day <= last_day:
            hours = prefs.hours_for_day(day_of_week(day))
            if hours and hours.is_available:
                slot_start = datetime.combine(day, hours.start, tzinfo=zone).astimezone(timezone.utc)
                day_end = datetime.combine(day, hours.end, tzinfo=zone).astimezone(timezone.utc)

                while slot_start + duration <= day_end:
                    slot_end = slot_start + duration
                    in_range = slot_start >= range_start and slot_end <= range_end
                    if in_range and not any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in busy):
                        slots.append(TimeSlot(start=slot_start, end=slot_end))
                    slot_start += step

            day += timedelta(days=1)

        return SlotSearchResult(slots=slots, message=f"Found {len(slots)} available slots")

    async def check_availability(self, user_id: UUID, start: datetime, end: datetime) -> AvailabilityCheck:
        """Whether the user is free for [start, end): conflicts first, then working hours"""
        start, end = as_utc(start), as_utc(end)

        conflict_check = await self.check_conflicts(start, end, user_id)
        if conflict_check.has_conflicts:
            return AvailabilityCheck(available=False, reason="conflict", conflicts=conflict_check.conflicts)

        prefs = await self.availability_storage.get_active_for_user(user_id)
        if prefs is None:
            return AvailabilityCheck(available=True, reason="no_preferences")

        zone = resolve_zone(prefs.timezone)
        local_start = start.astimezone(zone)
        local_end = end.astimezone(zone)
        hours = prefs.hours_for_day(day_of_week(local_start))

        outside = (
            hours is None
            or not hours.is_available
            or local_end.date() != local_start.date()
            or local_start.time() < hours.start
            or local_end.time() > hours.end
        )
        if outside:
            return AvailabilityCheck(
                available=False,
                reason="outside_working_hours",
                working_hours=prefs.working_hours,
            )

        return AvailabilityCheck(available=True, reason="within_working_hours")

    async def get_preferences(self, user_id: UUID) -> Optional[AvailabilityPreferences]:
        return await self.availability_storage.get_active_for_user(user_id)

    async def update_preferences(
        self,
        actor: Actor,
        timezone_name: str,
        working_hours: List[WorkingHours],
        buffer_time: Optional[int] = None,
        allow_back_to_back: Optional[bool] = None,
        auto_accept: Optional[bool] = None,
        default_event_duration: Optional[int] = None,
    ) -> AvailabilityPreferences:
        """Create or replace the actor's availability preferences"""
        validate_working_hours(working_hours)
        if buffer_time is not None and buffer_time < 0:
            raise ValidationError("buffer_time must not be negative")
        if default_event_duration is not None and default_event_duration <= 0:
            raise ValidationError("default_event_duration must be positive")

        now = self.clock()
        existing = await self.availability_storage.get_active_for_user(actor.id)

        if existing:
            existing.timezone = timezone_name
            existing.working_hours = list(working_hours)
            existing.buffer_time = buffer_time or 0
            existing.allow_back_to_back = bool(allow_back_to_back)
            existing.auto_accept = bool(auto_accept)
            existing.default_event_duration = default_event_duration
            existing.updated_by = actor.id
            existing.updated_at = now
            logger.info(f"Updated availability preferences for user {actor.id}")
            return await self.availability_storage.update(existing)

        prefs = AvailabilityPreferences(
            user_id=actor.id,
            timezone=timezone_name,
            working_hours=list(working_hours),
            buffer_time=buffer_time or 0,
            allow_back_to_back=bool(allow_back_to_back),
            auto_accept=bool(auto_accept),
            default_event_duration=default_event_duration,
            created_by=actor.id,
            created_at=now,
        )
        logger.info(f"Created availability preferences for user {actor.id}")
        return await self.availability_storage.create(prefs)

    async def delete_preferences(self, actor: Actor) -> bool:
        """Soft-delete the actor's preferences. False when there were none."""
        existing = await self.availability_storage.get_active_for_user(actor.id)
        if existing is None:
            return False
        now = self.clock()
        existing.deleted_at = now
        existing.deleted_by = actor.id
        existing.updated_at = now
        await self.availability_storage.update(existing)
        logger.info(f"Deleted availability preferences for user {actor.id}")
        return True
