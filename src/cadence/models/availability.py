"""
Availability Preferences Model

Per-user working hours and slot-finding preferences.
At most one non-deleted record per user.
"""
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import List, Optional
from uuid import UUID, uuid4


def parse_hhmm(value: str) -> time:
    """Parse an "HH:mm" string into a time"""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


@dataclass
class WorkingHours:
    """Working window for one day of the week (0 = Sunday, 6 = Saturday)"""
    day_of_week: int = 1
    start_time: str = "09:00"
    end_time: str = "17:00"
    is_available: bool = True

    @property
    def start(self) -> time:
        return parse_hhmm(self.start_time)

    @property
    def end(self) -> time:
        return parse_hhmm(self.end_time)

    def to_dict(self) -> dict:
        return {
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_available": self.is_available,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkingHours":
        return cls(
            day_of_week=int(data["day_of_week"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            is_available=data.get("is_available", True),
        )


@dataclass
class AvailabilityPreferences:
    """User availability settings"""
    id: UUID = field(default_factory=uuid4)
    user_id: UUID = field(default_factory=uuid4)
    timezone: str = "UTC"
    working_hours: List[WorkingHours] = field(default_factory=list)
    buffer_time: int = 0                                 # minutes between slots
    allow_back_to_back: bool = False
    auto_accept: bool = False
    default_event_duration: Optional[int] = None         # minutes

    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None

    def hours_for_day(self, day_of_week: int) -> Optional[WorkingHours]:
        for hours in self.working_hours:
            if hours.day_of_week == day_of_week:
                return hours
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "timezone": self.timezone,
            "working_hours": [wh.to_dict() for wh in self.working_hours],
            "buffer_time": self.buffer_time,
            "allow_back_to_back": self.allow_back_to_back,
            "auto_accept": self.auto_accept,
            "default_event_duration": self.default_event_duration,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
