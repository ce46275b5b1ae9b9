"""
Scheduled Event Storage

PostgreSQL storage for scheduled events.
Every list query except list_by_entity(include_deleted=True) excludes
soft-deleted rows.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from .base import BaseStorage, dump_json, load_json
from ..models.scheduled_event import (
    Attendee,
    EventStatus,
    EventType,
    Priority,
    ProcessingStatus,
    RecurrencePattern,
    ScheduledEvent,
    Visibility,
)

logger = logging.getLogger("cadence.storage.scheduled_events")

_COLUMNS = (
    "id", "public_id", "title", "description", "type",
    "entity_type", "entity_id",
    "handler_type", "handler_data", "auto_process",
    "processing_status", "processed_at", "processing_error", "processing_retry_count",
    "start_time", "end_time", "timezone", "all_day",
    "is_recurring", "recurrence_pattern", "parent_event_id", "occurrence_number",
    "organizer_id", "attendees",
    "status", "location", "visibility", "priority", "reminders", "color", "tags", "metadata",
    "cancelled_by", "cancelled_at", "cancellation_reason",
    "created_by", "created_at", "updated_by", "updated_at", "deleted_at", "deleted_by",
)

# id and creation stamp never change after insert
_MUTABLE_COLUMNS = tuple(c for c in _COLUMNS if c not in ("id", "public_id", "created_by", "created_at"))

_INSERT_SQL = "INSERT INTO scheduled_events ({cols}) VALUES ({params}) RETURNING *".format(
    cols=", ".join(_COLUMNS),
    params=", ".join(f"${i}" for i in range(1, len(_COLUMNS) + 1)),
)

_UPDATE_SQL = "UPDATE scheduled_events SET {assignments} WHERE id = $1 RETURNING *".format(
    assignments=", ".join(f"{col} = ${i}" for i, col in enumerate(_MUTABLE_COLUMNS, start=2)),
)


class ScheduledEventStorage(BaseStorage):
    """Storage for ScheduledEvent entities"""

    async def create(self, event: ScheduledEvent) -> ScheduledEvent:
        values = self._event_to_values(event)
        row = await self.fetchrow(_INSERT_SQL, *(values[c] for c in _COLUMNS))
        return self._row_to_event(row)

    async def get_by_id(self, event_id: UUID) -> Optional[ScheduledEvent]:
        """Get event by ID, including soft-deleted rows"""
        row = await self.fetchrow("SELECT * FROM scheduled_events WHERE id = $1", event_id)
        return self._row_to_event(row) if row else None

    async def get_by_public_id(self, public_id: str) -> Optional[ScheduledEvent]:
        row = await self.fetchrow("SELECT * FROM scheduled_events WHERE public_id = $1", public_id)
        return self._row_to_event(row) if row else None

    async def public_id_exists(self, public_id: str) -> bool:
        return bool(await self.fetchval(
            "SELECT EXISTS(SELECT 1 FROM scheduled_events WHERE public_id = $1)", public_id
        ))

    async def update(self, event: ScheduledEvent) -> ScheduledEvent:
        """Write back every mutable column of the event"""
        values = self._event_to_values(event)
        row = await self.fetchrow(_UPDATE_SQL, event.id, *(values[c] for c in _MUTABLE_COLUMNS))
        return self._row_to_event(row)

    async def claim_for_processing(self, event_id: UUID, now: datetime) -> Optional[ScheduledEvent]:
        """
        Atomically move an event from pending to processing.

        Returns None when another pass already claimed it or it is no
        longer pending.
        """
        row = await self.fetchrow(
            """
            UPDATE scheduled_events
            SET processing_status = 'processing', updated_at = $2
            WHERE id = $1 AND processing_status = 'pending' AND deleted_at IS NULL
            RETURNING *
            """,
            event_id, now,
        )
        return self._row_to_event(row) if row else None

    async def list_by_entity(
        self, entity_type: str, entity_id: str, include_deleted: bool = False
    ) -> List[ScheduledEvent]:
        query = """
            SELECT * FROM scheduled_events
            WHERE entity_type = $1 AND entity_id = $2
        """
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        query += " ORDER BY start_time"
        rows = await self.fetch(query, entity_type, entity_id)
        return [self._row_to_event(row) for row in rows]

    async def list_by_handler(self, handler_type: str) -> List[ScheduledEvent]:
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE handler_type = $1 AND deleted_at IS NULL
            ORDER BY start_time
            """,
            handler_type,
        )
        return [self._row_to_event(row) for row in rows]

    async def list_by_organizer(self, organizer_id: UUID) -> List[ScheduledEvent]:
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE organizer_id = $1 AND deleted_at IS NULL
            ORDER BY start_time
            """,
            organizer_id,
        )
        return [self._row_to_event(row) for row in rows]

    async def list_by_attendee(self, user_id: UUID) -> List[ScheduledEvent]:
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE attendees @> $1::jsonb AND deleted_at IS NULL
            ORDER BY start_time
            """,
            json.dumps([{"user_id": str(user_id)}]),
        )
        return [self._row_to_event(row) for row in rows]

    async def list_by_start_range(self, start: datetime, end: datetime) -> List[ScheduledEvent]:
        """Events whose start_time falls in [start, end]"""
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE start_time >= $1 AND start_time <= $2 AND deleted_at IS NULL
            ORDER BY start_time
            """,
            start, end,
        )
        return [self._row_to_event(row) for row in rows]

    async def list_by_processing_status(self, status: ProcessingStatus) -> List[ScheduledEvent]:
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE processing_status = $1 AND deleted_at IS NULL
            ORDER BY start_time
            """,
            status.value,
        )
        return [self._row_to_event(row) for row in rows]

    async def list_due_for_processing(self, now: datetime) -> List[ScheduledEvent]:
        rows = await self.fetch(
            """
            SELECT * FROM scheduled_events
            WHERE processing_status = 'pending'
              AND deleted_at IS NULL
              AND auto_process = true
              AND status = 'scheduled'
              AND start_time <= $1
            ORDER BY start_time
            """,
            now,
        )
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _event_to_values(event: ScheduledEvent) -> dict:
        return {
            "id": event.id,
            "public_id": event.public_id,
            "title": event.title,
            "description": event.description,
            "type": event.type.value,
            "entity_type": event.entity_type,
            "entity_id": event.entity_id,
            "handler_type": event.handler_type,
            "handler_data": dump_json(event.handler_data),
            "auto_process": event.auto_process,
            "processing_status": event.processing_status.value,
            "processed_at": event.processed_at,
            "processing_error": event.processing_error,
            "processing_retry_count": event.processing_retry_count,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "timezone": event.timezone,
            "all_day": event.all_day,
            "is_recurring": event.is_recurring,
            "recurrence_pattern": dump_json(
                event.recurrence_pattern.to_dict() if event.recurrence_pattern else None
            ),
            "parent_event_id": event.parent_event_id,
            "occurrence_number": event.occurrence_number,
            "organizer_id": event.organizer_id,
            "attendees": dump_json(
                [a.to_dict() for a in event.attendees] if event.attendees is not None else None
            ),
            "status": event.status.value,
            "location": dump_json(event.location),
            "visibility": event.visibility.value,
            "priority": event.priority.value,
            "reminders": dump_json(event.reminders),
            "color": event.color,
            "tags": list(event.tags),
            "metadata": dump_json(event.metadata or {}),
            "cancelled_by": event.cancelled_by,
            "cancelled_at": event.cancelled_at,
            "cancellation_reason": event.cancellation_reason,
            "created_by": event.created_by,
            "created_at": event.created_at,
            "updated_by": event.updated_by,
            "updated_at": event.updated_at,
            "deleted_at": event.deleted_at,
            "deleted_by": event.deleted_by,
        }

    @staticmethod
    def _row_to_event(row) -> ScheduledEvent:
        """Convert database row to ScheduledEvent"""
        pattern = load_json(row["recurrence_pattern"])
        attendees = load_json(row["attendees"])

        return ScheduledEvent(
            id=row["id"],
            public_id=row["public_id"],
            title=row["title"],
            description=row["description"],
            type=EventType(row["type"]),
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            handler_type=row["handler_type"],
            handler_data=load_json(row["handler_data"]),
            auto_process=row["auto_process"],
            processing_status=ProcessingStatus(row["processing_status"]),
            processed_at=row["processed_at"],
            processing_error=row["processing_error"],
            processing_retry_count=row["processing_retry_count"] or 0,
            start_time=row["start_time"],
            end_time=row["end_time"],
            timezone=row["timezone"],
            all_day=row["all_day"],
            is_recurring=row["is_recurring"],
            recurrence_pattern=RecurrencePattern.from_dict(pattern) if pattern else None,
            parent_event_id=row["parent_event_id"],
            occurrence_number=row["occurrence_number"] or 1,
            organizer_id=row["organizer_id"],
            attendees=[Attendee.from_dict(a) for a in attendees] if attendees is not None else None,
            status=EventStatus(row["status"]),
            location=load_json(row["location"]),
            visibility=Visibility(row["visibility"]),
            priority=Priority(row["priority"]),
            reminders=load_json(row["reminders"]),
            color=row["color"],
            tags=list(row["tags"] or []),
            metadata=load_json(row["metadata"], default={}),
            cancelled_by=row["cancelled_by"],
            cancelled_at=row["cancelled_at"],
            cancellation_reason=row["cancellation_reason"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_by=row["updated_by"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
            deleted_by=row["deleted_by"],
        )
