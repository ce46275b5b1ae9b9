"""
Availability Storage

PostgreSQL storage for per-user availability preferences.
"""
import logging
from typing import Optional
from uuid import UUID

from .base import BaseStorage, dump_json, load_json
from ..models.availability import AvailabilityPreferences, WorkingHours

logger = logging.getLogger("cadence.storage.availability")


class AvailabilityStorage(BaseStorage):
    """Storage for AvailabilityPreferences entities"""

    async def get_active_for_user(self, user_id: UUID) -> Optional[AvailabilityPreferences]:
        """Get the user's non-deleted preferences record"""
        row = await self.fetchrow(
            """
            SELECT * FROM availability_preferences
            WHERE user_id = $1 AND deleted_at IS NULL
            LIMIT 1
            """,
            user_id,
        )
        return self._row_to_preferences(row) if row else None

    async def create(self, prefs: AvailabilityPreferences) -> AvailabilityPreferences:
        row = await self.fetchrow(
            """
            INSERT INTO availability_preferences (
                id, user_id, timezone, working_hours, buffer_time,
                allow_back_to_back, auto_accept, default_event_duration,
                created_by, created_at, updated_by, updated_at
            )
            VALUES ($1,$2,$3,$4,$5,$6,$7,$8,$9,$10,$11,$12)
            RETURNING *
            """,
            prefs.id, prefs.user_id, prefs.timezone,
            dump_json([wh.to_dict() for wh in prefs.working_hours]),
            prefs.buffer_time, prefs.allow_back_to_back, prefs.auto_accept,
            prefs.default_event_duration,
            prefs.created_by, prefs.created_at, prefs.updated_by, prefs.updated_at,
        )
        return self._row_to_preferences(row)

    async def update(self, prefs: AvailabilityPreferences) -> AvailabilityPreferences:
        row = await self.fetchrow(
            """
            UPDATE availability_preferences
            SET timezone = $2, working_hours = $3, buffer_time = $4,
                allow_back_to_back = $5, auto_accept = $6, default_event_duration = $7,
                updated_by = $8, updated_at = $9, deleted_at = $10, deleted_by = $11
            WHERE id = $1
            RETURNING *
            """,
            prefs.id, prefs.timezone,
            dump_json([wh.to_dict() for wh in prefs.working_hours]),
            prefs.buffer_time, prefs.allow_back_to_back, prefs.auto_accept,
            prefs.default_event_duration,
            prefs.updated_by, prefs.updated_at, prefs.deleted_at, prefs.deleted_by,
        )
        return self._row_to_preferences(row)

    @staticmethod
    def _row_to_preferences(row) -> AvailabilityPreferences:
        return AvailabilityPreferences(
            id=row["id"],
            user_id=row["user_id"],
            timezone=row["timezone"],
            working_hours=[WorkingHours.from_dict(wh) for wh in load_json(row["working_hours"], default=[])],
            buffer_time=row["buffer_time"] or 0,
            allow_back_to_back=row["allow_back_to_back"],
            auto_accept=row["auto_accept"],
            default_event_duration=row["default_event_duration"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_by=row["updated_by"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
            deleted_by=row["deleted_by"],
        )
