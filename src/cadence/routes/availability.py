"""
Availability Routes

Conflict checks, availability checks, slot search and the caller's
working-hours preferences.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from ..errors import SchedulingError
from ..models.actor import Actor
from ..models.availability import WorkingHours
from ..services.engine_service import get_engine_service
from .auth import get_current_actor
from .common import http_error, parse_datetime, parse_uuid

logger = logging.getLogger("cadence.routes.availability")
router = APIRouter(prefix="/availability", tags=["availability"])


# ============================================
# Request Models
# ============================================

class ConflictCheckRequest(BaseModel):
    start_time: str
    end_time: str
    organizer_id: Optional[str] = None              # defaults to the caller
    exclude_event_id: Optional[str] = None


class AvailabilityCheckRequest(BaseModel):
    start_time: str
    end_time: str
    user_id: Optional[str] = None


class SlotSearchRequest(BaseModel):
    start_date: str
    end_date: str
    duration_minutes: int
    user_id: Optional[str] = None


class WorkingHoursRequest(BaseModel):
    day_of_week: int                                # 0 = Sunday
    start_time: str                                 # "HH:mm"
    end_time: str
    is_available: bool = True


class PreferencesRequest(BaseModel):
    timezone: str = "UTC"
    working_hours: List[WorkingHoursRequest]
    buffer_time: Optional[int] = None
    allow_back_to_back: Optional[bool] = None
    auto_accept: Optional[bool] = None
    default_event_duration: Optional[int] = None


# ============================================
# Routes
# ============================================

@router.post("/conflicts")
async def check_conflicts(
    request: ConflictCheckRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Active events of the organizer overlapping the interval"""
    engine = get_engine_service()
    organizer_id = parse_uuid(request.organizer_id, "organizer_id") if request.organizer_id else actor.id
    exclude = parse_uuid(request.exclude_event_id, "exclude_event_id") if request.exclude_event_id else None

    result = await engine.availability_service.check_conflicts(
        parse_datetime(request.start_time, "start_time"),
        parse_datetime(request.end_time, "end_time"),
        organizer_id,
        exclude_event_id=exclude,
    )
    return result.to_dict()


@router.post("/check")
async def check_availability(
    request: AvailabilityCheckRequest,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    user_id = parse_uuid(request.user_id, "user_id") if request.user_id else actor.id
    result = await engine.availability_service.check_availability(
        user_id,
        parse_datetime(request.start_time, "start_time"),
        parse_datetime(request.end_time, "end_time"),
    )
    return result.to_dict()


@router.post("/slots")
async def find_available_slots(
    request: SlotSearchRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Free slots of the requested length inside working hours"""
    engine = get_engine_service()
    user_id = parse_uuid(request.user_id, "user_id") if request.user_id else actor.id
    try:
        result = await engine.availability_service.find_available_slots(
            user_id,
            parse_datetime(request.start_date, "start_date"),
            parse_datetime(request.end_date, "end_date"),
            request.duration_minutes,
        )
    except SchedulingError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("/preferences")
async def get_preferences(actor: Actor = Depends(get_current_actor)):
    engine = get_engine_service()
    prefs = await engine.availability_service.get_preferences(actor.id)
    if not prefs:
        raise HTTPException(status_code=404, detail="No availability preferences set")
    return prefs.to_dict()


@router.put("/preferences")
async def update_preferences(
    request: PreferencesRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Create or replace the caller's preferences"""
    engine = get_engine_service()
    try:
        prefs = await engine.availability_service.update_preferences(
            actor,
            timezone_name=request.timezone,
            working_hours=[WorkingHours(**wh.model_dump()) for wh in request.working_hours],
            buffer_time=request.buffer_time,
            allow_back_to_back=request.allow_back_to_back,
            auto_accept=request.auto_accept,
            default_event_duration=request.default_event_duration,
        )
    except SchedulingError as e:
        raise http_error(e)
    return prefs.to_dict()


@router.delete("/preferences")
async def delete_preferences(actor: Actor = Depends(get_current_actor)):
    engine = get_engine_service()
    deleted = await engine.availability_service.delete_preferences(actor)
    if not deleted:
        raise HTTPException(status_code=404, detail="No availability preferences set")
    return {"success": True, "message": "Preferences deleted"}
