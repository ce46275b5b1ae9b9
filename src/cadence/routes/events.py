"""
Scheduled Event Routes

Endpoints for creating, changing and querying scheduled events.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from ..errors import SchedulingError
from ..models.actor import Actor
from ..services.engine_service import get_engine_service
from .auth import get_current_actor
from .common import http_error, parse_datetime, parse_uuid

logger = logging.getLogger("cadence.routes.events")
router = APIRouter(prefix="/scheduling", tags=["scheduling"])


# ============================================
# Request Models
# ============================================

class AttendeeRequest(BaseModel):
    user_id: str
    user_name: str = ""
    email: Optional[str] = None


class CreateEventRequest(BaseModel):
    """Create scheduled event request"""
    title: str
    entity_type: str
    entity_id: str
    handler_type: str
    start_time: str                                 # ISO datetime
    end_time: str
    organizer_id: Optional[str] = None              # defaults to the caller
    type: str = "event"
    description: Optional[str] = None
    handler_data: Optional[dict] = None
    auto_process: Optional[bool] = None             # defaults to the handler's setting
    timezone: Optional[str] = None
    all_day: bool = False
    is_recurring: bool = False
    recurrence_pattern: Optional[dict] = None
    attendees: Optional[List[AttendeeRequest]] = None
    location: Optional[dict] = None
    visibility: str = "internal"
    priority: str = "medium"
    reminders: Optional[List[dict]] = None
    color: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[dict] = None


class UpdateEventRequest(BaseModel):
    """Partial update; only fields present in the body are changed"""
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    handler_data: Optional[dict] = None
    processing_status: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timezone: Optional[str] = None
    all_day: Optional[bool] = None
    attendees: Optional[List[dict]] = None
    location: Optional[dict] = None
    visibility: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    reminders: Optional[List[dict]] = None
    color: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[dict] = None


class CancelEventRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleEventRequest(BaseModel):
    start_time: str
    end_time: str
    reason: Optional[str] = None


class RespondRequest(BaseModel):
    response: str                                   # accepted | declined | tentative


# ============================================
# Mutations
# ============================================

@router.post("/events")
async def create_event(
    request: CreateEventRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Create a scheduled event"""
    engine = get_engine_service()

    organizer_id = parse_uuid(request.organizer_id, "organizer_id") if request.organizer_id else actor.id
    attendees = None
    if request.attendees is not None:
        attendees = [
            {"user_id": parse_uuid(a.user_id, "attendee user_id"), "user_name": a.user_name, "email": a.email}
            for a in request.attendees
        ]

    try:
        event = await engine.scheduling_service.create_event(
            actor,
            title=request.title,
            entity_type=request.entity_type,
            entity_id=request.entity_id,
            handler_type=request.handler_type,
            start_time=parse_datetime(request.start_time, "start_time"),
            end_time=parse_datetime(request.end_time, "end_time"),
            organizer_id=organizer_id,
            type=request.type,
            description=request.description,
            handler_data=request.handler_data,
            auto_process=request.auto_process,
            timezone=request.timezone,
            all_day=request.all_day,
            is_recurring=request.is_recurring,
            recurrence_pattern=request.recurrence_pattern,
            attendees=attendees,
            location=request.location,
            visibility=request.visibility,
            priority=request.priority,
            reminders=request.reminders,
            color=request.color,
            tags=request.tags,
            metadata=request.metadata,
        )
    except SchedulingError as e:
        raise http_error(e)
    return event.to_dict()


@router.patch("/events/{event_id}")
async def update_event(
    event_id: str,
    request: UpdateEventRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Update the fields present in the request body"""
    engine = get_engine_service()
    event_uuid = parse_uuid(event_id, "event ID")

    changes = request.model_dump(exclude_unset=True)
    for field_name in ("start_time", "end_time"):
        if changes.get(field_name) is not None:
            changes[field_name] = parse_datetime(changes[field_name], field_name)

    try:
        event = await engine.scheduling_service.update_event(actor, event_uuid, changes)
    except SchedulingError as e:
        raise http_error(e)
    return event.to_dict()


@router.post("/events/{event_id}/cancel")
async def cancel_event(
    event_id: str,
    request: CancelEventRequest,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    try:
        event = await engine.scheduling_service.cancel_event(
            actor, parse_uuid(event_id, "event ID"), reason=request.reason
        )
    except SchedulingError as e:
        raise http_error(e)
    return event.to_dict()


@router.post("/events/{event_id}/complete")
async def complete_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
):
    """Run the event's handler now and mark the event completed"""
    engine = get_engine_service()
    try:
        event = await engine.scheduling_service.complete_event(actor, parse_uuid(event_id, "event ID"))
    except SchedulingError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Handler failed completing event {event_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Handler failed: {e}")
    return event.to_dict()


@router.post("/events/{event_id}/reschedule")
async def reschedule_event(
    event_id: str,
    request: RescheduleEventRequest,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    try:
        event = await engine.scheduling_service.reschedule_event(
            actor,
            parse_uuid(event_id, "event ID"),
            parse_datetime(request.start_time, "start_time"),
            parse_datetime(request.end_time, "end_time"),
            reason=request.reason,
        )
    except SchedulingError as e:
        raise http_error(e)
    return event.to_dict()


@router.post("/events/{event_id}/respond")
async def respond_to_event(
    event_id: str,
    request: RespondRequest,
    actor: Actor = Depends(get_current_actor),
):
    """RSVP to an event the caller is invited to"""
    engine = get_engine_service()
    try:
        event = await engine.scheduling_service.respond_to_event(
            actor, parse_uuid(event_id, "event ID"), request.response
        )
    except SchedulingError as e:
        raise http_error(e)
    return event.to_dict()


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
):
    """Soft-delete a scheduled event"""
    engine = get_engine_service()
    try:
        await engine.scheduling_service.delete_event(actor, parse_uuid(event_id, "event ID"))
    except SchedulingError as e:
        raise http_error(e)
    return {"success": True, "message": "Event deleted"}


# ============================================
# Reads
# ============================================

@router.get("/events/public/{public_id}")
async def get_event_by_public_id(
    public_id: str,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    event = await engine.scheduling_service.get_event_by_public_id(public_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event.to_dict()


@router.get("/events/{event_id}")
async def get_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    event = await engine.scheduling_service.get_event(parse_uuid(event_id, "event ID"))
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event.to_dict()


@router.get("/events/{event_id}/data")
async def get_event_data(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
):
    """Handler-specific view of the event's subject"""
    engine = get_engine_service()
    try:
        return await engine.scheduling_service.get_event_data(parse_uuid(event_id, "event ID"))
    except SchedulingError as e:
        raise http_error(e)


@router.get("/entities/{entity_type}/{entity_id}/events")
async def list_entity_events(
    entity_type: str,
    entity_id: str,
    include_deleted: bool = False,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_by_entity(entity_type, entity_id, include_deleted)
    return [e.to_dict() for e in events]


@router.get("/handlers/{handler_type}/events")
async def list_handler_events(
    handler_type: str,
    auto_process_only: bool = False,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_by_handler(handler_type, auto_process_only)
    return [e.to_dict() for e in events]


@router.get("/me/events")
async def list_my_events(
    include_attending: bool = False,
    actor: Actor = Depends(get_current_actor),
):
    """Events the caller organizes, optionally plus the ones they attend"""
    engine = get_engine_service()
    events = await engine.scheduling_service.list_user_events(actor.id, include_attending)
    return [e.to_dict() for e in events]


@router.get("/me/upcoming")
async def list_my_upcoming(
    handler_type: Optional[str] = None,
    days: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_upcoming(actor.id, handler_type=handler_type, days=days)
    return [e.to_dict() for e in events]


@router.get("/me/today")
async def list_my_today(
    timezone: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_today(actor.id, timezone)
    return [e.to_dict() for e in events]


@router.get("/me/range")
async def list_my_range(
    start: str,
    end: str,
    handler_type: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    try:
        events = await engine.scheduling_service.list_by_date_range(
            actor.id,
            parse_datetime(start, "start"),
            parse_datetime(end, "end"),
            handler_type=handler_type,
        )
    except SchedulingError as e:
        raise http_error(e)
    return [e.to_dict() for e in events]
