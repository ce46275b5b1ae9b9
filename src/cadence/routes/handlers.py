"""
Handler Routes

List registered handlers and toggle them at runtime.
"""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..errors import SchedulingError
from ..models.actor import Actor
from ..services.engine_service import get_engine_service
from .auth import get_current_actor
from .common import http_error

logger = logging.getLogger("cadence.routes.handlers")
router = APIRouter(prefix="/handlers", tags=["handlers"])


class SetEnabledRequest(BaseModel):
    enabled: bool


@router.get("")
async def list_handlers(actor: Actor = Depends(get_current_actor)):
    engine = get_engine_service()
    return [
        {**registration.handler.to_dict(), "enabled": registration.enabled}
        for registration in engine.handler_registry.list_all()
    ]


@router.patch("/{handler_type}")
async def set_handler_enabled(
    handler_type: str,
    request: SetEnabledRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Enable or disable a handler until the next restart"""
    engine = get_engine_service()
    try:
        engine.handler_registry.set_enabled(handler_type, request.enabled)
    except SchedulingError as e:
        raise http_error(e)
    logger.info(f"Handler {handler_type} toggled by {actor.id}")
    return {"type": handler_type, "enabled": engine.handler_registry.is_enabled(handler_type)}
