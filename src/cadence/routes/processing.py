"""
Processing Routes

Manual batch trigger and the processing queues.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..models.actor import Actor
from ..services.engine_service import get_engine_service
from .auth import get_current_actor

logger = logging.getLogger("cadence.routes.processing")
router = APIRouter(prefix="/processing", tags=["processing"])


@router.post("/run")
async def run_batch(actor: Actor = Depends(get_current_actor)):
    """Process every due event now"""
    engine = get_engine_service()
    logger.info(f"Manual batch run requested by {actor.id}")
    result = await engine.batch_processor.process_due_events()
    return result.to_dict()


@router.get("/pending")
async def list_pending(actor: Actor = Depends(get_current_actor)):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_pending_processing()
    return [e.to_dict() for e in events]


@router.get("/failed")
async def list_failed(
    handler_type: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
):
    engine = get_engine_service()
    events = await engine.scheduling_service.list_failed(handler_type)
    return [e.to_dict() for e in events]
