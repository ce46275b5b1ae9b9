"""
Batch Processor

Runs every due auto-process event through its handler. Each event is
claimed, processed and recorded on its own; one failing event never
affects the others in the same pass.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..clock import Clock, utc_now
from ..errors import HandlerExecutionError, HandlerNotFoundError
from ..handlers.registry import HandlerRegistry
from ..models.scheduled_event import ProcessingStatus, ScheduledEvent
from .recurrence import next_occurrence
from .transitions import allocate_public_id, build_next_occurrence, mark_processed, record_failure

logger = logging.getLogger("cadence.services.batch")

_SUCCEEDED = "succeeded"
_FAILED = "failed"
_SKIPPED = "skipped"


@dataclass
class BatchResult:
    total: int = 0              # candidates selected for this pass
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0            # could not be claimed (processed elsewhere)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


class BatchProcessor:
    """
    Processes due scheduled events.

    Flow per event:
    1. Claim it (pending -> processing); skip when already claimed
    2. before_process -> process_scheduled -> mark completed
    3. after_process (failures only logged)
    4. Spawn the next occurrence for recurring events
    On failure the retry count goes up and the event is requeued or failed.
    """

    def __init__(
        self,
        event_storage,
        handler_registry: HandlerRegistry,
        max_retry_attempts: int = 3,
        concurrency: int = 1,
        clock: Clock = utc_now,
    ):
        self.storage = event_storage
        self.registry = handler_registry
        self.max_retry_attempts = max_retry_attempts
        self.concurrency = max(1, concurrency)
        self.clock = clock

    async def process_due_events(self) -> BatchResult:
        """Run one batch pass over everything due now"""
        candidates = await self.storage.list_due_for_processing(self.clock())
        result = BatchResult(total=len(candidates))
        if not candidates:
            return result

        logger.info(f"Batch found {len(candidates)} due event(s)")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(event: ScheduledEvent) -> str:
            async with semaphore:
                return await self._process_one(event)

        outcomes = await asyncio.gather(*(run(e) for e in candidates))
        for outcome in outcomes:
            setattr(result, outcome, getattr(result, outcome) + 1)

        logger.info(
            f"Batch complete: {result.succeeded} succeeded, {result.failed} failed, "
            f"{result.skipped} skipped (of {result.total})"
        )
        return result

    async def _process_one(self, candidate: ScheduledEvent) -> str:
        try:
            event = await self.storage.claim_for_processing(candidate.id, self.clock())
        except Exception as e:
            logger.error(f"Could not claim event {candidate.id}: {e}")
            return _FAILED
        if event is None:
            logger.info(f"Event {candidate.id} already claimed, skipping")
            return _SKIPPED

        handler = None
        try:
            handler = self.registry.get(event.handler_type)
            if handler is None:
                raise HandlerNotFoundError(event.handler_type)

            await handler.before_process(event.id)
            success = await handler.process_scheduled(event.id)
            if not success:
                raise HandlerExecutionError("Handler processing failed")

            # handler may have written to the row; build on its version
            processed = await self.storage.get_by_id(event.id) or event
            mark_processed(processed, self.clock())
            processed = await self.storage.update(processed)
        except Exception as e:
            await self._record_failure(event, e)
            if handler is not None:
                try:
                    await handler.on_process_error(event.id, e)
                except Exception as hook_error:
                    logger.error(f"on_process_error failed for event {event.id}: {hook_error}")
            return _FAILED

        logger.info(f"Processed event '{processed.title}' ({processed.id}) via {processed.handler_type}")

        try:
            await handler.after_process(processed.id)
        except Exception as e:
            logger.error(f"after_process failed for event {processed.id}: {e}")

        await self._spawn_next(processed)
        return _SUCCEEDED

    async def _record_failure(self, event: ScheduledEvent, error: Exception):
        try:
            current = await self.storage.get_by_id(event.id) or event
            record_failure(current, error, self.clock(), self.max_retry_attempts)
            await self.storage.update(current)
        except Exception as e:
            logger.error(f"Could not record failure for event {event.id}: {e}")
            return

        if current.processing_status == ProcessingStatus.FAILED:
            logger.error(
                f"Event {event.id} failed permanently after "
                f"{current.processing_retry_count} attempt(s): {current.processing_error}"
            )
        else:
            logger.warning(
                f"Event {event.id} failed (attempt {current.processing_retry_count}"
                f"/{self.max_retry_attempts}), requeued: {current.processing_error}"
            )

    async def _spawn_next(self, parent: ScheduledEvent) -> Optional[ScheduledEvent]:
        """Insert the following occurrence of a recurring event, if any"""
        try:
            next_start = next_occurrence(parent)
            if next_start is None:
                return None
            child = build_next_occurrence(
                parent,
                next_start,
                public_id=await allocate_public_id(self.storage),
                now=self.clock(),
            )
            child = await self.storage.create(child)
        except Exception as e:
            logger.error(f"Could not create next occurrence of event {parent.id}: {e}")
            return None

        logger.info(
            f"Spawned occurrence #{child.occurrence_number} of '{parent.title}' "
            f"({child.id}) at {child.start_time}"
        )
        return child
