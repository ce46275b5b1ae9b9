"""
Scheduler Service

Background asyncio task that triggers the batch processor, either every
poll_interval seconds or at the fire times of a cron expression.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from croniter import croniter

from ..clock import Clock, utc_now
from .batch_processor import BatchProcessor

logger = logging.getLogger("cadence.services.scheduler")


class SchedulerService:
    """
    Periodic trigger for batch processing.

    When cron_expression is set it takes precedence over poll_interval.
    A failing batch pass is logged and the loop carries on.
    """

    def __init__(
        self,
        batch_processor: BatchProcessor,
        poll_interval: int = 60,
        cron_expression: Optional[str] = None,
        enabled: bool = True,
        clock: Clock = utc_now,
    ):
        if cron_expression and not croniter.is_valid(cron_expression):
            raise ValueError(f"Invalid cron expression: {cron_expression}")
        self.batch_processor = batch_processor
        self.poll_interval = poll_interval
        self.cron_expression = cron_expression or None
        self.enabled = enabled
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self):
        """Start the scheduler background task"""
        if not self.enabled:
            logger.info("Scheduler is disabled (SCHEDULER_ENABLED=false)")
            return

        if self._running:
            logger.warning("Scheduler is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        if self.cron_expression:
            logger.info(f"Scheduler started (cron='{self.cron_expression}')")
        else:
            logger.info(f"Scheduler started (poll_interval={self.poll_interval}s)")

    async def stop(self):
        """Stop the scheduler background task"""
        if self._task is None:
            return
        self._running = False
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Scheduler stopped")

    async def run_once(self):
        """Run a single batch pass, logging instead of raising"""
        try:
            return await self.batch_processor.process_due_events()
        except Exception as e:
            logger.error(f"Scheduler batch error: {e}")
            return None

    def seconds_until_next_run(self) -> float:
        if not self.cron_expression:
            return float(self.poll_interval)
        now = self.clock()
        next_fire = croniter(self.cron_expression, now).get_next(datetime)
        return max(0.0, (next_fire - now).total_seconds())

    async def _poll_loop(self):
        """Main polling loop"""
        while self._running:
            # cron mode waits for the first fire time before running
            if self.cron_expression:
                if not await self._sleep(self.seconds_until_next_run()):
                    break
                await self.run_once()
            else:
                await self.run_once()
                if not await self._sleep(self.poll_interval):
                    break

    async def _sleep(self, seconds: float) -> bool:
        try:
            await asyncio.sleep(seconds)
        except asyncio.CancelledError:
            return False
        return True

    @property
    def is_running(self) -> bool:
        return self._running
