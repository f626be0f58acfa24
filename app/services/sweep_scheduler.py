"""In-process periodic sweep runner, started from the FastAPI lifespan."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from app.config import settings
from app.schemas.sweep import SweepMetrics
from app.services.sweep_service import run_sweep

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Run a sweep every ``interval`` seconds until stopped.

    A sweep that raises or reports ``success=False`` is a failure. After
    ``max_failures`` in a row the loop cools down for ``recovery_delay``
    seconds before trying again.
    """

    def __init__(
        self,
        interval: float | None = None,
        recovery_delay: float | None = None,
        max_failures: int | None = None,
        sweep: Callable[[], Awaitable[SweepMetrics]] = run_sweep,
    ):
        self.interval = interval if interval is not None else settings.sweep_interval_seconds
        self.recovery_delay = (
            recovery_delay if recovery_delay is not None else settings.sweep_recovery_delay_seconds
        )
        self.max_failures = max(max_failures or settings.sweep_max_failures, 1)
        self._sweep = sweep
        self._task: asyncio.Task | None = None
        self.consecutive_failures = 0
        self.runs = 0
        self.recoveries = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="note-sweeper")
        logger.info("Sweep scheduler started (every %.0fs)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Sweep scheduler stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()
            if self.consecutive_failures >= self.max_failures:
                logger.error(
                    "Sweep failed %d times in a row, pausing for %.0fs",
                    self.consecutive_failures,
                    self.recovery_delay,
                )
                self.recoveries += 1
                await asyncio.sleep(self.recovery_delay)
                self.consecutive_failures = 0

    async def tick(self) -> SweepMetrics | None:
        """Run one sweep and update the failure streak."""
        self.runs += 1
        try:
            metrics = await self._sweep()
        except Exception:
            logger.exception("Sweep failed critically")
            self.consecutive_failures += 1
            return None

        if metrics.success:
            self.consecutive_failures = 0
        else:
            logger.warning("Sweep completed with errors: %s", metrics.errors)
            self.consecutive_failures += 1
        return metrics
