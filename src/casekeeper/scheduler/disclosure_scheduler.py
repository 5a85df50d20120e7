"""Scheduler for the periodic override-code disclosure sweep.

Runs the sweep once as soon as it starts, then every ``get_interval()``
seconds until shut down. A failing sweep is logged and retried on the next
tick; it never stops the loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from casekeeper.util.logger import get_logger

logger = get_logger("disclosure_scheduler")


class DisclosureScheduler:
    """
    Background task runner for the disclosure sweep.

    Args:
        sweep: Async callable performing one sweep.
        get_interval: Callable returning the interval in seconds (called at start).
        name: Label used in log messages.
    """

    def __init__(
        self,
        sweep: Callable[[], Awaitable[Any]],
        get_interval: Callable[[], float],
        name: str = "DISCLOSURE SCHEDULER",
    ) -> None:
        self._sweep = sweep
        self._get_interval = get_interval
        self._name = name
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        """Run a single sweep, logging instead of raising on failure."""
        try:
            await self._sweep()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[%s] Sweep failed: %s", self._name, exc)

    async def _run_loop(self, interval: float) -> None:
        logger.info("[%s] Starting periodic sweep (interval=%.1fs)", self._name, interval)
        try:
            while True:
                await self.run_once()
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("[%s] Periodic sweep cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.running:
            logger.warning("[%s] Sweep task already running", self._name)
            return
        self._task = asyncio.create_task(self._run_loop(self._get_interval()))

    async def shutdown(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[%s] Scheduler shutdown complete", self._name)
