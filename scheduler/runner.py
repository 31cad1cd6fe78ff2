"""Refresh scheduler -- asyncio loop that triggers periodic market refreshes.

Every `interval` seconds (first run immediately) the loop asks the
SyncCoordinator for a refresh. If a manual refresh is still loading, the
coordinator ignores the request and the loop simply waits for the next tick.
"""

from __future__ import annotations

import asyncio
import logging

from sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Periodically refreshes market data.

    Usage:
        scheduler = RefreshScheduler(coordinator, interval=300)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, coordinator: SyncCoordinator, interval: float = 300) -> None:
        if interval <= 0:
            raise ValueError(f"refresh interval must be positive, got {interval}")
        self._coordinator = coordinator
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        """Number of refresh attempts the loop has made."""
        return self._ticks

    async def start(self) -> None:
        """Start the refresh loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Refresh scheduler started (every %gs)", self._interval)

    async def stop(self) -> None:
        """Stop the refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Refresh scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            self._ticks += 1
            try:
                await self._coordinator.refresh()
            except Exception:
                logger.exception("Error in refresh loop")
            await asyncio.sleep(self._interval)
