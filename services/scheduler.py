"""Timer-driven refreshes sharing the orchestrator's in-flight guard."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from services.refresh import RefreshOrchestrator, RefreshStatus

logger = logging.getLogger(__name__)


class AutoRefresher:
    """Calls ``orchestrator.refresh()`` every ``interval`` seconds."""

    def __init__(self, orchestrator: RefreshOrchestrator, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.orchestrator = orchestrator
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info("Auto-refresh started every %.1fs", self.interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Auto-refresh stopped")

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                outcome = await self.orchestrator.refresh()
                if outcome.status is RefreshStatus.skipped:
                    logger.debug("Scheduled refresh skipped; previous fetch still running")
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Scheduled refresh raised")
            await asyncio.sleep(self.interval)
