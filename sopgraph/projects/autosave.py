"""Periodic autosave for an open project."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class AutosaveTask:
    """Runs `tick` every `interval` seconds until stopped.

    `tick` must look up the session's current state when it runs; nothing
    about the session is captured here.
    """

    def __init__(
        self,
        project_id: str,
        tick: Callable[[], Awaitable[object]],
        interval: float,
    ) -> None:
        self.project_id = project_id
        self._tick = tick
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            logger.warning("Autosave for %s already running", self.project_id)
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Autosave started for %s (every %ss)", self.project_id, self._interval
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Autosave stopped for %s", self.project_id)

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                await self._tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # The next tick retries; the diff still shows the change.
                logger.error("Autosave tick for %s failed: %s", self.project_id, e)
