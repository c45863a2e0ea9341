"""Fixed-period polling task with explicit start/stop.

At most one poll is in flight per poller: a tick that arrives while the
previous poll is still running is skipped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicPoller:
    """Calls ``poll`` immediately and then every ``interval_s`` seconds.

    Usage::

        poller = PeriodicPoller(60, monitor.refresh, name="population")
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        interval_s: float,
        poll: Callable[[], Awaitable[object]],
        *,
        name: str = "poller",
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._interval_s = interval_s
        self._poll = poll
        self._name = name
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self.completed_polls = 0
        self.skipped_polls = 0

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the polling loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)
        logger.info("Started %s polling every %gs", self._name, self._interval_s)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped %s polling", self._name)

    async def poll_once(self) -> bool:
        """Run one poll unless one is already in flight. Returns True if it ran."""
        if self._lock.locked():
            self.skipped_polls += 1
            logger.debug("%s poll still in flight; skipping tick", self._name)
            return False
        async with self._lock:
            try:
                await self._poll()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s poll failed", self._name)
                return False
            self.completed_polls += 1
            return True

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval_s)
