"""Fixed-interval background work on the running asyncio loop."""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger

TickCallback = Callable[[], Union[None, Awaitable[Any]]]


class PeriodicTask:
    """Run ``callback`` every ``interval_s`` seconds until stopped.

    The callback may be a plain function or a coroutine function. A tick that
    raises is logged and the next tick still runs on schedule.
    """

    def __init__(self, callback: TickCallback, interval_s: float, name: str = "periodic") -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.callback = callback
        self.interval_s = interval_s
        self.name = name
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop; must be called with an event loop running."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("Started periodic task {} every {:.2f}s", self.name, self.interval_s)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped periodic task {}", self.name)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                outcome = self.callback()
                if inspect.isawaitable(outcome):
                    await outcome
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("Periodic task {} tick failed", self.name)
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval_s - elapsed))
