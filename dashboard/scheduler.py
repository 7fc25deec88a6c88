"""Fixed-interval render refresh."""
import asyncio
import logging
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


class RenderScheduler:
    """
    Calls ``refresh()`` on every target each tick.

    Refresh only reads level state, so a tick landing between two drag
    updates repaints the latest write and never overrides it.
    """

    def __init__(self, targets: Callable[[], Iterable], interval_seconds: float = 1 / 30):
        self.targets = targets
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    def tick(self):
        for target in list(self.targets()):
            target.refresh()
        self.ticks += 1

    async def _run(self):
        while True:
            self.tick()
            await asyncio.sleep(self.interval_seconds)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
