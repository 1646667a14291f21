# Program: Periodic Task Handles
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Cancellable fixed-interval polling on the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], Awaitable[None]]


class PeriodicTask:
    """Run ``tick`` now and then every ``interval_s`` until stopped.

    Ticks never overlap: the next sleep starts after the previous tick
    returns. An exception escaping a tick is logged and polling continues.
    """

    def __init__(self, tick: Tick, interval_s: float, name: str = "poll") -> None:
        self._tick = tick
        self.interval_s = interval_s
        self.name = name
        self._task: Optional[asyncio.Task[None]] = None

    @classmethod
    def start(cls, tick: Tick, interval_s: float, name: str = "poll") -> "PeriodicTask":
        handle = cls(tick, interval_s, name)
        handle._task = asyncio.get_running_loop().create_task(handle._run(), name=name)
        return handle

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001 - a failed tick must not end polling
                logger.exception("%s tick failed", self.name)
            await asyncio.sleep(self.interval_s)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("%s stopped", self.name)


# Created by Dr. Z. Bakhtiyorov
