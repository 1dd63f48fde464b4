"""
Single-flight polling loops.

A SingleFlightLoop calls its job every `interval` seconds. A tick that comes
due while the previous run is still in flight is skipped rather than queued,
so a slow remote never stacks overlapping runs. A job that raises is logged
and the loop keeps going.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class SingleFlightLoop:
    def __init__(
        self,
        name: str,
        interval: float,
        job: Callable[[], Awaitable[Any]],
        *,
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._job = job
        self._run_immediately = run_immediately
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self.runs = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def busy(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._tick_forever())
        logger.info("Polling loop started", extra={"loop": self.name, "interval_seconds": self.interval})

    async def _tick_forever(self) -> None:
        if self._run_immediately:
            self.trigger()
        while True:
            await asyncio.sleep(self.interval)
            self.trigger()

    def trigger(self) -> bool:
        """Start a run now unless one is already in flight. Returns True if started."""

        if self.busy:
            self.skipped += 1
            logger.debug("Polling tick skipped; previous run in flight", extra={"loop": self.name})
            return False
        self._in_flight = asyncio.get_running_loop().create_task(self._run_once())
        return True

    async def _run_once(self) -> None:
        self.runs += 1
        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Polling job failed", extra={"loop": self.name})

    async def stop(self) -> None:
        tasks = [t for t in (self._timer, self._in_flight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._timer = None
        self._in_flight = None
        logger.info("Polling loop stopped", extra={"loop": self.name})


__all__ = ["SingleFlightLoop"]
