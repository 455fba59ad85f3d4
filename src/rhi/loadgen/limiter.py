from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable

from rhi.errors import RunCancelledError


class RateLimiter:
    """At most ``rate`` acquisitions per second across all callers; 0 disables it."""

    def __init__(
        self,
        rate: float,
        stop: asyncio.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rate = rate
        self.interval = 1.0 / rate if rate > 0 else 0.0
        self._stop = stop if stop is not None else asyncio.Event()
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot: float | None = None

    def _reserve(self) -> float:
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.interval
            return slot - now

    async def acquire(self) -> None:
        if self._stop.is_set():
            raise RunCancelledError()
        if self.interval == 0:
            # Keep the event loop responsive when nothing else awaits.
            await asyncio.sleep(0)
            if self._stop.is_set():
                raise RunCancelledError()
            return
        delay = self._reserve()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise RunCancelledError()
