from __future__ import annotations

import threading


class RequestBudget:
    """Countdown of requests still to be issued, shared by all workers."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._remaining = total
        self._closed = False
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def claimed(self) -> int:
        with self._lock:
            return self.total - self._remaining

    @property
    def closed(self) -> bool:
        return self._closed

    def claim(self) -> bool:
        with self._lock:
            if self._closed or self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    def close(self) -> None:
        # Outstanding units are never handed out after this.
        with self._lock:
            self._closed = True
