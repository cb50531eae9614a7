from __future__ import annotations

import threading
import time


class SystemClock:
    """Wall-clock seconds, truncated to int."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Explicitly driven clock for tests and simulations.

    Time is monotonically non-decreasing: moving it backwards raises.
    """

    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> int:
        with self._lock:
            if int(timestamp) < self._now:
                raise ValueError(f"clock cannot move backwards ({timestamp} < {self._now})")
            self._now = int(timestamp)
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot advance by a negative amount")
        return self.set(self._now + int(seconds))
