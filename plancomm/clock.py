"""Clock sources for the planning loop.

The engine never reads the clock itself; the caller samples ``now`` once per
cycle and passes it in. :class:`MonotonicClock` is used on the robot,
:class:`ManualClock` in simulation and tests.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class MonotonicClock:
    """Wall-clock-independent seconds from :func:`time.monotonic`."""

    def now(self) -> float:
        return time.monotonic()

    def elapsed_since(self, t: Optional[float]) -> Optional[float]:
        """Seconds since *t*, or None if *t* was never set."""
        if t is None:
            return None
        return self.now() - t


class ManualClock(MonotonicClock):
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, t: float) -> float:
        """Jump to absolute time *t* (must not be earlier than now)."""
        with self._lock:
            if t < self._now:
                raise ValueError(f"ManualClock cannot move backwards ({t} < {self._now})")
            self._now = float(t)
            return self._now
