"""
Time sources.

All timestamps in the OTP subsystem are wall-clock seconds as floats.
"""

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...


class SystemClock:
    """Wall clock backed by ``time.time()``"""

    def now(self) -> float:
        return time.time()


class FrozenClock:
    """
    Manually advanced clock for tests and simulations.

    Safe to advance from one thread while others read it.
    """

    def __init__(self, start: Optional[float] = None):
        self._now = time.time() if start is None else float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("FrozenClock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now
