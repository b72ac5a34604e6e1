"""
Trusted time source for the catalog core.

Cooldowns, the daily rollover and the transfer timelock are all evaluated
lazily against the clock at the moment of the next relevant call; there
are no background timers. A clock that fails or moves backwards raises
ClockUnavailable rather than letting an operation proceed on a guessed
time.

Usage:
    from clock import ManualClock

    clock = ManualClock(start=1_700_000_000)
    clock.advance(60)
"""

import threading
import time
from abc import ABC, abstractmethod

from errors import ClockUnavailable

SECONDS_PER_DAY = 86400


class Clock(ABC):
    """Abstract base class for time sources (whole Unix seconds)."""

    def __init__(self):
        self._last: int | None = None
        self._lock = threading.Lock()

    @abstractmethod
    def _read(self) -> int:
        """Return the current Unix time in seconds."""
        pass

    def now(self) -> int:
        """
        Current Unix time, guaranteed non-decreasing.

        Raises:
            ClockUnavailable: If the source fails or regresses
        """
        try:
            current = int(self._read())
        except ClockUnavailable:
            raise
        except Exception as e:
            raise ClockUnavailable(f"Clock read failed: {e}") from e

        with self._lock:
            if self._last is not None and current < self._last:
                raise ClockUnavailable(
                    "Clock moved backwards",
                    previous=self._last,
                    current=current,
                )
            self._last = current
        return current


class SystemClock(Clock):
    """Wall-clock time from the host."""

    def _read(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Explicitly driven clock for tests and replay tooling."""

    def __init__(self, start: int = 0):
        super().__init__()
        self._current = start
        self.available = True

    def _read(self) -> int:
        if not self.available:
            raise ClockUnavailable("Manual clock disabled")
        return self._current

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._current += seconds
        return self._current

    def set(self, timestamp: int) -> None:
        self._current = timestamp


def day_index(timestamp: int) -> int:
    """Calendar day number (UTC) for a Unix timestamp."""
    return timestamp // SECONDS_PER_DAY
