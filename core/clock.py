"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Provides a testable clock abstraction for the query engine.

- Cache expiry, debounce windows and latency samples read time
  through this clock, never through time.time() directly
- Enables deterministic tests (time only moves when told to)
- Millisecond resolution for scheduling decisions

============================================================
DESIGN PRINCIPLES
============================================================
- Clocks are constructed and injected, there is no global clock
- UTC only for wall-clock values
- millis() is monotonic on the system clock
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import threading
import time


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the engine clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    @abstractmethod
    def millis(self) -> float:
        """Get a millisecond reading suitable for measuring intervals."""
        pass


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """
    Production clock using actual system time.

    Wall-clock values are UTC; millis() comes from the
    monotonic clock so it never jumps backwards.
    """

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    def millis(self) -> float:
        """Get monotonic milliseconds."""
        return time.monotonic() * 1000.0


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        initial_time = initial_time or datetime.now(timezone.utc)
        if initial_time.tzinfo is None:
            initial_time = initial_time.replace(tzinfo=timezone.utc)
        self._time = initial_time
        self._origin = initial_time
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Get current (mocked) datetime."""
        with self._lock:
            return self._time

    def millis(self) -> float:
        """Milliseconds elapsed since the clock was created."""
        with self._lock:
            return ((self._time - self._origin) // timedelta(microseconds=1)) / 1000.0

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (milliseconds, minutes, hours, ...)
        """
        with self._lock:
            delta = timedelta(seconds=seconds, **kwargs)
            self._time = self._time + delta

    def advance_ms(self, milliseconds: float) -> None:
        """Advance time by a number of milliseconds."""
        self.advance(milliseconds=milliseconds)


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
]
