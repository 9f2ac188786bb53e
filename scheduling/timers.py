"""
Scheduling - Timer Queue.

============================================================
PURPOSE
============================================================
The single logical timer queue every scheduling primitive
runs on. Execution is cooperative and single-threaded: a
callback runs to completion before the next one starts.

IMPLEMENTATIONS:
- ManualTimerQueue: time moves only when advance() is called.
  Backed by a MockClock. Used by tests and replays.
- AsyncioTimerQueue: backed by loop.call_later on a running
  asyncio event loop. Used by interactive sessions.

FAILURE POLICY:
- A callback that raises is logged and the queue keeps going

============================================================
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from core.clock import MockClock
from core.exceptions import InvalidConfigError, require_callable, require_non_negative


logger = logging.getLogger(__name__)


# ============================================================
# TIMER HANDLE
# ============================================================

class TimerHandle:
    """A scheduled (one-shot or repeating) callback."""

    def __init__(
        self,
        callback: Callable[[], None],
        due_ms: float,
        interval_ms: Optional[float] = None,
        label: Optional[str] = None,
    ):
        self.callback = callback
        self.due_ms = due_ms
        self.interval_ms = interval_ms
        self.label = label
        self.fire_count = 0
        self._cancelled = False
        self._on_cancel: Optional[Callable[["TimerHandle"], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def repeating(self) -> bool:
        return self.interval_ms is not None

    @property
    def active(self) -> bool:
        """True while the callback may still run."""
        if self._cancelled:
            return False
        return self.repeating or self.fire_count == 0

    def cancel(self) -> None:
        """Cancel the timer. Cancelling twice is a no-op."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel(self)

    def __repr__(self) -> str:
        kind = "repeating" if self.repeating else "once"
        return f"TimerHandle(label={self.label!r}, due_ms={self.due_ms:.1f}, {kind}, active={self.active})"


# ============================================================
# TIMER QUEUE PROTOCOL
# ============================================================

class TimerQueue(ABC):
    """Abstract single logical timer queue."""

    @abstractmethod
    def now_ms(self) -> float:
        """Current queue time in milliseconds."""
        pass

    @abstractmethod
    def _schedule(self, handle: TimerHandle) -> None:
        """Arrange for handle to fire at handle.due_ms."""
        pass

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        label: Optional[str] = None,
    ) -> TimerHandle:
        """
        Run callback once after delay_ms.

        Args:
            delay_ms: Delay in milliseconds (>= 0)
            callback: Zero-argument callable
            label: Optional name for logging and leak reports
        """
        require_non_negative("delay_ms", delay_ms, required=True)
        require_callable("callback", callback)
        handle = TimerHandle(callback, self.now_ms() + delay_ms, label=label)
        self._schedule(handle)
        return handle

    def call_repeating(
        self,
        interval_ms: float,
        callback: Callable[[], None],
        label: Optional[str] = None,
    ) -> TimerHandle:
        """Run callback every interval_ms until the handle is cancelled."""
        require_non_negative("interval_ms", interval_ms, required=True)
        require_callable("callback", callback)
        if interval_ms == 0:
            raise InvalidConfigError("interval_ms", interval_ms, "must be positive for repeating timers")
        handle = TimerHandle(callback, self.now_ms() + interval_ms, interval_ms=interval_ms, label=label)
        self._schedule(handle)
        return handle

    def _fire(self, handle: TimerHandle) -> None:
        """Run a due handle, logging (not raising) callback failures."""
        if handle.cancelled:
            return
        handle.fire_count += 1
        try:
            handle.callback()
        except Exception:
            logger.exception(f"Timer callback failed: {handle.label or handle.callback!r}")
        if handle.repeating and not handle.cancelled:
            handle.due_ms = handle.due_ms + handle.interval_ms
            self._schedule(handle)


# ============================================================
# MANUAL TIMER QUEUE (DETERMINISTIC)
# ============================================================

class ManualTimerQueue(TimerQueue):
    """
    Deterministic timer queue driven by a MockClock.

    Timers fire in due order, ties in scheduling order. During
    advance() the clock is moved to each timer's due time before
    its callback runs, so callbacks observe the time they were
    scheduled for.
    """

    def __init__(self, clock: Optional[MockClock] = None):
        self.clock = clock or MockClock()
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self.clock.millis()

    def _schedule(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.due_ms, next(self._seq), handle))

    @property
    def pending_count(self) -> int:
        """Number of timers that have not fired or been cancelled."""
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def next_due_ms(self) -> Optional[float]:
        """Due time of the earliest live timer, if any."""
        self._drop_cancelled()
        return self._heap[0][0] if self._heap else None

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

    def advance(self, ms: float) -> int:
        """
        Move time forward by ms, firing every timer that falls due.

        Returns:
            Number of callbacks run
        """
        require_non_negative("ms", ms, required=True)
        target = self.now_ms() + ms
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0][0] > target:
                break
            due, _, handle = heapq.heappop(self._heap)
            self._move_to(due)
            self._fire(handle)
            fired += 1
        self._move_to(target)
        return fired

    def run_pending(self) -> int:
        """Fire timers already due at the current time."""
        return self.advance(0)

    def run_until_idle(self, max_callbacks: int = 10_000) -> int:
        """
        Advance straight to each next timer until none remain.

        Repeating timers never go idle; max_callbacks bounds the run.
        """
        fired = 0
        while fired < max_callbacks:
            due = self.next_due_ms()
            if due is None:
                break
            fired += self.advance(max(0.0, due - self.now_ms()))
        return fired

    def _move_to(self, target_ms: float) -> None:
        delta = target_ms - self.now_ms()
        if delta > 0:
            self.clock.advance_ms(delta)


# ============================================================
# ASYNCIO TIMER QUEUE (PRODUCTION)
# ============================================================

class AsyncioTimerQueue(TimerQueue):
    """
    Timer queue on an asyncio event loop.

    The loop is resolved lazily so the queue can be built before
    the loop starts; scheduling must happen on the loop thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0

    def _schedule(self, handle: TimerHandle) -> None:
        delay_s = max(0.0, handle.due_ms - self.now_ms()) / 1000.0
        loop_handle = self.loop.call_later(delay_s, self._fire, handle)

        def _cancel(_: TimerHandle) -> None:
            loop_handle.cancel()

        handle._on_cancel = _cancel


__all__ = [
    "TimerHandle",
    "TimerQueue",
    "ManualTimerQueue",
    "AsyncioTimerQueue",
]
