"""
Scheduling - Debounce.

============================================================
PURPOSE
============================================================
Collapse a burst of calls into at most one execution carrying
the most recent arguments.

STATE MACHINE:
    IDLE --call--> PENDING --quiet period--> IDLE   (trailing edge)
    PENDING --call--> PENDING                       (timer re-armed)
    PENDING --max wait elapsed--> FORCED --> IDLE   (forced execution)

A debouncer owns exactly one timer handle at a time.

============================================================
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from core.exceptions import (
    ConfigurationError,
    InvalidConfigError,
    require_callable,
    require_non_negative,
)

from .timers import TimerHandle, TimerQueue


logger = logging.getLogger(__name__)


CallArgs = Tuple[Tuple[Any, ...], Dict[str, Any]]


class DebounceState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FORCED = "forced"


class Debouncer:
    """
    Debounced wrapper around fn.

    Calling the debouncer records the arguments and (re)arms the
    timer. The wrapped function runs:
    - on the leading edge (first call of a burst) when leading=True
    - after delay_ms of silence when trailing=True and the latest
      arguments have not been delivered yet
    - once max_wait_ms has elapsed since the first call of the
      burst, either when the max-wait timer fires or on a call
      that arrives past the deadline

    Example:
        >>> search = Debouncer(run_search, 300, queue, max_wait_ms=1000)
        >>> search("AA"); search("AAP"); search("AAPL")
        >>> queue.advance(300)   # run_search("AAPL") once
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        delay_ms: float,
        queue: Optional[TimerQueue] = None,
        *,
        leading: bool = False,
        trailing: bool = True,
        max_wait_ms: Optional[float] = None,
        name: Optional[str] = None,
        leak_detector: Optional[Any] = None,
    ):
        require_callable("fn", fn)
        require_non_negative("delay_ms", delay_ms, required=True)
        require_non_negative("max_wait_ms", max_wait_ms)
        if max_wait_ms is not None and max_wait_ms < delay_ms:
            raise InvalidConfigError(
                "max_wait_ms", max_wait_ms, f"must not be shorter than delay_ms ({delay_ms})"
            )
        if not leading and not trailing and max_wait_ms is None:
            raise ConfigurationError(
                "Debouncer with leading and trailing disabled would never run",
                config_key="trailing",
            )
        if queue is None and delay_ms > 0:
            raise ConfigurationError("Debouncer needs a timer queue when delay_ms > 0", config_key="queue")

        self.fn = fn
        self.delay_ms = delay_ms
        self.max_wait_ms = max_wait_ms
        self.leading = leading
        self.trailing = trailing
        self.name = name or getattr(fn, "__name__", "debounced")

        self._queue = queue
        self._leak_detector = leak_detector
        self._state = DebounceState.IDLE
        self._timer: Optional[TimerHandle] = None
        self._timer_is_max_wait = False
        self._pending_args: Optional[CallArgs] = None
        self._burst_start_ms: Optional[float] = None
        self._quiet_deadline_ms: Optional[float] = None

        self.call_count = 0
        self.invoke_count = 0
        self.last_result: Any = None

    # --------------------------------------------------------
    # PUBLIC API
    # --------------------------------------------------------

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def pending(self) -> bool:
        """True while undelivered arguments are waiting on the timer."""
        return self._state is DebounceState.PENDING and self._pending_args is not None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.call_count += 1

        if self.delay_ms == 0:
            return self._invoke((args, kwargs))

        now = self._queue.now_ms()
        self._pending_args = (args, kwargs)

        if self._state is not DebounceState.PENDING:
            self._burst_start_ms = now
            self._state = DebounceState.PENDING
            self._quiet_deadline_ms = now + self.delay_ms
            self._arm(now)
            if self.leading:
                call_args, self._pending_args = self._pending_args, None
                return self._invoke(call_args)
            return self.last_result

        if self.max_wait_ms is not None and now - self._burst_start_ms >= self.max_wait_ms:
            self._force()
            return self.last_result

        self._quiet_deadline_ms = now + self.delay_ms
        self._arm(now)
        return self.last_result

    def cancel(self) -> None:
        """Drop pending work without running it."""
        self._disarm()
        self._reset()

    def flush(self) -> Any:
        """Deliver pending arguments now, if there are any."""
        if self._state is DebounceState.IDLE:
            return self.last_result
        call_args = self._pending_args
        self._disarm()
        self._reset()
        if call_args is not None:
            return self._invoke(call_args)
        return self.last_result

    # --------------------------------------------------------
    # TIMER HANDLING
    # --------------------------------------------------------

    def _arm(self, now: float) -> None:
        self._disarm()
        deadline = self._quiet_deadline_ms
        self._timer_is_max_wait = False
        if self.max_wait_ms is not None:
            max_deadline = self._burst_start_ms + self.max_wait_ms
            if max_deadline < deadline:
                deadline = max_deadline
                self._timer_is_max_wait = True
        self._timer = self._queue.call_later(max(0.0, deadline - now), self._on_timer, label=self.name)
        if self._leak_detector is not None:
            self._leak_detector.track_timeout(self._timer, label=self.name)

    def _disarm(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._release(self._timer)
        self._timer = None

    def _release(self, handle: TimerHandle) -> None:
        if self._leak_detector is not None:
            self._leak_detector.release_timeout(handle)

    def _on_timer(self) -> None:
        handle, self._timer = self._timer, None
        if handle is not None:
            self._release(handle)

        if self._timer_is_max_wait:
            self._force()
            return

        call_args = self._pending_args
        self._reset()
        if self.trailing and call_args is not None:
            self._invoke(call_args)

    def _force(self) -> None:
        self._disarm()
        self._state = DebounceState.FORCED
        call_args = self._pending_args
        self._pending_args = None
        logger.debug(f"Debounce max wait reached for {self.name}")
        try:
            if call_args is not None:
                self._invoke(call_args)
        finally:
            # a call made by fn itself has already started a new burst
            if self._state is DebounceState.FORCED:
                self._reset()

    def _reset(self) -> None:
        self._state = DebounceState.IDLE
        self._pending_args = None
        self._burst_start_ms = None
        self._quiet_deadline_ms = None
        self._timer_is_max_wait = False

    def _invoke(self, call_args: CallArgs) -> Any:
        args, kwargs = call_args
        self.invoke_count += 1
        self.last_result = self.fn(*args, **kwargs)
        return self.last_result

    def __repr__(self) -> str:
        return f"Debouncer(name={self.name!r}, delay_ms={self.delay_ms}, state={self._state.value})"


def debounce(
    fn: Callable[..., Any],
    delay_ms: float,
    queue: Optional[TimerQueue] = None,
    *,
    leading: bool = False,
    trailing: bool = True,
    max_wait_ms: Optional[float] = None,
    name: Optional[str] = None,
    leak_detector: Optional[Any] = None,
) -> Debouncer:
    """Wrap fn in a Debouncer."""
    return Debouncer(
        fn,
        delay_ms,
        queue,
        leading=leading,
        trailing=trailing,
        max_wait_ms=max_wait_ms,
        name=name,
        leak_detector=leak_detector,
    )


__all__ = [
    "DebounceState",
    "Debouncer",
    "debounce",
]
