"""
Scheduling - Throttle.

Bound a function to at most one execution per interval.

The first call of an interval runs immediately (leading edge).
Calls made while the interval is open are coalesced: when the
interval ends the latest arguments are delivered (trailing
edge) and a new interval opens. With nothing pending the
throttler goes idle.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from core.exceptions import ConfigurationError, require_callable, require_non_negative

from .timers import TimerHandle, TimerQueue


logger = logging.getLogger(__name__)


class Throttler:
    """Throttled wrapper around fn."""

    def __init__(
        self,
        fn: Callable[..., Any],
        interval_ms: float,
        queue: Optional[TimerQueue] = None,
        *,
        leading: bool = True,
        trailing: bool = True,
        name: Optional[str] = None,
        leak_detector: Optional[Any] = None,
    ):
        require_callable("fn", fn)
        require_non_negative("interval_ms", interval_ms, required=True)
        if not leading and not trailing:
            raise ConfigurationError(
                "Throttler with leading and trailing disabled would never run",
                config_key="trailing",
            )
        if queue is None and interval_ms > 0:
            raise ConfigurationError("Throttler needs a timer queue when interval_ms > 0", config_key="queue")

        self.fn = fn
        self.interval_ms = interval_ms
        self.leading = leading
        self.trailing = trailing
        self.name = name or getattr(fn, "__name__", "throttled")

        self._queue = queue
        self._leak_detector = leak_detector
        self._timer: Optional[TimerHandle] = None
        self._pending_args: Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]] = None

        self.call_count = 0
        self.invoke_count = 0
        self.last_result: Any = None

    @property
    def in_interval(self) -> bool:
        return self._timer is not None

    @property
    def pending(self) -> bool:
        return self._pending_args is not None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.call_count += 1

        if self.interval_ms == 0:
            return self._invoke(args, kwargs)

        if self._timer is None:
            self._open_interval()
            if self.leading:
                return self._invoke(args, kwargs)

        if self.trailing:
            self._pending_args = (args, kwargs)
        return self.last_result

    def cancel(self) -> None:
        """Close the current interval and drop pending arguments."""
        self._close_interval()
        self._pending_args = None

    def flush(self) -> Any:
        """Deliver pending arguments now and close the interval."""
        call_args, self._pending_args = self._pending_args, None
        self._close_interval()
        if call_args is not None:
            return self._invoke(*call_args)
        return self.last_result

    def _open_interval(self) -> None:
        self._timer = self._queue.call_later(self.interval_ms, self._on_interval_end, label=self.name)
        if self._leak_detector is not None:
            self._leak_detector.track_timeout(self._timer, label=self.name)

    def _close_interval(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        if self._leak_detector is not None:
            self._leak_detector.release_timeout(self._timer)
        self._timer = None

    def _on_interval_end(self) -> None:
        handle, self._timer = self._timer, None
        if handle is not None and self._leak_detector is not None:
            self._leak_detector.release_timeout(handle)

        call_args, self._pending_args = self._pending_args, None
        if call_args is None:
            return
        self._open_interval()
        self._invoke(*call_args)

    def _invoke(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        self.invoke_count += 1
        self.last_result = self.fn(*args, **kwargs)
        return self.last_result

    def __repr__(self) -> str:
        return f"Throttler(name={self.name!r}, interval_ms={self.interval_ms}, in_interval={self.in_interval})"


def throttle(
    fn: Callable[..., Any],
    interval_ms: float,
    queue: Optional[TimerQueue] = None,
    *,
    leading: bool = True,
    trailing: bool = True,
    name: Optional[str] = None,
    leak_detector: Optional[Any] = None,
) -> Throttler:
    """Wrap fn in a Throttler."""
    return Throttler(
        fn,
        interval_ms,
        queue,
        leading=leading,
        trailing=trailing,
        name=name,
        leak_detector=leak_detector,
    )


__all__ = [
    "Throttler",
    "throttle",
]
