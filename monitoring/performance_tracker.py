"""
Monitoring - Performance Tracker.

============================================================
PURPOSE
============================================================
Per-label latency aggregates for filter, sort and render
passes.

- Average is exact: total / count
- Samples above the slow threshold log a warning
- Crossing the excessive render count logs a warning once

Thread-safe; disabled trackers record nothing.

============================================================
"""

import dataclasses
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, Optional

from core.clock import ClockProtocol, SystemClock
from core.exceptions import require_non_negative


logger = logging.getLogger(__name__)


SLOW_RENDER_THRESHOLD_MS = 16.0
EXCESSIVE_RENDER_COUNT = 100


@dataclass
class RenderMetrics:
    """Aggregate of the samples recorded under one label."""

    label: str
    render_count: int = 0
    last_render_time: float = 0.0
    total_render_time: float = 0.0
    max_render_time: float = 0.0
    last_recorded_at_ms: Optional[float] = None

    @property
    def average_render_time(self) -> float:
        return self.total_render_time / self.render_count if self.render_count > 0 else 0.0

    def record(self, latency_ms: float, at_ms: float) -> None:
        self.render_count += 1
        self.last_render_time = latency_ms
        self.total_render_time += latency_ms
        self.max_render_time = max(self.max_render_time, latency_ms)
        self.last_recorded_at_ms = at_ms

    def to_dict(self) -> Dict[str, float]:
        return {
            "render_count": self.render_count,
            "last_render_time": self.last_render_time,
            "average_render_time": self.average_render_time,
            "max_render_time": self.max_render_time,
        }


class PerformanceTracker:
    """
    Records latency samples per label.

    Example:
        >>> tracker = PerformanceTracker()
        >>> with tracker.measure("filter"):
        ...     apply_filters(records, filters)
        >>> tracker.get_metrics("filter").render_count
        1
    """

    def __init__(
        self,
        clock: Optional[ClockProtocol] = None,
        slow_threshold_ms: float = SLOW_RENDER_THRESHOLD_MS,
        excessive_render_count: int = EXCESSIVE_RENDER_COUNT,
        enabled: bool = True,
    ):
        require_non_negative("slow_threshold_ms", slow_threshold_ms)
        require_non_negative("excessive_render_count", excessive_render_count)
        self.clock = clock or SystemClock()
        self.slow_threshold_ms = slow_threshold_ms
        self.excessive_render_count = excessive_render_count
        self.enabled = enabled
        self._metrics: Dict[str, RenderMetrics] = {}
        self._lock = threading.Lock()

    def track_render(self, label: str, latency_ms: float) -> None:
        """Record one sample for label."""
        if not self.enabled:
            return
        now = self.clock.millis()
        with self._lock:
            metrics = self._metrics.get(label)
            if metrics is None:
                metrics = RenderMetrics(label=label)
                self._metrics[label] = metrics
            metrics.record(latency_ms, now)
            count = metrics.render_count

        if latency_ms > self.slow_threshold_ms:
            logger.warning(f"Slow {label}: {latency_ms:.2f}ms (threshold {self.slow_threshold_ms}ms)")
        if count == self.excessive_render_count + 1:
            logger.warning(f"Excessive renders for {label}: more than {self.excessive_render_count}")

    @contextmanager
    def measure(self, label: str) -> Generator[None, None, None]:
        """Time the enclosed block and record it under label."""
        start = self.clock.millis()
        try:
            yield
        finally:
            self.track_render(label, self.clock.millis() - start)

    def get_metrics(self, label: str) -> Optional[RenderMetrics]:
        with self._lock:
            metrics = self._metrics.get(label)
            return dataclasses.replace(metrics) if metrics else None

    def get_all_metrics(self) -> Dict[str, RenderMetrics]:
        with self._lock:
            return {label: dataclasses.replace(m) for label, m in self._metrics.items()}

    def clear_metrics(self) -> None:
        with self._lock:
            self._metrics.clear()


__all__ = [
    "SLOW_RENDER_THRESHOLD_MS",
    "EXCESSIVE_RENDER_COUNT",
    "RenderMetrics",
    "PerformanceTracker",
]
