"""
Monitoring - Memory Growth Monitor.

Keeps a short ring of memory snapshots and flags sustained
growth. The default probe reads the current traced size from
tracemalloc; tests inject their own probe.
"""

import logging
import tracemalloc
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from core.clock import ClockProtocol, SystemClock
from core.exceptions import require_non_negative


logger = logging.getLogger(__name__)


DEFAULT_MAX_SNAPSHOTS = 10
MIN_SNAPSHOTS_FOR_ANALYSIS = 3

# bytes per second
DEFAULT_LEAK_GROWTH_RATE = 1000.0


def traced_memory_bytes() -> int:
    """Bytes currently allocated according to tracemalloc (0 if not tracing)."""
    if not tracemalloc.is_tracing():
        return 0
    current, _peak = tracemalloc.get_traced_memory()
    return current


@dataclass(frozen=True)
class MemorySnapshot:
    timestamp_ms: float
    memory_bytes: int


@dataclass(frozen=True)
class MemoryGrowth:
    has_leak: bool
    growth_rate: float
    """Bytes per second between the oldest and newest snapshot."""
    total_growth: int


class MemoryGrowthMonitor:
    """
    Snapshot ring with a growth-rate leak heuristic.

    Example:
        >>> monitor = MemoryGrowthMonitor()
        >>> monitor.start()
        >>> for _ in range(5):
        ...     run_queries(); monitor.take_snapshot()
        >>> monitor.detect_growth().has_leak
    """

    def __init__(
        self,
        clock: Optional[ClockProtocol] = None,
        probe: Optional[Callable[[], int]] = None,
        max_snapshots: int = DEFAULT_MAX_SNAPSHOTS,
        leak_growth_rate: float = DEFAULT_LEAK_GROWTH_RATE,
    ):
        require_non_negative("leak_growth_rate", leak_growth_rate)
        if max_snapshots < MIN_SNAPSHOTS_FOR_ANALYSIS:
            max_snapshots = MIN_SNAPSHOTS_FOR_ANALYSIS
        self.clock = clock or SystemClock()
        self.probe = probe or traced_memory_bytes
        self.leak_growth_rate = leak_growth_rate
        self._snapshots: Deque[MemorySnapshot] = deque(maxlen=max_snapshots)
        self._started_tracing = False

    def start(self) -> None:
        """Start tracemalloc if the default probe is in use and nothing traces yet."""
        if self.probe is traced_memory_bytes and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._started_tracing = True

    def stop(self) -> None:
        if self._started_tracing:
            tracemalloc.stop()
            self._started_tracing = False

    def take_snapshot(self) -> MemorySnapshot:
        snapshot = MemorySnapshot(timestamp_ms=self.clock.millis(), memory_bytes=int(self.probe()))
        self._snapshots.append(snapshot)
        return snapshot

    @property
    def snapshots(self) -> list:
        return list(self._snapshots)

    def detect_growth(self) -> MemoryGrowth:
        if len(self._snapshots) < MIN_SNAPSHOTS_FOR_ANALYSIS:
            return MemoryGrowth(has_leak=False, growth_rate=0.0, total_growth=0)

        first, last = self._snapshots[0], self._snapshots[-1]
        total_growth = last.memory_bytes - first.memory_bytes
        elapsed_s = (last.timestamp_ms - first.timestamp_ms) / 1000.0
        growth_rate = total_growth / elapsed_s if elapsed_s > 0 else 0.0
        has_leak = growth_rate > self.leak_growth_rate

        if has_leak:
            logger.warning(f"Memory growing at {growth_rate:.0f} B/s ({total_growth} bytes over {elapsed_s:.1f}s)")
        return MemoryGrowth(has_leak=has_leak, growth_rate=growth_rate, total_growth=total_growth)

    def clear(self) -> None:
        self._snapshots.clear()


__all__ = [
    "traced_memory_bytes",
    "MemorySnapshot",
    "MemoryGrowth",
    "MemoryGrowthMonitor",
]
