"""
Monitoring - Benchmarks and Reports.

Labelled timers and benchmark records for measuring the engine
over data sets of different sizes, plus a summary report with
recommendations.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.clock import ClockProtocol, SystemClock

from .thresholds import DEFAULT_THRESHOLDS, PerformanceThresholds


logger = logging.getLogger(__name__)


# ============================================================
# TIMER
# ============================================================

class PerformanceTimer:
    """
    Labelled stopwatch.

    start(label) / end(label) pairs may overlap; end() without a
    label measures from the most recent start().
    """

    def __init__(self, clock: Optional[ClockProtocol] = None):
        self.clock = clock or SystemClock()
        self._start_ms: Optional[float] = None
        self._open: Dict[str, float] = {}
        self._measurements: Dict[str, float] = {}

    def start(self, label: Optional[str] = None) -> None:
        self._start_ms = self.clock.millis()
        if label:
            self._open[label] = self._start_ms

    def end(self, label: Optional[str] = None) -> float:
        """Elapsed milliseconds for label (or since the last start)."""
        now = self.clock.millis()
        if label and label in self._open:
            elapsed = now - self._open.pop(label)
            self._measurements[label] = elapsed
            return elapsed
        if self._start_ms is None:
            return 0.0
        return now - self._start_ms

    def get_measurements(self) -> Dict[str, float]:
        return dict(self._measurements)

    def clear(self) -> None:
        self._start_ms = None
        self._open.clear()
        self._measurements.clear()


# ============================================================
# BENCHMARKS
# ============================================================

@dataclass(frozen=True)
class PerformanceBenchmark:
    operation: str
    data_size: int
    execution_time: float
    memory_usage: float = 0.0
    timestamp_ms: float = 0.0


def create_performance_benchmark(
    operation: str,
    data_size: int,
    execution_time: float,
    memory_usage: float = 0.0,
    clock: Optional[ClockProtocol] = None,
) -> PerformanceBenchmark:
    clock = clock or SystemClock()
    return PerformanceBenchmark(
        operation=operation,
        data_size=data_size,
        execution_time=execution_time,
        memory_usage=memory_usage,
        timestamp_ms=clock.millis(),
    )


@dataclass
class PerformanceReport:
    total_operations: int
    average_execution_time: float
    max_execution_time: float
    min_execution_time: float
    total_memory_usage: float
    average_memory_usage: float
    details: List[PerformanceBenchmark] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, float]:
        return {
            "total_operations": self.total_operations,
            "average_execution_time": self.average_execution_time,
            "max_execution_time": self.max_execution_time,
            "min_execution_time": self.min_execution_time,
            "total_memory_usage": self.total_memory_usage,
            "average_memory_usage": self.average_memory_usage,
        }


def generate_performance_report(
    benchmarks: Sequence[PerformanceBenchmark],
    thresholds: Optional[PerformanceThresholds] = None,
) -> PerformanceReport:
    """
    Summarize benchmarks and suggest where to look.

    Recommendations are made when the average time exceeds the
    filter ceiling, the average memory exceeds the memory
    ceiling, or the slowest run exceeds twice the filter ceiling.
    """
    limits = thresholds or DEFAULT_THRESHOLDS
    details = list(benchmarks)
    if not details:
        return PerformanceReport(0, 0.0, 0.0, 0.0, 0.0, 0.0)

    times = [b.execution_time for b in details]
    memory = [b.memory_usage for b in details]
    report = PerformanceReport(
        total_operations=len(details),
        average_execution_time=sum(times) / len(times),
        max_execution_time=max(times),
        min_execution_time=min(times),
        total_memory_usage=sum(memory),
        average_memory_usage=sum(memory) / len(memory),
        details=details,
    )

    if report.average_execution_time > limits.filter_max_time_ms:
        report.recommendations.append("Consider optimizing filtering logic for better performance")
    if report.average_memory_usage > limits.max_memory_usage_bytes:
        report.recommendations.append("Memory usage is high, consider paginating or virtualizing the view")
    if report.max_execution_time > limits.filter_max_time_ms * 2:
        report.recommendations.append("Some operations are significantly slower than average, investigate outliers")

    for line in report.recommendations:
        logger.info(f"Performance recommendation: {line}")
    return report


__all__ = [
    "PerformanceTimer",
    "PerformanceBenchmark",
    "create_performance_benchmark",
    "PerformanceReport",
    "generate_performance_report",
]
