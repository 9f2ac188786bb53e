"""
Monitoring Module Package.

Observes the engine without changing what it computes.

Components:
- performance_tracker: Per-label latency aggregates
- thresholds: Named ceilings and metric validation
- leak_detector: Outstanding timers and listeners
- memory: Memory growth heuristic
- benchmarks: Labelled timers and benchmark reports
"""

from .performance_tracker import (
    SLOW_RENDER_THRESHOLD_MS,
    EXCESSIVE_RENDER_COUNT,
    RenderMetrics,
    PerformanceTracker,
)
from .thresholds import (
    PerformanceThresholds,
    THRESHOLD_NAMES,
    DEFAULT_THRESHOLDS,
    PerformanceMetrics,
    Violation,
    ValidationResult,
    validate_performance,
)
from .leak_detector import ResourceKind, LeakReport, LeakDetector
from .memory import MemorySnapshot, MemoryGrowth, MemoryGrowthMonitor, traced_memory_bytes
from .benchmarks import (
    PerformanceTimer,
    PerformanceBenchmark,
    PerformanceReport,
    create_performance_benchmark,
    generate_performance_report,
)


__all__ = [
    # Tracker
    "SLOW_RENDER_THRESHOLD_MS",
    "EXCESSIVE_RENDER_COUNT",
    "RenderMetrics",
    "PerformanceTracker",
    # Thresholds
    "PerformanceThresholds",
    "THRESHOLD_NAMES",
    "DEFAULT_THRESHOLDS",
    "PerformanceMetrics",
    "Violation",
    "ValidationResult",
    "validate_performance",
    # Leaks
    "ResourceKind",
    "LeakReport",
    "LeakDetector",
    # Memory
    "MemorySnapshot",
    "MemoryGrowth",
    "MemoryGrowthMonitor",
    "traced_memory_bytes",
    # Benchmarks
    "PerformanceTimer",
    "PerformanceBenchmark",
    "PerformanceReport",
    "create_performance_benchmark",
    "generate_performance_report",
]
