"""
Monitoring - Performance Thresholds and Validation.

============================================================
PURPOSE
============================================================
Compare one query's metrics against named ceilings.

THRESHOLDS (defaults):
- FILTER_MAX_TIME   100 ms
- SORT_MAX_TIME      50 ms
- MAX_MEMORY_USAGE   50 MiB
- MAX_RENDER_TIME    16 ms (one frame at 60 fps)
- CACHE_HIT_RATIO   0.8 (minimum, only when cache stats exist)

Overrides are applied to a copy; the defaults never change.

============================================================
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from core.exceptions import InvalidConfigError


logger = logging.getLogger(__name__)


# ============================================================
# THRESHOLDS
# ============================================================

@dataclass(frozen=True)
class PerformanceThresholds:
    """Named performance ceilings."""

    filter_max_time_ms: float = 100.0
    """Longest acceptable filter pass."""

    sort_max_time_ms: float = 50.0
    """Longest acceptable sort pass."""

    max_memory_usage_bytes: float = 50 * 1024 * 1024
    """Largest acceptable memory footprint."""

    max_render_time_ms: float = 16.0
    """Longest acceptable render."""

    min_cache_hit_ratio: float = 0.8
    """Lowest acceptable cache hit ratio."""

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "PerformanceThresholds":
        """
        Copy with some thresholds replaced.

        Keys may be the constant names (FILTER_MAX_TIME) or the
        field names (filter_max_time_ms).
        """
        if not overrides:
            return self
        updates = {}
        for key, value in overrides.items():
            attr = THRESHOLD_NAMES.get(key, key)
            if attr not in _FIELD_NAMES:
                raise InvalidConfigError(key, value, "unknown performance threshold")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidConfigError(key, value, "threshold must be a number")
            updates[attr] = float(value)
        return dataclasses.replace(self, **updates)


THRESHOLD_NAMES = {
    "FILTER_MAX_TIME": "filter_max_time_ms",
    "SORT_MAX_TIME": "sort_max_time_ms",
    "MAX_MEMORY_USAGE": "max_memory_usage_bytes",
    "MAX_RENDER_TIME": "max_render_time_ms",
    "CACHE_HIT_RATIO": "min_cache_hit_ratio",
}

_FIELD_NAMES = {f.name for f in dataclasses.fields(PerformanceThresholds)}

DEFAULT_THRESHOLDS = PerformanceThresholds()


# ============================================================
# METRICS
# ============================================================

@dataclass
class PerformanceMetrics:
    """Measurements of one query evaluation."""

    filter_time: float = 0.0
    sort_time: float = 0.0
    total_time: float = 0.0
    record_count: int = 0
    result_count: int = 0
    memory_usage: Optional[float] = None
    render_time: Optional[float] = None
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def cache_hit_ratio(self) -> Optional[float]:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total else None

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["cache_hit_ratio"] = self.cache_hit_ratio
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PerformanceMetrics":
        """Build from snake_case or camelCase keys; unknown keys are ignored."""
        values = {}
        for key, value in data.items():
            attr = _METRIC_ALIASES.get(key, key)
            if attr in _METRIC_FIELDS and value is not None:
                values[attr] = value
        return cls(**values)


_METRIC_FIELDS = {f.name for f in dataclasses.fields(PerformanceMetrics)}

_METRIC_ALIASES = {
    "filterTime": "filter_time",
    "sortTime": "sort_time",
    "totalTime": "total_time",
    "recordCount": "record_count",
    "resultCount": "result_count",
    "memoryUsage": "memory_usage",
    "renderTime": "render_time",
    "cacheHits": "cache_hits",
    "cacheMisses": "cache_misses",
}


# ============================================================
# VALIDATION
# ============================================================

@dataclass(frozen=True)
class Violation:
    """One exceeded threshold."""

    threshold: str
    expected: float
    actual: float

    def __str__(self) -> str:
        return f"{self.threshold}: expected {self.expected}, actual {self.actual}"


@dataclass
class ValidationResult:
    passed: bool
    violations: List[Violation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "violations": [dataclasses.asdict(v) for v in self.violations],
        }


def validate_performance(
    metrics: Union[PerformanceMetrics, Mapping[str, Any]],
    thresholds: Union[PerformanceThresholds, Mapping[str, Any], None] = None,
) -> ValidationResult:
    """
    Check metrics against thresholds.

    Args:
        metrics: Measurements (model or mapping)
        thresholds: Full thresholds, or a mapping of overrides
            applied on top of the defaults

    Returns:
        ValidationResult listing each exceeded threshold
    """
    if not isinstance(metrics, PerformanceMetrics):
        metrics = PerformanceMetrics.from_mapping(metrics)
    if isinstance(thresholds, PerformanceThresholds):
        limits = thresholds
    else:
        limits = DEFAULT_THRESHOLDS.with_overrides(thresholds)

    violations: List[Violation] = []

    def ceiling(name: str, expected: float, actual: Optional[float]) -> None:
        if actual is not None and actual > expected:
            violations.append(Violation(threshold=name, expected=expected, actual=actual))

    ceiling("FILTER_MAX_TIME", limits.filter_max_time_ms, metrics.filter_time)
    ceiling("SORT_MAX_TIME", limits.sort_max_time_ms, metrics.sort_time)
    ceiling("MAX_MEMORY_USAGE", limits.max_memory_usage_bytes, metrics.memory_usage)
    ceiling("MAX_RENDER_TIME", limits.max_render_time_ms, metrics.render_time)

    ratio = metrics.cache_hit_ratio
    if ratio is not None and ratio < limits.min_cache_hit_ratio:
        violations.append(Violation(
            threshold="CACHE_HIT_RATIO",
            expected=limits.min_cache_hit_ratio,
            actual=ratio,
        ))

    if violations:
        logger.warning(f"Performance validation failed: {', '.join(str(v) for v in violations)}")
    return ValidationResult(passed=not violations, violations=violations)


__all__ = [
    "PerformanceThresholds",
    "THRESHOLD_NAMES",
    "DEFAULT_THRESHOLDS",
    "PerformanceMetrics",
    "Violation",
    "ValidationResult",
    "validate_performance",
]
