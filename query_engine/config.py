"""
Query Engine - Configuration.

============================================================
PURPOSE
============================================================
All configuration for one query engine instance.

SOURCES:
- Defaults below
- QUERY_ENGINE_* environment variables (a .env file is loaded
  through python-dotenv) via QueryEngineConfig.from_env()

ENVIRONMENT VARIABLES:
- QUERY_ENGINE_FILTER_DELAY_MS
- QUERY_ENGINE_SORT_DELAY_MS
- QUERY_ENGINE_STATE_SYNC_DELAY_MS
- QUERY_ENGINE_CACHE_TTL_MS
- QUERY_ENGINE_MONITORING_ENABLED
- QUERY_ENGINE_SLOW_RENDER_MS

============================================================
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from caching import DEFAULT_TTL_MS
from core.exceptions import InvalidConfigError, require_non_negative
from monitoring import (
    EXCESSIVE_RENDER_COUNT,
    SLOW_RENDER_THRESHOLD_MS,
    PerformanceThresholds,
)
from scheduling import DebounceProfile, SchedulingConfig


logger = logging.getLogger(__name__)


ENV_PREFIX = "QUERY_ENGINE_"


# ============================================================
# CACHE CONFIGURATION
# ============================================================

@dataclass
class CacheConfig:
    """
    Memoization of query results and summaries.
    """

    enabled: bool = True
    """Serve unchanged queries from cache."""

    ttl_ms: float = DEFAULT_TTL_MS
    """Lifetime of a cached result."""

    def validate(self) -> None:
        require_non_negative("cache.ttl_ms", self.ttl_ms)


# ============================================================
# MONITORING CONFIGURATION
# ============================================================

@dataclass
class MonitoringConfig:
    """
    Latency tracking and leak detection.
    """

    enabled: bool = True
    """Record latency samples."""

    slow_render_ms: float = SLOW_RENDER_THRESHOLD_MS
    """Samples above this log a warning."""

    excessive_render_count: int = EXCESSIVE_RENDER_COUNT
    """Render count above which a warning is logged once per label."""

    track_leaks: bool = True
    """Register pending timers with the leak detector."""

    def validate(self) -> None:
        require_non_negative("monitoring.slow_render_ms", self.slow_render_ms)
        require_non_negative("monitoring.excessive_render_count", self.excessive_render_count)


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class QueryEngineConfig:
    """
    Master configuration for a query coordinator.
    """

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    thresholds: PerformanceThresholds = field(default_factory=PerformanceThresholds)

    def validate(self) -> None:
        """Raise ConfigurationError on the first invalid value."""
        self.scheduling.validate()
        self.cache.validate()
        self.monitoring.validate()

    @classmethod
    def for_testing(cls) -> "QueryEngineConfig":
        """Short delays and a one second cache for deterministic tests."""
        return cls(
            scheduling=SchedulingConfig(
                filter=DebounceProfile(name="filter", delay_ms=100, max_wait_ms=200),
                sort=DebounceProfile(name="sort", delay_ms=50, max_wait_ms=100),
                state_sync=DebounceProfile(name="state-sync", delay_ms=100, max_wait_ms=400),
            ),
            cache=CacheConfig(ttl_ms=1000),
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "QueryEngineConfig":
        """
        Build configuration from QUERY_ENGINE_* variables.

        Args:
            env_file: Path to a .env file (default: search upwards
                from the working directory)
        """
        load_dotenv(env_file)
        config = cls()

        filter_delay = _env_float("FILTER_DELAY_MS")
        sort_delay = _env_float("SORT_DELAY_MS")
        sync_delay = _env_float("STATE_SYNC_DELAY_MS")
        scheduling = config.scheduling
        if filter_delay is not None:
            scheduling.filter = _with_delay(scheduling.filter, filter_delay)
        if sort_delay is not None:
            scheduling.sort = _with_delay(scheduling.sort, sort_delay)
        if sync_delay is not None:
            scheduling.state_sync = _with_delay(scheduling.state_sync, sync_delay)

        ttl = _env_float("CACHE_TTL_MS")
        if ttl is not None:
            config.cache.ttl_ms = ttl

        enabled = _env_bool("MONITORING_ENABLED")
        if enabled is not None:
            config.monitoring.enabled = enabled

        slow = _env_float("SLOW_RENDER_MS")
        if slow is not None:
            config.monitoring.slow_render_ms = slow

        config.validate()
        logger.info(
            f"Query engine config loaded: filter={scheduling.filter.delay_ms}ms "
            f"sort={scheduling.sort.delay_ms}ms ttl={config.cache.ttl_ms}ms"
        )
        return config


def _with_delay(profile: DebounceProfile, delay_ms: float) -> DebounceProfile:
    """Replace a profile's delay, raising the ceiling if it would fall below it."""
    max_wait = profile.max_wait_ms
    if max_wait is not None and max_wait < delay_ms:
        max_wait = delay_ms
    return dataclasses.replace(profile, delay_ms=delay_ms, max_wait_ms=max_wait)


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigError(ENV_PREFIX + name, raw, "must be a number")


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    text = raw.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise InvalidConfigError(ENV_PREFIX + name, raw, "must be a boolean")


__all__ = [
    "DebounceProfile",
    "SchedulingConfig",
    "CacheConfig",
    "MonitoringConfig",
    "PerformanceThresholds",
    "QueryEngineConfig",
]
