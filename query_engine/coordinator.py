"""
Query Engine - Query Coordinator.

============================================================
RESPONSIBILITY
============================================================
Glue between an interactive view and the pure evaluators.

- Memoizes filter + sort results per (criteria, record set)
- Debounces filter, sort and state-sync requests
- Records latency under the labels filter, sort and query
- Tracks pending timers with a leak detector

============================================================
DESIGN PRINCIPLES
============================================================
- Explicitly constructed, no module-level instances
- Filters and sort never suspend; only delivery is scheduled
- Debounced requests read the latest requested state when
  they fire, so a late filter never undoes an earlier sort
- A disposed coordinator refuses further work

============================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from caching import MemoCache, fingerprint
from core.clock import ClockProtocol, SystemClock
from core.exceptions import CoordinatorDisposedError
from journal.criteria import FiltersInput, SortConfig, TradeFilters, coerce_filters
from journal.models import TradeRecord
from journal.query_params import to_query_params
from monitoring import (
    LeakDetector,
    LeakReport,
    PerformanceMetrics,
    PerformanceThresholds,
    PerformanceTracker,
    ValidationResult,
    validate_performance,
)
from scheduling import (
    AsyncioTimerQueue,
    Debouncer,
    TimerQueue,
    create_filter_debounced,
    create_sort_debounced,
    create_state_sync_debounced,
)

from .config import QueryEngineConfig
from .filters import apply_filters, ensure_records
from .sorting import apply_sort_config, resolve_sort
from .summary import TradeSummary, summarize_trades


logger = logging.getLogger(__name__)


QUERY_KEY_PREFIX = "query:"
SUMMARY_KEY_PREFIX = "summary:"


# ============================================================
# RESULT
# ============================================================

@dataclass(frozen=True)
class QueryResult:
    """Outcome of one query evaluation."""

    records: Tuple[TradeRecord, ...]
    filters: TradeFilters
    metrics: PerformanceMetrics
    from_cache: bool = False

    def __len__(self) -> int:
        return len(self.records)


ResultCallback = Callable[[QueryResult], Any]
StateSyncCallback = Callable[[Dict[str, str]], Any]
SortInput = Union[SortConfig, str, Mapping[str, Any]]


# ============================================================
# COORDINATOR
# ============================================================

class QueryCoordinator:
    """
    Filter/sort coordinator for one view.

    Example:
        >>> coordinator = QueryCoordinator(queue=ManualTimerQueue(clock))
        >>> coordinator.on_result = render
        >>> coordinator.request_filter(records, {"symbol": "AAPL"})
        >>> queue.advance(300)   # render(QueryResult(...))
    """

    def __init__(
        self,
        config: Optional[QueryEngineConfig] = None,
        queue: Optional[TimerQueue] = None,
        cache: Optional[MemoCache] = None,
        tracker: Optional[PerformanceTracker] = None,
        leak_detector: Optional[LeakDetector] = None,
        clock: Optional[ClockProtocol] = None,
        on_result: Optional[ResultCallback] = None,
        on_state_sync: Optional[StateSyncCallback] = None,
    ):
        self.config = config or QueryEngineConfig()
        self.config.validate()

        self.queue = queue or AsyncioTimerQueue()
        # a manual queue carries the clock tests move
        self.clock = clock or getattr(self.queue, "clock", None) or SystemClock()

        monitoring = self.config.monitoring
        self.cache = cache if cache is not None else MemoCache(
            self.clock, self.config.cache.ttl_ms, name="query",
        )
        self.tracker = tracker if tracker is not None else PerformanceTracker(
            self.clock,
            slow_threshold_ms=monitoring.slow_render_ms,
            excessive_render_count=monitoring.excessive_render_count,
            enabled=monitoring.enabled,
        )
        if leak_detector is None and monitoring.track_leaks:
            leak_detector = LeakDetector(name="query-coordinator")
        self.leak_detector = leak_detector

        self.on_result = on_result
        self.on_state_sync = on_state_sync

        self.last_result: Optional[QueryResult] = None
        self.last_metrics: Optional[PerformanceMetrics] = None
        self.last_state_sync: Optional[Dict[str, str]] = None

        self._requested_records: Tuple[TradeRecord, ...] = ()
        self._requested_filters = TradeFilters()
        self._disposed = False

        scheduling = self.config.scheduling
        self._filter_debounced: Debouncer = create_filter_debounced(
            self._run_requested_query, self.queue, scheduling, self.leak_detector,
        )
        self._sort_debounced: Debouncer = create_sort_debounced(
            self._run_requested_query, self.queue, scheduling, self.leak_detector,
        )
        self._state_sync_debounced: Debouncer = create_state_sync_debounced(
            self._deliver_state_sync, self.queue, scheduling, self.leak_detector,
        )

        logger.info(
            f"QueryCoordinator created: filter={scheduling.filter.delay_ms}ms "
            f"sort={scheduling.sort.delay_ms}ms cache_ttl={self.config.cache.ttl_ms}ms"
        )

    # --------------------------------------------------------
    # STATE
    # --------------------------------------------------------

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def requested_filters(self) -> TradeFilters:
        """Criteria the next debounced evaluation will use."""
        return self._requested_filters

    @property
    def pending(self) -> bool:
        return any(d.pending for d in self._debouncers())

    def _debouncers(self) -> List[Debouncer]:
        return [self._filter_debounced, self._sort_debounced, self._state_sync_debounced]

    def _ensure_active(self, operation: str) -> None:
        if self._disposed:
            raise CoordinatorDisposedError(operation)

    # --------------------------------------------------------
    # SYNCHRONOUS QUERY
    # --------------------------------------------------------

    def query_key(self, records: Sequence[TradeRecord], filters: TradeFilters) -> str:
        """Cache key: fingerprint of the criteria and the record contents."""
        return QUERY_KEY_PREFIX + fingerprint(filters, list(records))

    def apply_query(self, records: Sequence[TradeRecord], filters: FiltersInput = None) -> QueryResult:
        """
        Filter then sort records, serving unchanged queries from cache.

        Raises:
            InvalidRecordsError: If records is not a sequence of TradeRecord
            CoordinatorDisposedError: After dispose()
        """
        self._ensure_active("apply query")
        ensure_records(records)
        model = coerce_filters(filters)

        use_cache = self.config.cache.enabled
        key = self.query_key(records, model) if use_cache else None
        if use_cache:
            found, cached = self.cache.lookup(key)
            if found:
                logger.debug(f"Query cache hit: {len(cached)} of {len(records)} records")
                metrics = self._metrics(records, cached)
                return self._remember(QueryResult(cached, model, metrics, from_cache=True))

        start = self.clock.millis()
        filtered = apply_filters(records, model)
        filtered_at = self.clock.millis()
        ordered = tuple(apply_sort_config(filtered, model.sort_config))
        finished = self.clock.millis()

        self.tracker.track_render("filter", filtered_at - start)
        self.tracker.track_render("sort", finished - filtered_at)
        self.tracker.track_render("query", finished - start)

        if use_cache:
            self.cache.set(key, ordered, self.config.cache.ttl_ms)

        metrics = self._metrics(
            records, ordered,
            filter_time=filtered_at - start,
            sort_time=finished - filtered_at,
            total_time=finished - start,
        )
        logger.debug(f"Query evaluated: {len(ordered)} of {len(records)} records in {finished - start:.2f}ms")
        return self._remember(QueryResult(ordered, model, metrics))

    def _metrics(
        self,
        records: Sequence[TradeRecord],
        result: Sequence[TradeRecord],
        filter_time: float = 0.0,
        sort_time: float = 0.0,
        total_time: float = 0.0,
    ) -> PerformanceMetrics:
        return PerformanceMetrics(
            filter_time=filter_time,
            sort_time=sort_time,
            total_time=total_time,
            record_count=len(records),
            result_count=len(result),
            cache_hits=self.cache.hits,
            cache_misses=self.cache.misses,
        )

    def _remember(self, result: QueryResult) -> QueryResult:
        self.last_result = result
        self.last_metrics = result.metrics
        return result

    # --------------------------------------------------------
    # DEBOUNCED REQUESTS
    # --------------------------------------------------------

    def request_filter(self, records: Sequence[TradeRecord], filters: FiltersInput) -> None:
        """
        Schedule an evaluation with new criteria (filter profile).

        Criteria without a sort keep the currently requested sort.
        """
        self._ensure_active("request filter")
        ensure_records(records)
        model = coerce_filters(filters)
        if model.sort_field is None and self._requested_filters.sort_config is not None:
            model = model.with_sort(self._requested_filters.sort_config)
        self._requested_records = tuple(records)
        self._requested_filters = model
        self._filter_debounced()

    def request_sort(self, records: Sequence[TradeRecord], sort: SortInput) -> None:
        """Schedule an evaluation with a new sort (sort profile)."""
        self._ensure_active("request sort")
        ensure_records(records)
        config = self._coerce_sort(sort)
        self._requested_records = tuple(records)
        if config is None:
            logger.debug(f"Unknown sort {sort!r} requested, clearing sort")
            self._requested_filters = self._requested_filters.model_copy(
                update={"sort_by": None, "sort_order": None}
            )
        else:
            self._requested_filters = self._requested_filters.with_sort(config)
        self._sort_debounced()

    def request_state_sync(self, filters: FiltersInput) -> None:
        """Schedule delivery of the query-string form of filters (state-sync profile)."""
        self._ensure_active("request state sync")
        self._state_sync_debounced(coerce_filters(filters))

    @staticmethod
    def _coerce_sort(sort: SortInput) -> Optional[SortConfig]:
        if isinstance(sort, SortConfig):
            return sort
        if isinstance(sort, Mapping):
            return resolve_sort(sort.get("field"), sort.get("direction"))
        return resolve_sort(sort)

    def _run_requested_query(self) -> QueryResult:
        result = self.apply_query(self._requested_records, self._requested_filters)
        if self.on_result is not None:
            self.on_result(result)
        return result

    def _deliver_state_sync(self, filters: TradeFilters) -> Dict[str, str]:
        params = to_query_params(filters)
        self.last_state_sync = params
        if self.on_state_sync is not None:
            self.on_state_sync(params)
        return params

    # --------------------------------------------------------
    # SUMMARY / VALIDATION
    # --------------------------------------------------------

    def summarize(self, records: Sequence[TradeRecord]) -> TradeSummary:
        """Memoized TradeSummary for records."""
        self._ensure_active("summarize")
        ensure_records(records)
        if not self.config.cache.enabled:
            return summarize_trades(records)
        key = SUMMARY_KEY_PREFIX + fingerprint(list(records))
        found, cached = self.cache.lookup(key)
        if found:
            return cached
        summary = summarize_trades(records)
        self.cache.set(key, summary, self.config.cache.ttl_ms)
        return summary

    def validate(
        self,
        thresholds: Union[PerformanceThresholds, Mapping[str, Any], None] = None,
    ) -> ValidationResult:
        """
        Validate last_metrics.

        A mapping of overrides is applied on top of the configured
        thresholds.
        """
        if thresholds is None or isinstance(thresholds, Mapping):
            thresholds = self.config.thresholds.with_overrides(thresholds)
        return validate_performance(self.last_metrics or PerformanceMetrics(), thresholds)

    def check_leaks(self) -> Optional[LeakReport]:
        if self.leak_detector is None:
            return None
        return self.leak_detector.check_for_leaks()

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    def flush(self) -> None:
        """Run every pending debounced request now."""
        self._ensure_active("flush")
        for debounced in self._debouncers():
            debounced.flush()

    def clear(self) -> None:
        """Drop cached results and recorded metrics."""
        self.cache.clear(QUERY_KEY_PREFIX)
        self.cache.clear(SUMMARY_KEY_PREFIX)
        self.tracker.clear_metrics()
        self.last_result = None
        self.last_metrics = None

    def dispose(self) -> None:
        """Cancel pending work, clear state and release tracked timers."""
        if self._disposed:
            return
        for debounced in self._debouncers():
            debounced.cancel()
        self.clear()
        if self.leak_detector is not None:
            self.leak_detector.check_for_leaks()
            self.leak_detector.cleanup()
        self._disposed = True
        logger.info("QueryCoordinator disposed")


def create_query_coordinator(
    config: Optional[QueryEngineConfig] = None,
    queue: Optional[TimerQueue] = None,
    **kwargs: Any,
) -> QueryCoordinator:
    """
    Create a QueryCoordinator.

    Args:
        config: Engine configuration (default: QueryEngineConfig())
        queue: Timer queue (default: asyncio on the running loop)
        **kwargs: Passed to QueryCoordinator
    """
    return QueryCoordinator(config=config, queue=queue, **kwargs)


__all__ = [
    "QUERY_KEY_PREFIX",
    "SUMMARY_KEY_PREFIX",
    "QueryResult",
    "QueryCoordinator",
    "create_query_coordinator",
]
