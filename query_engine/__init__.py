"""
Query Engine Module Package.

Filtered, sorted, bounded-latency views over trade records.

Components:
- fields: Closed field accessor table
- filters: Filter evaluator
- sorting: Stable sort comparator
- summary: Trade summary statistics
- coordinator: Debounced, memoized query coordinator
- config: Engine configuration
"""

from .config import (
    CacheConfig,
    MonitoringConfig,
    QueryEngineConfig,
)
from .fields import SORT_ACCESSORS, FILTER_ACCESSORS, sort_accessor
from .filters import PREDICATE_BUILDERS, apply_filters, build_predicates, ensure_records
from .sorting import apply_sort_config, resolve_sort, sort_key, sort_records
from .summary import (
    PROFIT_FACTOR_NO_LOSSES,
    CumulativePoint,
    TradeSummary,
    cumulative_pnl,
    summarize_trades,
)
from .coordinator import QueryCoordinator, QueryResult, create_query_coordinator


__all__ = [
    # Config
    "CacheConfig",
    "MonitoringConfig",
    "QueryEngineConfig",
    # Fields
    "SORT_ACCESSORS",
    "FILTER_ACCESSORS",
    "sort_accessor",
    # Evaluators
    "PREDICATE_BUILDERS",
    "apply_filters",
    "build_predicates",
    "ensure_records",
    "apply_sort_config",
    "resolve_sort",
    "sort_key",
    "sort_records",
    # Summary
    "PROFIT_FACTOR_NO_LOSSES",
    "CumulativePoint",
    "TradeSummary",
    "cumulative_pnl",
    "summarize_trades",
    # Coordinator
    "QueryCoordinator",
    "QueryResult",
    "create_query_coordinator",
]
