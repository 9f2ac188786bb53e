"""
Journal - Data Model Package.

============================================================
PURPOSE
============================================================
Values exchanged between the interface layer and the query
engine.

- TradeRecord: immutable trade record
- TradeFilters / SortConfig: serializable query state
- Query-string round trip for URL synchronisation

============================================================
"""

from .models import (
    MarketCategory,
    TradeSide,
    EmotionalState,
    Profitability,
    TradeRecord,
    normalize_market,
    normalize_side,
    parse_emotional_states,
    parse_trade_records,
)
from .criteria import (
    PnlFilter,
    SortDirection,
    SortField,
    SortConfig,
    TRADE_SORT_OPTIONS,
    TradeFilters,
    coerce_filters,
    default_trade_filters,
    find_sort_option,
    get_filter_stats,
)
from .query_params import (
    to_query_params,
    from_query_params,
    to_query_string,
    from_query_string,
)


__all__ = [
    # Models
    "MarketCategory",
    "TradeSide",
    "EmotionalState",
    "Profitability",
    "TradeRecord",
    "normalize_market",
    "normalize_side",
    "parse_emotional_states",
    "parse_trade_records",
    # Criteria
    "PnlFilter",
    "SortDirection",
    "SortField",
    "SortConfig",
    "TRADE_SORT_OPTIONS",
    "TradeFilters",
    "coerce_filters",
    "default_trade_filters",
    "find_sort_option",
    "get_filter_stats",
    # Query params
    "to_query_params",
    "from_query_params",
    "to_query_string",
    "from_query_string",
]
