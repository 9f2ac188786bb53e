"""
Query Engine - Field Accessors.

Closed table mapping each sortable or filterable field to a
function reading it from a TradeRecord. The evaluators never
reach into records by attribute name.
"""

from typing import Any, Callable, Dict, Optional

from journal.criteria import SortField
from journal.models import TradeRecord


FieldAccessor = Callable[[TradeRecord], Any]


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


SORT_ACCESSORS: Dict[SortField, FieldAccessor] = {
    SortField.TRADE_DATE: lambda r: r.trade_date,
    SortField.SYMBOL: lambda r: r.symbol or None,
    SortField.PNL: lambda r: r.pnl,
    SortField.ENTRY_PRICE: lambda r: r.entry_price,
    SortField.EXIT_PRICE: lambda r: r.exit_price,
    SortField.QUANTITY: lambda r: r.quantity,
    SortField.STRATEGY_NAME: lambda r: r.strategy_name or None,
    SortField.CREATED_AT: lambda r: r.created_at,
}

FILTER_ACCESSORS: Dict[str, FieldAccessor] = {
    "symbol": lambda r: r.symbol,
    "market": lambda r: _enum_value(r.market),
    "side": lambda r: _enum_value(r.side),
    "pnl": lambda r: r.pnl,
    "trade_date": lambda r: r.trade_date,
    "strategy_id": lambda r: r.strategy_id,
    "emotional_state": lambda r: tuple(_enum_value(e) for e in r.emotional_state),
}


def sort_accessor(field: Any) -> Optional[FieldAccessor]:
    """Accessor for a sort field name, or None when the field is unknown."""
    sort_field = SortField.parse(field)
    if sort_field is None:
        return None
    return SORT_ACCESSORS[sort_field]


__all__ = [
    "FieldAccessor",
    "SORT_ACCESSORS",
    "FILTER_ACCESSORS",
    "sort_accessor",
]
