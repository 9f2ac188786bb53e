"""
Query Engine - Filter Evaluator.

============================================================
PURPOSE
============================================================
Pure, order-preserving filtering of trade records.

SEMANTICS (all present constraints must hold):
- symbol:            case-insensitive substring
- market / side:     case-insensitive equality, legacy aliases
- pnl_filter:        profitable (> 0) / lossable (< 0); anything
                     else means all
- date_from/date_to: inclusive, compared as ISO strings
- strategy_id:       case-insensitive equality
- emotional_states:  record carries at least one of them

An absent or empty constraint is no constraint. A value that
cannot match (unknown market) yields an empty result, not an
error.

============================================================
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, List, Optional

from core.exceptions import InvalidRecordsError
from journal.criteria import FiltersInput, PnlFilter, TradeFilters, coerce_filters
from journal.models import Profitability, TradeRecord, normalize_market, normalize_side

from .fields import FILTER_ACCESSORS


logger = logging.getLogger(__name__)


Predicate = Callable[[TradeRecord], bool]
PredicateBuilder = Callable[[TradeFilters], Optional[Predicate]]


# ============================================================
# INPUT VALIDATION
# ============================================================

def ensure_records(records: Any) -> Sequence:
    """
    Reject input that is not a sequence of trade records.

    Raises:
        InvalidRecordsError: str/bytes, mappings, iterators and
            other non-sequences, or non-TradeRecord elements
    """
    if (
        not isinstance(records, Sequence)
        or isinstance(records, (str, bytes, bytearray))
        or isinstance(records, Mapping)
    ):
        raise InvalidRecordsError(
            f"Expected a sequence of trade records, got {type(records).__name__}",
            received_type=type(records).__name__,
        )
    for index, record in enumerate(records):
        if not isinstance(record, TradeRecord):
            raise InvalidRecordsError(
                f"Element {index} is {type(record).__name__}, not a TradeRecord",
                received_type=type(record).__name__,
            )
    return records


# ============================================================
# PREDICATE BUILDERS
# ============================================================

def _text(value: Optional[str]) -> str:
    return value.strip() if value else ""


def _symbol_predicate(filters: TradeFilters) -> Optional[Predicate]:
    needle = _text(filters.symbol).casefold()
    if not needle:
        return None
    read = FILTER_ACCESSORS["symbol"]
    return lambda r: needle in (read(r) or "").casefold()


def _market_predicate(filters: TradeFilters) -> Optional[Predicate]:
    target = normalize_market(filters.market)
    if target is None:
        return None
    read = FILTER_ACCESSORS["market"]
    return lambda r: read(r) == target


def _side_predicate(filters: TradeFilters) -> Optional[Predicate]:
    target = normalize_side(filters.side)
    if target is None:
        return None
    read = FILTER_ACCESSORS["side"]
    return lambda r: read(r) == target


def _pnl_predicate(filters: TradeFilters) -> Optional[Predicate]:
    mode = _text(filters.pnl_filter).lower()
    if mode == PnlFilter.PROFITABLE.value:
        wanted = Profitability.PROFITABLE
    elif mode == PnlFilter.LOSSABLE.value:
        wanted = Profitability.LOSSABLE
    else:
        if mode and mode != PnlFilter.ALL.value:
            logger.debug(f"Unknown pnl_filter treated as all: {filters.pnl_filter!r}")
        return None
    return lambda r: r.profitability is wanted


def _date_from_predicate(filters: TradeFilters) -> Optional[Predicate]:
    bound = _text(filters.date_from)
    if not bound:
        return None
    read = FILTER_ACCESSORS["trade_date"]
    return lambda r: read(r) is not None and read(r) >= bound


def _date_to_predicate(filters: TradeFilters) -> Optional[Predicate]:
    bound = _text(filters.date_to)
    if not bound:
        return None
    read = FILTER_ACCESSORS["trade_date"]
    # a full timestamp on the bound day still counts as that day
    return lambda r: read(r) is not None and read(r)[:len(bound)] <= bound


def _strategy_predicate(filters: TradeFilters) -> Optional[Predicate]:
    target = _text(filters.strategy_id).casefold()
    if not target:
        return None
    read = FILTER_ACCESSORS["strategy_id"]
    return lambda r: (read(r) or "").strip().casefold() == target


def _emotion_predicate(filters: TradeFilters) -> Optional[Predicate]:
    wanted = {label for label in filters.emotional_states if label}
    if not wanted:
        return None
    read = FILTER_ACCESSORS["emotional_state"]
    return lambda r: any(label in wanted for label in read(r))


PREDICATE_BUILDERS: Dict[str, PredicateBuilder] = {
    "symbol": _symbol_predicate,
    "market": _market_predicate,
    "side": _side_predicate,
    "pnl_filter": _pnl_predicate,
    "date_from": _date_from_predicate,
    "date_to": _date_to_predicate,
    "strategy_id": _strategy_predicate,
    "emotional_states": _emotion_predicate,
}


def build_predicates(filters: FiltersInput) -> List[Predicate]:
    """Predicates for every present constraint."""
    model = coerce_filters(filters)
    predicates = []
    for builder in PREDICATE_BUILDERS.values():
        predicate = builder(model)
        if predicate is not None:
            predicates.append(predicate)
    return predicates


# ============================================================
# EVALUATOR
# ============================================================

def apply_filters(records: Sequence[TradeRecord], filters: FiltersInput = None) -> List[TradeRecord]:
    """
    Records satisfying every present constraint, in input order.

    Args:
        records: Sequence of TradeRecord
        filters: TradeFilters, a mapping of filter fields, or None

    Returns:
        New list; the input is not modified

    Raises:
        InvalidRecordsError: If records is not a sequence of TradeRecord
    """
    ensure_records(records)
    predicates = build_predicates(filters)
    if not predicates:
        return list(records)
    return [r for r in records if all(p(r) for p in predicates)]


__all__ = [
    "Predicate",
    "PREDICATE_BUILDERS",
    "ensure_records",
    "build_predicates",
    "apply_filters",
]
