"""
Journal - Filter Criteria and Sort Configuration.

============================================================
PURPOSE
============================================================
Serializable query state handed to the engine by the
interface layer.

INVARIANTS:
- Absent, empty-string or empty-collection constraints mean
  "no constraint"; they never narrow a result set
- Every sortable field is offered in both directions
- Criteria are immutable values; the engine never keeps them

Keys are accepted in snake_case or camelCase (the shape the
URL synchroniser and browser storage used).

============================================================
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .models import normalize_side, parse_emotional_states


logger = logging.getLogger(__name__)


# ============================================================
# ENUMS
# ============================================================

class PnlFilter(str, Enum):
    ALL = "all"
    PROFITABLE = "profitable"
    LOSSABLE = "lossable"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any, default: "SortDirection" = None) -> "SortDirection":
        """Resolve a direction; anything unrecognised falls back to default (desc)."""
        if isinstance(value, SortDirection):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            for member in cls:
                if member.value == text:
                    return member
        return default or cls.DESC


class SortField(str, Enum):
    TRADE_DATE = "trade_date"
    SYMBOL = "symbol"
    PNL = "pnl"
    ENTRY_PRICE = "entry_price"
    EXIT_PRICE = "exit_price"
    QUANTITY = "quantity"
    STRATEGY_NAME = "strategy_name"
    CREATED_AT = "created_at"

    @classmethod
    def parse(cls, value: Any) -> Optional["SortField"]:
        """
        Resolve a field name or alias.

        Returns None for unknown or empty names, never raises.
        """
        if isinstance(value, SortField):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip()
        if not text:
            return None
        text = text.lower()
        text = SORT_FIELD_ALIASES.get(text, text)
        for member in cls:
            if member.value == text:
                return member
        return None


SORT_FIELD_ALIASES = {
    "date": "trade_date",
    "tradedate": "trade_date",
    "price": "entry_price",
    "entryprice": "entry_price",
    "exitprice": "exit_price",
    "strategy": "strategy_name",
    "strategyname": "strategy_name",
    "createdat": "created_at",
}

VALID_SIDES = {"long", "short"}

DEFAULT_SORT_FIELD = SortField.TRADE_DATE
DEFAULT_SORT_DIRECTION = SortDirection.DESC


# ============================================================
# SORT CONFIGURATION
# ============================================================

class SortConfig(BaseModel):
    """A (field, direction, label) triple."""

    model_config = ConfigDict(frozen=True)

    field: SortField
    direction: SortDirection
    label: str = ""


def _both_directions(
    field: SortField,
    asc_label: str,
    desc_label: str,
    desc_first: bool = True,
) -> List[SortConfig]:
    asc = SortConfig(field=field, direction=SortDirection.ASC, label=asc_label)
    desc = SortConfig(field=field, direction=SortDirection.DESC, label=desc_label)
    return [desc, asc] if desc_first else [asc, desc]


TRADE_SORT_OPTIONS: List[SortConfig] = [
    *_both_directions(SortField.TRADE_DATE, "Date (Oldest First)", "Date (Newest First)"),
    *_both_directions(SortField.SYMBOL, "Symbol (A-Z)", "Symbol (Z-A)", desc_first=False),
    *_both_directions(SortField.PNL, "P&L (Lowest First)", "P&L (Highest First)"),
    *_both_directions(SortField.ENTRY_PRICE, "Entry Price (Lowest First)", "Entry Price (Highest First)"),
    *_both_directions(SortField.EXIT_PRICE, "Exit Price (Lowest First)", "Exit Price (Highest First)"),
    *_both_directions(SortField.QUANTITY, "Quantity (Smallest First)", "Quantity (Largest First)"),
    *_both_directions(SortField.STRATEGY_NAME, "Strategy (A-Z)", "Strategy (Z-A)", desc_first=False),
    *_both_directions(SortField.CREATED_AT, "Logged (Oldest First)", "Logged (Newest First)"),
]


def find_sort_option(field: Any, direction: Any) -> Optional[SortConfig]:
    """Look up the labelled option for a field/direction pair."""
    sort_field = SortField.parse(field)
    if sort_field is None:
        return None
    sort_direction = SortDirection.parse(direction)
    for option in TRADE_SORT_OPTIONS:
        if option.field == sort_field and option.direction == sort_direction:
            return option
    return None


# ============================================================
# FILTER CRITERIA
# ============================================================

class TradeFilters(BaseModel):
    """
    Optional constraints plus the active sort.

    Field values are kept as plain strings so that an unknown
    market or strategy simply matches nothing.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    symbol: Optional[str] = None
    market: Optional[str] = None
    side: Optional[str] = None
    pnl_filter: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    strategy_id: Optional[str] = None
    emotional_states: List[str] = []
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    @field_validator(
        "symbol", "market", "side", "pnl_filter", "strategy_id", "sort_by", "sort_order",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, Enum):
            value = value.value
        return str(value)

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    @field_validator("emotional_states", mode="before")
    @classmethod
    def _coerce_emotional_states(cls, value: Any) -> List[str]:
        return parse_emotional_states(value)

    # --------------------------------------------------------
    # DERIVED VIEWS
    # --------------------------------------------------------

    @property
    def sort_field(self) -> Optional[SortField]:
        return SortField.parse(self.sort_by)

    @property
    def sort_direction(self) -> SortDirection:
        return SortDirection.parse(self.sort_order)

    @property
    def sort_config(self) -> Optional[SortConfig]:
        """Active sort as a SortConfig, or None when no known field is set."""
        field = self.sort_field
        if field is None:
            return None
        option = find_sort_option(field, self.sort_direction)
        return option or SortConfig(field=field, direction=self.sort_direction)

    def with_sort(self, sort: SortConfig) -> "TradeFilters":
        """Copy of these filters with a different active sort."""
        return self.model_copy(update={
            "sort_by": sort.field.value,
            "sort_order": sort.direction.value,
        })

    def sanitized(self) -> "TradeFilters":
        """
        Copy with invalid enumerated values reset.

        sort_order -> desc, pnl_filter -> all, unknown side cleared.
        """
        updates: Dict[str, Any] = {}
        if self.sort_order and self.sort_order.strip().lower() not in {"asc", "desc"}:
            updates["sort_order"] = DEFAULT_SORT_DIRECTION.value
        if self.pnl_filter and self.pnl_filter.strip().lower() not in {p.value for p in PnlFilter}:
            updates["pnl_filter"] = PnlFilter.ALL.value
        if self.side and normalize_side(self.side) not in VALID_SIDES:
            updates["side"] = None
        return self.model_copy(update=updates) if updates else self

    def to_dict(self, by_alias: bool = False) -> Dict[str, Any]:
        return self.model_dump(by_alias=by_alias)


FiltersInput = Union[TradeFilters, Mapping[str, Any], None]


def coerce_filters(filters: FiltersInput) -> TradeFilters:
    """Accept a model, a mapping or None and return a TradeFilters."""
    if filters is None:
        return TradeFilters()
    if isinstance(filters, TradeFilters):
        return filters
    return TradeFilters.model_validate(dict(filters))


def default_trade_filters() -> TradeFilters:
    """The canonical empty filter state."""
    return TradeFilters(
        symbol="",
        market="",
        side="",
        pnl_filter=PnlFilter.ALL.value,
        date_from="",
        date_to="",
        strategy_id="",
        emotional_states=[],
        sort_by=DEFAULT_SORT_FIELD.value,
        sort_order=DEFAULT_SORT_DIRECTION.value,
    )


# ============================================================
# FILTER STATISTICS
# ============================================================

def get_filter_stats(filters: Union[TradeFilters, Mapping[str, Any], str]) -> Dict[str, Any]:
    """
    Count active constraints.

    Args:
        filters: Filters as a model, a mapping or a JSON string

    Returns:
        Dict with active_filters and has_active_filters
    """
    if isinstance(filters, str):
        try:
            parsed = json.loads(filters)
        except ValueError as e:
            logger.warning(f"Failed to parse filter string in get_filter_stats: {e}")
            return {"active_filters": 0, "has_active_filters": False}
        if not isinstance(parsed, Mapping):
            return {"active_filters": 0, "has_active_filters": False}
        filters = parsed

    model = coerce_filters(filters)
    active = 0
    for value in (model.symbol, model.market, model.date_from, model.date_to,
                  model.strategy_id, model.side):
        if value:
            active += 1
    if model.pnl_filter and model.pnl_filter.strip().lower() != PnlFilter.ALL.value:
        active += 1
    if model.emotional_states:
        active += 1

    return {"active_filters": active, "has_active_filters": active > 0}


__all__ = [
    "PnlFilter",
    "SortDirection",
    "SortField",
    "SortConfig",
    "TRADE_SORT_OPTIONS",
    "TradeFilters",
    "FiltersInput",
    "coerce_filters",
    "default_trade_filters",
    "find_sort_option",
    "get_filter_stats",
]
