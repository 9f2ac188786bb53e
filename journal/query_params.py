"""
Journal - Query-String Round Trip.

Flat, URL-safe representation of TradeFilters so an external
synchroniser can keep the browser address (or any key/value
store) in step with the active query.

Empty values are omitted; emotional states are comma-joined.
"""

import logging
from typing import Any, Dict, Mapping, Sequence, Union
from urllib.parse import parse_qs, urlencode

from .criteria import PnlFilter, TradeFilters, coerce_filters, default_trade_filters
from .models import MarketCategory, normalize_market


logger = logging.getLogger(__name__)


# Order matters: it is the order parameters appear in the query string
QUERY_PARAM_KEYS = (
    "symbol",
    "market",
    "side",
    "pnlFilter",
    "dateFrom",
    "dateTo",
    "strategyId",
    "emotionalStates",
    "sortBy",
    "sortOrder",
)

VALID_MARKETS = {m.value for m in MarketCategory}


def to_query_params(filters: Union[TradeFilters, Mapping[str, Any], None]) -> Dict[str, str]:
    """
    Serialize filters to flat string parameters.

    Args:
        filters: Filters to serialize

    Returns:
        camelCase keys mapped to non-empty string values
    """
    dumped = coerce_filters(filters).model_dump(by_alias=True)
    params: Dict[str, str] = {}
    for key in QUERY_PARAM_KEYS:
        value = dumped.get(key)
        if key == "emotionalStates":
            if value:
                params[key] = ",".join(value)
            continue
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        if key == "pnlFilter" and text.lower() == PnlFilter.ALL.value:
            continue
        params[key] = text
    return params


def _last_value(value: Any) -> Any:
    if isinstance(value, Sequence) and not isinstance(value, str):
        return value[-1] if value else None
    return value


def from_query_params(params: Mapping[str, Any]) -> TradeFilters:
    """
    Parse flat parameters back into sanitized filters.

    Missing keys keep their default; unknown market labels are
    dropped rather than carried into the query.
    """
    merged = default_trade_filters().model_dump(by_alias=True)
    for key in QUERY_PARAM_KEYS:
        if key not in params:
            continue
        value = _last_value(params[key])
        if value is None or str(value).strip() == "":
            continue
        merged[key] = value

    market = merged.get("market")
    if market and normalize_market(market) not in VALID_MARKETS:
        logger.debug(f"Dropping unknown market from query params: {market!r}")
        merged["market"] = ""

    return TradeFilters.model_validate(merged).sanitized()


def to_query_string(filters: Union[TradeFilters, Mapping[str, Any], None]) -> str:
    """Filters encoded as an application/x-www-form-urlencoded string."""
    return urlencode(to_query_params(filters))


def from_query_string(query: str) -> TradeFilters:
    """Inverse of to_query_string; a leading '?' is ignored."""
    return from_query_params(parse_qs(query.lstrip("?"), keep_blank_values=False))


__all__ = [
    "QUERY_PARAM_KEYS",
    "to_query_params",
    "from_query_params",
    "to_query_string",
    "from_query_string",
]
