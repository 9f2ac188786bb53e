"""
Journal - Trade Record Model.

============================================================
PURPOSE
============================================================
The read-only trade record the query engine works on.

Records are created outside the engine (remote store, trade
form) and handed over as an in-memory sequence. The engine
never mutates them, so the model is frozen.

INPUT TOLERANCE:
- Legacy market labels (stock, futures) are normalised
- Legacy sides (Buy, Sell) are normalised to long/short
- Emotional state may arrive as a list, a JSON string or a
  comma separated string; unknown labels are dropped

============================================================
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator


logger = logging.getLogger(__name__)


# ============================================================
# ENUMS
# ============================================================

class MarketCategory(str, Enum):
    EQUITY = "equity"
    CRYPTO = "crypto"
    FOREX = "forex"
    DERIVATIVE = "derivative"


class TradeSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class EmotionalState(str, Enum):
    FOMO = "FOMO"
    REVENGE = "REVENGE"
    TILT = "TILT"
    OVERRISK = "OVERRISK"
    PATIENCE = "PATIENCE"
    REGRET = "REGRET"
    DISCIPLINE = "DISCIPLINE"
    CONFIDENT = "CONFIDENT"
    ANXIOUS = "ANXIOUS"
    NEUTRAL = "NEUTRAL"


class Profitability(str, Enum):
    PROFITABLE = "profitable"
    LOSSABLE = "lossable"
    NEITHER = "neither"


# ============================================================
# NORMALISATION
# ============================================================

MARKET_ALIASES = {
    "stock": MarketCategory.EQUITY.value,
    "stocks": MarketCategory.EQUITY.value,
    "equities": MarketCategory.EQUITY.value,
    "futures": MarketCategory.DERIVATIVE.value,
    "options": MarketCategory.DERIVATIVE.value,
    "derivatives": MarketCategory.DERIVATIVE.value,
}

SIDE_ALIASES = {
    "buy": TradeSide.LONG.value,
    "sell": TradeSide.SHORT.value,
}

EMOTIONAL_STATE_VALUES = frozenset(e.value for e in EmotionalState)


def normalize_market(value: Any) -> Optional[str]:
    """
    Lower-case a market label and resolve legacy aliases.

    Unknown labels are returned lower-cased (they simply will
    not match anything). Empty values return None.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    text = str(value).strip().lower()
    if not text:
        return None
    return MARKET_ALIASES.get(text, text)


def normalize_side(value: Any) -> Optional[str]:
    """Lower-case a side label and resolve Buy/Sell aliases."""
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    text = str(value).strip().lower()
    if not text:
        return None
    return SIDE_ALIASES.get(text, text)


def parse_emotional_states(value: Any) -> List[str]:
    """
    Parse an emotional state payload into upper-cased labels.

    Accepts a list/tuple/set, a JSON encoded list or string,
    or a comma separated string. Does not drop unknown labels.
    """
    if value is None:
        return []
    if isinstance(value, Enum):
        return [str(value.value).upper()]
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            items = text.split(",")
        else:
            if isinstance(parsed, list):
                items = parsed
            elif isinstance(parsed, str):
                items = [parsed]
            else:
                items = text.split(",")
    else:
        return []

    labels = []
    for item in items:
        if isinstance(item, Enum):
            item = item.value
        if not isinstance(item, str):
            continue
        label = item.strip().upper()
        if label:
            labels.append(label)
    return labels


# ============================================================
# TRADE RECORD
# ============================================================

class TradeRecord(BaseModel):
    """One logged trade."""

    model_config = ConfigDict(frozen=True, extra="ignore", use_enum_values=False)

    id: str
    user_id: Optional[str] = None
    symbol: str = ""
    market: Optional[MarketCategory] = None
    side: Optional[TradeSide] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    quantity: Optional[float] = None
    pnl: Optional[float] = None
    trade_date: Optional[str] = None
    strategy_id: Optional[str] = None
    strategy_name: Optional[str] = None
    notes: Optional[str] = None
    emotional_state: Tuple[EmotionalState, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("symbol", mode="before")
    @classmethod
    def _coerce_symbol(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("market", mode="before")
    @classmethod
    def _coerce_market(cls, value: Any) -> Optional[str]:
        normalized = normalize_market(value)
        if normalized is not None and normalized not in {m.value for m in MarketCategory}:
            logger.debug(f"Unknown market label dropped: {value!r}")
            return None
        return normalized

    @field_validator("side", mode="before")
    @classmethod
    def _coerce_side(cls, value: Any) -> Optional[str]:
        normalized = normalize_side(value)
        if normalized is not None and normalized not in {s.value for s in TradeSide}:
            logger.debug(f"Unknown side label dropped: {value!r}")
            return None
        return normalized

    @field_validator("trade_date", mode="before")
    @classmethod
    def _coerce_trade_date(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        text = str(value).strip()
        return text or None

    @field_validator("emotional_state", mode="before")
    @classmethod
    def _coerce_emotional_state(cls, value: Any) -> Tuple[str, ...]:
        labels = parse_emotional_states(value)
        known = tuple(label for label in labels if label in EMOTIONAL_STATE_VALUES)
        if len(known) != len(labels):
            logger.debug(f"Unknown emotional state labels dropped: {labels}")
        return known

    @property
    def profitability(self) -> Profitability:
        """Classification by P&L sign; zero or absent P&L is neither."""
        if self.pnl is None or self.pnl == 0:
            return Profitability.NEITHER
        return Profitability.PROFITABLE if self.pnl > 0 else Profitability.LOSSABLE


RecordInput = Union[TradeRecord, Mapping[str, Any]]


def parse_trade_records(rows: Iterable[RecordInput]) -> List[TradeRecord]:
    """
    Build trade records from plain mappings.

    Already-built records are passed through unchanged.
    """
    records = []
    for row in rows:
        if isinstance(row, TradeRecord):
            records.append(row)
        else:
            records.append(TradeRecord.model_validate(dict(row)))
    return records


__all__ = [
    "MarketCategory",
    "TradeSide",
    "EmotionalState",
    "Profitability",
    "TradeRecord",
    "normalize_market",
    "normalize_side",
    "parse_emotional_states",
    "parse_trade_records",
]
