"""
Query Engine - Trade Summary.

Aggregate statistics over a (typically filtered) set of trades.
Missing P&L counts as zero.
"""

import math
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from journal.criteria import SortDirection, SortField
from journal.models import TradeRecord

from .filters import ensure_records
from .sorting import sort_records


# Profit factor reported when there are profits but no losses
PROFIT_FACTOR_NO_LOSSES = 999.0


class TradeSummary(BaseModel):
    """Headline statistics for a set of trades."""

    model_config = ConfigDict(frozen=True)

    total_pnl: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    average_pnl: float = 0.0
    sharpe_ratio: float = 0.0


class CumulativePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    trade_id: str
    trade_date: Optional[str] = None
    pnl: float
    cumulative: float


def summarize_trades(records: Sequence[TradeRecord]) -> TradeSummary:
    """
    Compute TradeSummary for records.

    - win_rate is a percentage of all trades
    - profit_factor is gross profit / gross loss (999 with no
      losses but some profit, 0 with neither)
    - sharpe_ratio is mean / population std of P&L (0 when flat)
    """
    ensure_records(records)
    if not records:
        return TradeSummary()

    pnls = [r.pnl or 0.0 for r in records]
    total = len(pnls)
    total_pnl = sum(pnls)
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))
    if gross_loss == 0:
        profit_factor = PROFIT_FACTOR_NO_LOSSES if gross_profit > 0 else 0.0
    else:
        profit_factor = gross_profit / gross_loss

    mean = total_pnl / total
    variance = sum((p - mean) ** 2 for p in pnls) / total
    std_dev = math.sqrt(variance)

    return TradeSummary(
        total_pnl=total_pnl,
        win_rate=len(wins) / total * 100.0,
        profit_factor=profit_factor,
        total_trades=total,
        winning_trades=len(wins),
        losing_trades=len(losses),
        average_pnl=mean,
        sharpe_ratio=mean / std_dev if std_dev != 0 else 0.0,
    )


def cumulative_pnl(records: Sequence[TradeRecord]) -> List[CumulativePoint]:
    """Running P&L in chronological (trade date ascending) order."""
    ordered = sort_records(records, SortField.TRADE_DATE, SortDirection.ASC)
    points = []
    running = 0.0
    for record in ordered:
        pnl = record.pnl or 0.0
        running += pnl
        points.append(CumulativePoint(
            trade_id=record.id,
            trade_date=record.trade_date,
            pnl=pnl,
            cumulative=running,
        ))
    return points


__all__ = [
    "PROFIT_FACTOR_NO_LOSSES",
    "TradeSummary",
    "CumulativePoint",
    "summarize_trades",
    "cumulative_pnl",
]
