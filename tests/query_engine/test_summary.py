"""
Trade Summary Tests.

Tests for summarize_trades and cumulative_pnl.
"""

import pytest

from core import InvalidRecordsError
from journal import TradeRecord
from query_engine import PROFIT_FACTOR_NO_LOSSES, cumulative_pnl, summarize_trades


def make_trade(trade_id, pnl, trade_date="2024-01-01"):
    return TradeRecord(id=trade_id, symbol="AAPL", pnl=pnl, trade_date=trade_date)


class TestSummarizeTrades:
    """Tests for summarize_trades."""

    def test_empty(self):
        summary = summarize_trades([])

        assert summary.total_trades == 0
        assert summary.total_pnl == 0.0
        assert summary.profit_factor == 0.0

    def test_mixed(self):
        summary = summarize_trades([
            make_trade("1", 300.0),
            make_trade("2", -100.0),
            make_trade("3", 100.0),
            make_trade("4", -100.0),
        ])

        assert summary.total_trades == 4
        assert summary.total_pnl == 200.0
        assert summary.winning_trades == 2
        assert summary.losing_trades == 2
        assert summary.win_rate == 50.0
        assert summary.profit_factor == 2.0
        assert summary.average_pnl == 50.0

    def test_sharpe_uses_population_std(self):
        summary = summarize_trades([make_trade("1", 10.0), make_trade("2", 30.0)])

        # mean 20, population std 10
        assert summary.sharpe_ratio == pytest.approx(2.0)

    def test_no_losses(self):
        summary = summarize_trades([make_trade("1", 10.0), make_trade("2", 5.0)])

        assert summary.profit_factor == PROFIT_FACTOR_NO_LOSSES == 999.0
        assert summary.win_rate == 100.0

    def test_flat(self):
        summary = summarize_trades([make_trade("1", 0.0), make_trade("2", None)])

        assert summary.profit_factor == 0.0
        assert summary.sharpe_ratio == 0.0
        assert summary.winning_trades == 0
        assert summary.losing_trades == 0

    def test_rejects_bad_input(self):
        with pytest.raises(InvalidRecordsError):
            summarize_trades("trades")


class TestCumulativePnl:
    """Tests for cumulative_pnl."""

    def test_chronological_running_total(self):
        points = cumulative_pnl([
            make_trade("late", 50.0, "2024-03-01"),
            make_trade("early", 100.0, "2024-01-01"),
            make_trade("middle", -30.0, "2024-02-01"),
        ])

        assert [p.trade_id for p in points] == ["early", "middle", "late"]
        assert [p.cumulative for p in points] == [100.0, 70.0, 120.0]

    def test_missing_pnl_counts_as_zero(self):
        points = cumulative_pnl([make_trade("1", None), make_trade("2", 5.0, "2024-01-02")])

        assert points[-1].cumulative == 5.0

    def test_empty(self):
        assert cumulative_pnl([]) == []
