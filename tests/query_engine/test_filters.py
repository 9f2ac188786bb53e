"""
Filter Evaluator Tests.

============================================================
PURPOSE
============================================================
Tests for apply_filters and record validation.

TEST PRINCIPLES:
- Empty criteria return every record in input order
- Every present constraint must hold
- Constraints that cannot match yield empty results, never errors

============================================================
"""

import pytest

from core import InvalidRecordsError
from journal import TradeFilters, TradeRecord, default_trade_filters
from query_engine import apply_filters, build_predicates, ensure_records


# ============================================================
# FIXTURES
# ============================================================

def make_trade(trade_id, **fields):
    values = {
        "id": trade_id,
        "symbol": "AAPL",
        "market": "equity",
        "side": "long",
        "pnl": 100.0,
        "trade_date": "2024-01-15",
        "strategy_id": "breakout",
    }
    values.update(fields)
    return TradeRecord(**values)


@pytest.fixture
def trades():
    return [
        make_trade("1", symbol="AAPL", pnl=250.0, trade_date="2024-01-10",
                   emotional_state=["CONFIDENT"]),
        make_trade("2", symbol="BTCUSD", market="crypto", side="short", pnl=-80.0,
                   trade_date="2024-02-03", strategy_id="Mean-Reversion",
                   emotional_state=["FOMO", "ANXIOUS"]),
        make_trade("3", symbol="aapl", side="short", pnl=0.0, trade_date="2024-02-20"),
        make_trade("4", symbol="EURUSD", market="forex", pnl=40.0, trade_date="2024-03-01",
                   emotional_state=["PATIENCE"]),
        make_trade("5", symbol="ES", market="futures", side="Buy", pnl=-300.0,
                   trade_date="2024-03-15T14:30:00", strategy_id="breakout"),
    ]


def ids(records):
    return [r.id for r in records]


# ============================================================
# EMPTY CRITERIA
# ============================================================

class TestEmptyCriteria:
    """Absent constraints never narrow the result."""

    def test_none(self, trades):
        assert ids(apply_filters(trades)) == ["1", "2", "3", "4", "5"]

    def test_default_filters(self, trades):
        assert ids(apply_filters(trades, default_trade_filters())) == ["1", "2", "3", "4", "5"]

    def test_empty_mapping(self, trades):
        assert ids(apply_filters(trades, {})) == ["1", "2", "3", "4", "5"]

    def test_whitespace_symbol(self, trades):
        assert len(apply_filters(trades, {"symbol": "   "})) == 5

    def test_returns_new_list(self, trades):
        result = apply_filters(trades)

        assert result == trades
        assert result is not trades

    def test_empty_records(self):
        assert apply_filters([], {"symbol": "AAPL"}) == []

    def test_no_predicates(self):
        assert build_predicates(default_trade_filters()) == []


# ============================================================
# INDIVIDUAL CONSTRAINTS
# ============================================================

class TestConstraints:
    """Tests for each filter field."""

    def test_symbol_case_insensitive(self, trades):
        assert ids(apply_filters(trades, {"symbol": "AAPL"})) == ["1", "3"]
        assert ids(apply_filters(trades, {"symbol": "aapl"})) == ["1", "3"]

    def test_symbol_substring(self, trades):
        assert ids(apply_filters(trades, {"symbol": "usd"})) == ["2", "4"]

    def test_market(self, trades):
        assert ids(apply_filters(trades, {"market": "crypto"})) == ["2"]
        assert ids(apply_filters(trades, {"market": "EQUITY"})) == ["1", "3"]

    def test_market_legacy_aliases(self, trades):
        assert ids(apply_filters(trades, {"market": "stock"})) == ["1", "3"]
        assert ids(apply_filters(trades, {"market": "derivative"})) == ["5"]

    def test_unknown_market_matches_nothing(self, trades):
        assert apply_filters(trades, {"market": "commodities"}) == []

    def test_side(self, trades):
        assert ids(apply_filters(trades, {"side": "long"})) == ["1", "4", "5"]
        assert ids(apply_filters(trades, {"side": "Sell"})) == ["2", "3"]

    def test_profitable(self, trades):
        assert ids(apply_filters(trades, {"pnl_filter": "profitable"})) == ["1", "4"]

    def test_lossable(self, trades):
        assert ids(apply_filters(trades, {"pnl_filter": "lossable"})) == ["2", "5"]

    def test_zero_pnl_only_under_all(self, trades):
        assert "3" not in ids(apply_filters(trades, {"pnl_filter": "profitable"}))
        assert "3" not in ids(apply_filters(trades, {"pnl_filter": "lossable"}))
        assert "3" in ids(apply_filters(trades, {"pnl_filter": "all"}))

    def test_unknown_pnl_filter_means_all(self, trades):
        assert len(apply_filters(trades, {"pnl_filter": "breakeven"})) == 5

    def test_date_range_inclusive(self, trades):
        result = apply_filters(trades, {"date_from": "2024-02-03", "date_to": "2024-03-01"})

        assert ids(result) == ["2", "3", "4"]

    def test_date_to_includes_timestamp_on_bound_day(self, trades):
        assert "5" in ids(apply_filters(trades, {"date_to": "2024-03-15"}))

    def test_missing_date_excluded_by_range(self):
        records = [make_trade("x", trade_date=None)]

        assert apply_filters(records, {"date_from": "2024-01-01"}) == []

    def test_strategy_case_insensitive(self, trades):
        assert ids(apply_filters(trades, {"strategy_id": "mean-reversion"})) == ["2"]
        assert ids(apply_filters(trades, {"strategy_id": "BREAKOUT"})) == ["1", "3", "4", "5"]

    def test_emotional_states_any_of(self, trades):
        result = apply_filters(trades, {"emotional_states": ["FOMO", "PATIENCE"]})

        assert ids(result) == ["2", "4"]

    def test_emotional_states_from_string(self, trades):
        assert ids(apply_filters(trades, {"emotionalStates": "confident"})) == ["1"]

    def test_camel_case_keys(self, trades):
        assert ids(apply_filters(trades, {"pnlFilter": "lossable", "strategyId": "breakout"})) == ["5"]


# ============================================================
# COMBINED CONSTRAINTS
# ============================================================

class TestCombined:
    """All present constraints must hold together."""

    def test_conjunction(self, trades):
        filters = TradeFilters(symbol="aapl", side="short")

        assert ids(apply_filters(trades, filters)) == ["3"]

    def test_input_order_preserved(self, trades):
        reversed_trades = list(reversed(trades))

        assert ids(apply_filters(reversed_trades, {"side": "long"})) == ["5", "4", "1"]

    def test_contradiction_is_empty(self, trades):
        assert apply_filters(trades, {"pnl_filter": "profitable", "market": "derivative"}) == []

    def test_subset_of_input(self, trades):
        result = apply_filters(trades, {"symbol": "a"})

        assert all(r in trades for r in result)

    def test_input_not_modified(self, trades):
        before = list(trades)
        apply_filters(trades, {"symbol": "AAPL"})

        assert trades == before


# ============================================================
# INPUT VALIDATION
# ============================================================

class TestInvalidRecords:
    """Tests for ensure_records."""

    @pytest.mark.parametrize("bad", [
        "AAPL",
        b"AAPL",
        {"id": "1"},
        None,
        42,
    ])
    def test_non_sequence_rejected(self, bad):
        with pytest.raises(InvalidRecordsError):
            apply_filters(bad)

    def test_generator_rejected(self, trades):
        with pytest.raises(InvalidRecordsError):
            apply_filters(r for r in trades)

    def test_non_record_element_rejected(self, trades):
        with pytest.raises(InvalidRecordsError) as exc_info:
            apply_filters(trades + [{"id": "6"}])

        assert "Element 5" in str(exc_info.value)

    def test_tuple_accepted(self, trades):
        assert ensure_records(tuple(trades)) == tuple(trades)

    def test_is_type_error(self):
        with pytest.raises(TypeError):
            apply_filters("not records")
