"""
Journal Data Model Tests.

============================================================
PURPOSE
============================================================
Tests for trade records, filter criteria and sort options.

TEST CATEGORIES:
- Record normalisation: legacy labels, emotional states
- Filter criteria: aliases, sanitising, statistics
- Sort options: both directions, alias resolution

============================================================
"""

import json
from datetime import date

import pytest
from pydantic import ValidationError

from journal import (
    EmotionalState,
    MarketCategory,
    PnlFilter,
    Profitability,
    SortConfig,
    SortDirection,
    SortField,
    TRADE_SORT_OPTIONS,
    TradeFilters,
    TradeRecord,
    TradeSide,
    coerce_filters,
    default_trade_filters,
    find_sort_option,
    get_filter_stats,
    parse_emotional_states,
    parse_trade_records,
)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def raw_row():
    """A row as a remote store would hand it over."""
    return {
        "id": 42,
        "user_id": "user-1",
        "symbol": "AAPL",
        "market": "Stock",
        "side": "Buy",
        "entry_price": 150.0,
        "exit_price": 155.5,
        "quantity": 10,
        "pnl": 55.0,
        "trade_date": "2024-01-15",
        "strategy_id": "strat-1",
        "strategy_name": "Breakout",
        "emotional_state": '["fomo", "CONFIDENT"]',
        "created_at": "2024-01-15T10:00:00+00:00",
        "updated_at": "2024-01-16T08:30:00+00:00",
        "unexpected_column": "ignored",
    }


# ============================================================
# TRADE RECORD TESTS
# ============================================================

class TestTradeRecord:
    """Tests for TradeRecord."""

    def test_parse_row(self, raw_row):
        """A store row becomes a normalised record."""
        record = TradeRecord.model_validate(raw_row)

        assert record.id == "42"
        assert record.market is MarketCategory.EQUITY
        assert record.side is TradeSide.LONG
        assert record.emotional_state == (EmotionalState.FOMO, EmotionalState.CONFIDENT)
        assert record.quantity == 10.0

    def test_record_is_frozen(self, raw_row):
        record = TradeRecord.model_validate(raw_row)

        with pytest.raises(ValidationError):
            record.pnl = 0

    @pytest.mark.parametrize("label,expected", [
        ("futures", MarketCategory.DERIVATIVE),
        ("options", MarketCategory.DERIVATIVE),
        ("CRYPTO", MarketCategory.CRYPTO),
        (" forex ", MarketCategory.FOREX),
        ("bonds", None),
        ("", None),
    ])
    def test_market_normalisation(self, label, expected):
        record = TradeRecord(id="1", market=label)

        assert record.market == expected

    @pytest.mark.parametrize("label,expected", [
        ("Sell", TradeSide.SHORT),
        ("LONG", TradeSide.LONG),
        ("sideways", None),
        (None, None),
    ])
    def test_side_normalisation(self, label, expected):
        record = TradeRecord(id="1", side=label)

        assert record.side == expected

    def test_unknown_emotions_dropped(self):
        """Unknown emotional labels are dropped, known ones kept in order."""
        record = TradeRecord(id="1", emotional_state="tilt, bored, regret")

        assert record.emotional_state == (EmotionalState.TILT, EmotionalState.REGRET)

    def test_trade_date_from_date(self):
        record = TradeRecord(id="1", trade_date=date(2024, 2, 29))

        assert record.trade_date == "2024-02-29"

    def test_missing_symbol_is_empty(self):
        assert TradeRecord(id="1", symbol=None).symbol == ""

    @pytest.mark.parametrize("pnl,expected", [
        (10.0, Profitability.PROFITABLE),
        (-0.01, Profitability.LOSSABLE),
        (0, Profitability.NEITHER),
        (None, Profitability.NEITHER),
    ])
    def test_profitability(self, pnl, expected):
        assert TradeRecord(id="1", pnl=pnl).profitability is expected

    def test_parse_trade_records_passes_records_through(self, raw_row):
        existing = TradeRecord(id="x")
        records = parse_trade_records([raw_row, existing])

        assert records[0].id == "42"
        assert records[1] is existing


class TestParseEmotionalStates:
    """Tests for parse_emotional_states."""

    def test_list(self):
        assert parse_emotional_states(["fomo", " Tilt "]) == ["FOMO", "TILT"]

    def test_json_list(self):
        assert parse_emotional_states(json.dumps(["PATIENCE"])) == ["PATIENCE"]

    def test_json_string(self):
        assert parse_emotional_states('"anxious"') == ["ANXIOUS"]

    def test_comma_string(self):
        assert parse_emotional_states("fomo,,neutral") == ["FOMO", "NEUTRAL"]

    @pytest.mark.parametrize("value", [None, "", "   ", 5])
    def test_empty_inputs(self, value):
        assert parse_emotional_states(value) == []


# ============================================================
# FILTER CRITERIA TESTS
# ============================================================

class TestTradeFilters:
    """Tests for TradeFilters."""

    def test_accepts_camel_case_keys(self):
        filters = TradeFilters.model_validate({
            "pnlFilter": "profitable",
            "dateFrom": "2024-01-01",
            "strategyId": "s-1",
            "emotionalStates": "FOMO,TILT",
        })

        assert filters.pnl_filter == "profitable"
        assert filters.date_from == "2024-01-01"
        assert filters.strategy_id == "s-1"
        assert filters.emotional_states == ["FOMO", "TILT"]

    def test_accepts_snake_case_keys(self):
        filters = coerce_filters({"pnl_filter": "lossable", "sort_by": "pnl"})

        assert filters.pnl_filter == "lossable"
        assert filters.sort_field is SortField.PNL

    def test_coerce_none(self):
        assert coerce_filters(None) == TradeFilters()

    def test_enum_values_become_text(self):
        filters = TradeFilters(market=MarketCategory.CRYPTO, pnl_filter=PnlFilter.PROFITABLE)

        assert filters.market == "crypto"
        assert filters.pnl_filter == "profitable"

    def test_default_filters(self):
        filters = default_trade_filters()

        assert filters.pnl_filter == "all"
        assert filters.sort_config.field is SortField.TRADE_DATE
        assert filters.sort_config.direction is SortDirection.DESC
        assert filters.sort_config.label == "Date (Newest First)"

    def test_sanitized_resets_invalid_values(self):
        filters = TradeFilters(sort_order="sideways", pnl_filter="sometimes", side="up", symbol="AAPL")
        clean = filters.sanitized()

        assert clean.sort_order == "desc"
        assert clean.pnl_filter == "all"
        assert clean.side is None
        assert clean.symbol == "AAPL"

    def test_sanitized_keeps_valid_filters(self):
        filters = TradeFilters(sort_order="ASC", pnl_filter="Profitable", side="Buy")

        assert filters.sanitized() is filters

    def test_with_sort(self):
        option = find_sort_option("pnl", "asc")
        filters = TradeFilters(symbol="AAPL").with_sort(option)

        assert filters.sort_by == "pnl"
        assert filters.sort_order == "asc"
        assert filters.symbol == "AAPL"

    def test_unknown_sort_field_has_no_config(self):
        assert TradeFilters(sort_by="volume").sort_config is None


class TestFilterStats:
    """Tests for get_filter_stats."""

    def test_empty_filters(self):
        stats = get_filter_stats(default_trade_filters())

        assert stats == {"active_filters": 0, "has_active_filters": False}

    def test_counts_each_active_constraint(self):
        stats = get_filter_stats({
            "symbol": "AAPL",
            "pnl_filter": "profitable",
            "emotional_states": ["FOMO", "TILT"],
        })

        assert stats["active_filters"] == 3
        assert stats["has_active_filters"] is True

    def test_json_string(self):
        stats = get_filter_stats(json.dumps({"market": "crypto"}))

        assert stats["active_filters"] == 1

    def test_invalid_json(self):
        stats = get_filter_stats("{not json")

        assert stats == {"active_filters": 0, "has_active_filters": False}


# ============================================================
# SORT OPTION TESTS
# ============================================================

class TestSortOptions:
    """Tests for sort fields and options."""

    def test_every_field_in_both_directions(self):
        pairs = {(o.field, o.direction) for o in TRADE_SORT_OPTIONS}

        for field in SortField:
            assert (field, SortDirection.ASC) in pairs
            assert (field, SortDirection.DESC) in pairs
        assert len(TRADE_SORT_OPTIONS) == 2 * len(SortField)

    def test_labels_are_distinct(self):
        labels = [o.label for o in TRADE_SORT_OPTIONS]

        assert len(labels) == len(set(labels))

    @pytest.mark.parametrize("name,expected", [
        ("date", SortField.TRADE_DATE),
        ("price", SortField.ENTRY_PRICE),
        ("strategy", SortField.STRATEGY_NAME),
        ("PnL", SortField.PNL),
        ("pnl", SortField.PNL),
        ("volume", None),
        ("", None),
        (None, None),
    ])
    def test_sort_field_parse(self, name, expected):
        assert SortField.parse(name) is expected

    @pytest.mark.parametrize("value,expected", [
        ("asc", SortDirection.ASC),
        ("DESC", SortDirection.DESC),
        ("up", SortDirection.DESC),
        (None, SortDirection.DESC),
    ])
    def test_sort_direction_parse(self, value, expected):
        assert SortDirection.parse(value) is expected

    def test_sort_config_is_frozen(self):
        config = SortConfig(field=SortField.PNL, direction=SortDirection.ASC)

        with pytest.raises(ValidationError):
            config.direction = SortDirection.DESC
