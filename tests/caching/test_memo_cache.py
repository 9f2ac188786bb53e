"""
Memoization Cache Tests.

============================================================
PURPOSE
============================================================
Tests for argument fingerprints, the TTL cache and memoize().

TEST PRINCIPLES:
- Time moves only through MockClock
- Hits within TTL never call the wrapped function
- Failures are never cached

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import date
from unittest.mock import MagicMock

import pytest

from caching import DEFAULT_TTL_MS, MemoCache, fingerprint, memoize
from core import InvalidConfigError, MockClock
from journal import TradeFilters


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def cache(clock):
    return MemoCache(clock, default_ttl_ms=1000)


@dataclass
class Window:
    start: int
    end: int


# ============================================================
# FINGERPRINT TESTS
# ============================================================

class TestFingerprint:
    """Tests for fingerprint()."""

    def test_dict_order_irrelevant(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})

    def test_set_order_irrelevant(self):
        assert fingerprint({"x", "y", "z"}) == fingerprint({"z", "y", "x"})

    def test_distinguishes_types(self):
        assert fingerprint(1) != fingerprint("1")
        assert fingerprint(1) != fingerprint(True)
        assert fingerprint(None) != fingerprint("")

    def test_distinguishes_args_and_kwargs(self):
        assert fingerprint("AAPL") != fingerprint(symbol="AAPL")

    def test_models_and_dataclasses(self):
        assert fingerprint(TradeFilters(symbol="AAPL")) == fingerprint(TradeFilters(symbol="AAPL"))
        assert fingerprint(TradeFilters(symbol="AAPL")) != fingerprint(TradeFilters(symbol="MSFT"))
        assert fingerprint(Window(1, 2)) == fingerprint(Window(1, 2))

    def test_dates(self):
        assert fingerprint(date(2024, 1, 1)) != fingerprint(date(2024, 1, 2))

    def test_is_hex_digest(self):
        value = fingerprint([1, 2, 3])

        assert len(value) == 64
        int(value, 16)


# ============================================================
# CACHE TESTS
# ============================================================

class TestMemoCache:
    """Tests for MemoCache."""

    def test_default_ttl_is_five_minutes(self):
        assert MemoCache().default_ttl_ms == DEFAULT_TTL_MS == 300_000

    def test_set_and_get(self, cache):
        cache.set("k", [1, 2])

        assert cache.get("k") == [1, 2]
        assert cache.contains("k")
        assert "k" in cache

    def test_cached_none_is_hit(self, cache):
        cache.set("k", None)

        assert cache.lookup("k") == (True, None)
        assert cache.get_stats()["hits"] == 1

    def test_expires_after_ttl(self, cache, clock):
        cache.set("k", "v")

        clock.advance_ms(999)
        assert cache.get("k") == "v"

        clock.advance_ms(1)
        assert cache.get("k", "gone") == "gone"
        assert len(cache) == 0

    def test_per_entry_ttl(self, cache, clock):
        cache.set("short", 1, ttl_ms=10)
        cache.set("long", 2)
        clock.advance_ms(20)

        assert not cache.contains("short")
        assert cache.contains("long")

    def test_delete(self, cache):
        cache.set("k", 1)

        assert cache.delete("k") is True
        assert cache.delete("k") is False

    def test_clear_with_pattern(self, cache, caplog):
        cache.set("query:a", 1)
        cache.set("query:b", 2)
        cache.set("summary:a", 3)

        with caplog.at_level(logging.INFO, logger="caching.memo_cache"):
            removed = cache.clear("query:")

        assert removed == 2
        assert cache.get_stats()["keys"] == ["summary:a"]
        assert "cleared" in caplog.text

    def test_clear_all(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.clear() == 2
        assert len(cache) == 0

    def test_purge_expired(self, cache, clock):
        cache.set("old", 1, ttl_ms=5)
        cache.set("new", 2)
        clock.advance_ms(10)

        assert cache.purge_expired() == 1
        assert cache.get_stats()["keys"] == ["new"]

    def test_stats(self, cache):
        cache.set("k", 1)
        cache.get("k")
        cache.get("k")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_ratio"] == pytest.approx(2 / 3)
        assert stats["size"] == 1

        cache.reset_stats()
        assert cache.get_stats()["hit_ratio"] == 0.0

    def test_negative_ttl_rejected(self, clock):
        with pytest.raises(InvalidConfigError):
            MemoCache(clock, default_ttl_ms=-1)


# ============================================================
# MEMOIZE TESTS
# ============================================================

class TestMemoize:
    """Tests for memoize()."""

    def test_empty_injected_cache_is_used(self, cache):
        assert len(cache) == 0

        memoized = memoize(lambda n: n + 1, cache=cache)
        memoized(1)

        assert memoized.cache is cache
        assert len(cache) == 1

    def test_hit_within_ttl_skips_call(self, cache, clock):
        spy = MagicMock(return_value=42)
        memoized = memoize(spy, ttl_ms=500, cache=cache)

        assert memoized(1, 2) == 42
        clock.advance_ms(499)
        assert memoized(1, 2) == 42

        spy.assert_called_once_with(1, 2)

    def test_expiry_recomputes(self, cache, clock):
        spy = MagicMock(side_effect=[1, 2])
        memoized = memoize(spy, ttl_ms=500, cache=cache)

        assert memoized("x") == 1
        clock.advance_ms(500)
        assert memoized("x") == 2
        assert spy.call_count == 2

    def test_different_arguments_are_separate(self, cache):
        memoized = memoize(lambda n: n * 2, cache=cache)

        assert memoized(2) == 4
        assert memoized(3) == 6
        assert cache.get_stats()["misses"] == 2

    def test_custom_key_fn(self, cache):
        spy = MagicMock(side_effect=lambda records, label: len(records))
        memoized = memoize(spy, key_fn=lambda records, label: str(len(records)), cache=cache)

        memoized([1, 2], "first")
        memoized([3, 4], "second")

        spy.assert_called_once()

    def test_exception_not_cached(self, cache):
        calls = []

        def flaky(x):
            calls.append(x)
            if len(calls) == 1:
                raise ValueError("first call fails")
            return x

        memoized = memoize(flaky, cache=cache)

        with pytest.raises(ValueError):
            memoized(7)
        assert memoized(7) == 7
        assert len(calls) == 2

    def test_invalidate(self, cache):
        def double(n):
            return n * 2

        memoized = memoize(double, cache=cache)
        memoized(1)
        cache.set("other", "kept")

        assert memoized.invalidate() == 1
        assert cache.contains("other")

    def test_wraps_metadata(self):
        def described(x):
            """Docstring."""
            return x

        assert memoize(described).__doc__ == "Docstring."

    def test_private_cache_by_default(self):
        memoized = memoize(lambda: 1)

        assert isinstance(memoized.cache, MemoCache)
