"""
Caching - TTL Memoization Cache.

============================================================
PURPOSE
============================================================
Keyed store of computed values, each valid for a time-to-live.

RULES:
- An entry is valid only while now - inserted_at < ttl
- Expired entries behave as misses and may be evicted any time
- A cached None is a hit
- Exceptions from the computation propagate; nothing is cached

Time comes from an injected clock so tests can move it.

============================================================
"""

import functools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.clock import ClockProtocol, SystemClock
from core.exceptions import require_callable, require_non_negative

from .fingerprint import fingerprint


logger = logging.getLogger(__name__)


DEFAULT_TTL_MS = 5 * 60 * 1000


# ============================================================
# CACHE ENTRY
# ============================================================

@dataclass(frozen=True)
class CacheEntry:
    """A stored value and when it stops being valid."""

    value: Any
    inserted_at_ms: float
    ttl_ms: float

    def is_valid(self, now_ms: float) -> bool:
        return now_ms - self.inserted_at_ms < self.ttl_ms


# ============================================================
# CACHE
# ============================================================

class MemoCache:
    """
    Thread-safe TTL cache keyed by string.

    Example:
        >>> cache = MemoCache(clock, default_ttl_ms=1000)
        >>> cache.set("k", 42)
        >>> cache.get("k")
        42
    """

    def __init__(
        self,
        clock: Optional[ClockProtocol] = None,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        name: str = "memo",
    ):
        require_non_negative("default_ttl_ms", default_ttl_ms)
        self.clock = clock or SystemClock()
        self.default_ttl_ms = default_ttl_ms
        self.name = name
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    # --------------------------------------------------------
    # LOOKUP
    # --------------------------------------------------------

    def lookup(self, key: str) -> Tuple[bool, Any]:
        """
        Look a key up, counting the hit or miss.

        Returns:
            (found, value); value is None when not found
        """
        now = self.clock.millis()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_valid(now):
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return False, None
            self._hits += 1
            return True, entry.value

    def get(self, key: str, default: Any = None) -> Any:
        found, value = self.lookup(key)
        return value if found else default

    def contains(self, key: str) -> bool:
        """Valid entry present. Does not touch hit/miss counters."""
        now = self.clock.millis()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.is_valid(now)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # --------------------------------------------------------
    # MUTATION
    # --------------------------------------------------------

    def set(self, key: str, value: Any, ttl_ms: Optional[float] = None) -> None:
        require_non_negative("ttl_ms", ttl_ms)
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        entry = CacheEntry(value=value, inserted_at_ms=self.clock.millis(), ttl_ms=ttl)
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Remove entries.

        Args:
            pattern: Only remove keys containing this substring

        Returns:
            Number of entries removed
        """
        with self._lock:
            if pattern is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [k for k in self._entries if pattern in k]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)
        logger.info(f"Cache {self.name} cleared: {removed} entries" + (f" matching {pattern!r}" if pattern else ""))
        return removed

    def purge_expired(self) -> int:
        now = self.clock.millis()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_valid(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cache {self.name} purged {len(expired)} expired entries")
        return len(expired)

    # --------------------------------------------------------
    # STATISTICS
    # --------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "keys": list(self._entries.keys()),
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": self._hits / total if total else 0.0,
            }

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses


# ============================================================
# MEMOIZE
# ============================================================

class MemoizedFunction:
    """Callable wrapper that serves repeated calls from a MemoCache."""

    def __init__(
        self,
        fn: Callable[..., Any],
        key_fn: Optional[Callable[..., str]] = None,
        ttl_ms: Optional[float] = None,
        cache: Optional[MemoCache] = None,
    ):
        require_callable("fn", fn)
        if key_fn is not None:
            require_callable("key_fn", key_fn)
        require_non_negative("ttl_ms", ttl_ms)
        self.fn = fn
        self.key_fn = key_fn
        self.ttl_ms = ttl_ms
        self.cache = cache if cache is not None else MemoCache()
        self.namespace = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", "fn")
        functools.update_wrapper(self, fn, updated=())

    def cache_key(self, *args: Any, **kwargs: Any) -> str:
        raw = self.key_fn(*args, **kwargs) if self.key_fn else fingerprint(*args, **kwargs)
        return f"{self.namespace}:{raw}"

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        key = self.cache_key(*args, **kwargs)
        found, value = self.cache.lookup(key)
        if found:
            logger.debug(f"Memo hit for {self.namespace}")
            return value
        logger.debug(f"Memo miss for {self.namespace}")
        value = self.fn(*args, **kwargs)
        self.cache.set(key, value, self.ttl_ms)
        return value

    def invalidate(self) -> int:
        """Drop every cached result of this function."""
        return self.cache.clear(f"{self.namespace}:")


def memoize(
    fn: Callable[..., Any],
    key_fn: Optional[Callable[..., str]] = None,
    ttl_ms: Optional[float] = None,
    cache: Optional[MemoCache] = None,
) -> MemoizedFunction:
    """
    Wrap fn so repeated calls with the same arguments are served
    from cache within the TTL.

    Args:
        fn: Function to memoize
        key_fn: Builds the cache key from the call arguments
            (default: fingerprint of the arguments)
        ttl_ms: Entry lifetime (default: the cache's default TTL)
        cache: Cache to store results in (default: a private one)
    """
    return MemoizedFunction(fn, key_fn=key_fn, ttl_ms=ttl_ms, cache=cache)


__all__ = [
    "DEFAULT_TTL_MS",
    "CacheEntry",
    "MemoCache",
    "MemoizedFunction",
    "memoize",
]
