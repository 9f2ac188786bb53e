"""
Caching Module Package.

Components:
- fingerprint: Structural cache keys for call arguments
- memo_cache: TTL memoization cache and memoize wrapper
"""

from .fingerprint import canonical_json, fingerprint
from .memo_cache import DEFAULT_TTL_MS, CacheEntry, MemoCache, MemoizedFunction, memoize


__all__ = [
    "canonical_json",
    "fingerprint",
    "DEFAULT_TTL_MS",
    "CacheEntry",
    "MemoCache",
    "MemoizedFunction",
    "memoize",
]
