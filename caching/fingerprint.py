"""
Caching - Argument Fingerprint.

Deterministic structural encoding of call arguments, used as a
cache key. Two argument lists that are structurally equal give
the same fingerprint regardless of dict key order or set order.
"""

import dataclasses
import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel


def _normalize(value: Any) -> Any:
    """Reduce a value to JSON-encodable primitives with a stable layout."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        # repr keeps nan/inf distinguishable and JSON-safe
        return {"__float__": repr(value)}
    if isinstance(value, Enum):
        return _normalize(value.value)
    if isinstance(value, Decimal):
        return {"__decimal__": str(value)}
    if isinstance(value, (datetime, date)):
        return {"__date__": value.isoformat()}
    if isinstance(value, BaseModel):
        return {"__model__": type(value).__name__, "fields": _normalize(value.model_dump())}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {"__dataclass__": type(value).__name__, "fields": _normalize(dataclasses.asdict(value))}
    if isinstance(value, dict):
        return {"__dict__": sorted(
            ([_normalize(k), _normalize(v)] for k, v in value.items()),
            key=lambda kv: json.dumps(kv[0], sort_keys=True),
        )}
    if isinstance(value, (set, frozenset)):
        items = [_normalize(v) for v in value]
        return {"__set__": sorted(items, key=lambda v: json.dumps(v, sort_keys=True))}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, bytes):
        return {"__bytes__": value.hex()}
    return {"__repr__": f"{type(value).__qualname__}:{value!r}"}


def canonical_json(*args: Any, **kwargs: Any) -> str:
    """Canonical JSON text of the arguments."""
    payload = {"args": _normalize(list(args)), "kwargs": _normalize(kwargs)}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def fingerprint(*args: Any, **kwargs: Any) -> str:
    """
    SHA-256 hex digest of the canonical JSON of the arguments.

    Example:
        >>> fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})
        True
    """
    return hashlib.sha256(canonical_json(*args, **kwargs).encode("utf-8")).hexdigest()


__all__ = [
    "canonical_json",
    "fingerprint",
]
