"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exception hierarchy of the query engine.

- Configuration mistakes fail fast at construction time
- Structural input errors surface from the pure evaluators
- Data-shape anomalies are NOT exceptions (they degrade)
- Leak conditions are NOT exceptions (they are logged)

============================================================
EXCEPTION HIERARCHY
============================================================
QueryEngineError (base)
├── ConfigurationError          (also a ValueError)
│   └── InvalidConfigError
├── InvalidRecordsError         (also a TypeError)
└── CoordinatorDisposedError    (also a RuntimeError)

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# BASE EXCEPTION
# ============================================================

class QueryEngineError(Exception):
    """
    Base exception for all query engine errors.

    All exceptions carry:
    - context: for debugging
    - timestamp: when the error occurred
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        base = f"{type(self).__name__}: {self.message}"
        return f"{base} | {ctx_str}" if ctx_str else base


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(QueryEngineError, ValueError):
    """Error in configuration of a scheduling, caching or tracking primitive."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            config_key=key,
            actual_value=value,
            context={"reason": reason},
        )


# ============================================================
# INPUT ERRORS
# ============================================================

class InvalidRecordsError(QueryEngineError, TypeError):
    """Record input is structurally invalid (not a sequence of trade records)."""

    def __init__(self, message: str, received_type: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if received_type:
            context["received_type"] = received_type
        super().__init__(message, context=context, **kwargs)


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class CoordinatorDisposedError(QueryEngineError, RuntimeError):
    """A disposed query coordinator was asked to do more work."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Query coordinator is disposed, cannot {operation}",
            context={"operation": operation},
        )


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def require_non_negative(key: str, value: Optional[float], required: bool = False) -> None:
    """
    Raise InvalidConfigError if a delay-like value is negative.

    None passes unless required is set.
    """
    if value is None:
        if required:
            raise InvalidConfigError(key, value, "is required")
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigError(key, value, "must be a number")
    if value < 0:
        raise InvalidConfigError(key, value, "must not be negative")


def require_callable(key: str, fn: Any) -> None:
    """Raise ConfigurationError if fn cannot be called."""
    if fn is None or not callable(fn):
        raise ConfigurationError(
            f"{key} must be callable, got {type(fn).__name__}",
            config_key=key,
            actual_value=fn,
        )


__all__ = [
    "QueryEngineError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidRecordsError",
    "CoordinatorDisposedError",
    "require_non_negative",
    "require_callable",
]
