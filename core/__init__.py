"""
Core Module Package.

This package contains the infrastructure pieces every other
package depends on.

Components:
- clock: Injectable time abstraction
- exceptions: Custom exception hierarchy
- logging_setup: Console logging for embedding applications
"""

from .clock import ClockProtocol, SystemClock, MockClock
from .exceptions import (
    QueryEngineError,
    ConfigurationError,
    InvalidConfigError,
    InvalidRecordsError,
    CoordinatorDisposedError,
)
from .logging_setup import configure_logging


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "QueryEngineError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidRecordsError",
    "CoordinatorDisposedError",
    "configure_logging",
]
