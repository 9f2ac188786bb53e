"""
Scheduling Module Package.

Bounds how often work runs on a single logical timer queue.

Components:
- timers: Timer queue (manual for tests, asyncio for sessions)
- debounce: Collapse bursts of calls
- throttle: At most one execution per interval
- profiles: Named debounce profiles (filter, sort, state-sync)
"""

from .timers import TimerHandle, TimerQueue, ManualTimerQueue, AsyncioTimerQueue
from .debounce import DebounceState, Debouncer, debounce
from .throttle import Throttler, throttle
from .profiles import (
    DebounceProfile,
    SchedulingConfig,
    FILTER_PROFILE,
    SORT_PROFILE,
    STATE_SYNC_PROFILE,
    create_debounced,
    create_filter_debounced,
    create_sort_debounced,
    create_state_sync_debounced,
)


__all__ = [
    # Timers
    "TimerHandle",
    "TimerQueue",
    "ManualTimerQueue",
    "AsyncioTimerQueue",
    # Debounce / throttle
    "DebounceState",
    "Debouncer",
    "debounce",
    "Throttler",
    "throttle",
    # Profiles
    "DebounceProfile",
    "SchedulingConfig",
    "FILTER_PROFILE",
    "SORT_PROFILE",
    "STATE_SYNC_PROFILE",
    "create_debounced",
    "create_filter_debounced",
    "create_sort_debounced",
    "create_state_sync_debounced",
]
