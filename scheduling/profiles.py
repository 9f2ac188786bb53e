"""
Scheduling - Named Debounce Profiles.

============================================================
PURPOSE
============================================================
The three debounce classes used by an interactive journal
view:

- filter:      300 ms quiet period, forced after 1000 ms
- sort:        150 ms quiet period, forced after 500 ms
- state-sync:  500 ms quiet period, forced after 2000 ms

Delays can be overridden per engine through SchedulingConfig.

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from core.exceptions import InvalidConfigError, require_non_negative

from .debounce import Debouncer
from .timers import TimerQueue


# ============================================================
# PROFILES
# ============================================================

@dataclass(frozen=True)
class DebounceProfile:
    """Delay and ceiling for one class of debounced work."""

    name: str
    """Label used for timers and leak reports."""

    delay_ms: float
    """Quiet period before the trailing execution."""

    max_wait_ms: Optional[float] = None
    """Ceiling after which execution is forced."""

    leading: bool = False
    """Fire on the first call of a burst."""

    def validate(self) -> None:
        require_non_negative(f"{self.name}.delay_ms", self.delay_ms, required=True)
        require_non_negative(f"{self.name}.max_wait_ms", self.max_wait_ms)
        if self.max_wait_ms is not None and self.max_wait_ms < self.delay_ms:
            raise InvalidConfigError(
                f"{self.name}.max_wait_ms", self.max_wait_ms,
                f"must not be shorter than delay_ms ({self.delay_ms})",
            )


FILTER_PROFILE = DebounceProfile(name="filter", delay_ms=300, max_wait_ms=1000)
SORT_PROFILE = DebounceProfile(name="sort", delay_ms=150, max_wait_ms=500)
STATE_SYNC_PROFILE = DebounceProfile(name="state-sync", delay_ms=500, max_wait_ms=2000)


@dataclass
class SchedulingConfig:
    """
    Debounce profiles for one engine instance.
    """

    filter: DebounceProfile = field(default_factory=lambda: FILTER_PROFILE)
    """Profile for filter criteria changes."""

    sort: DebounceProfile = field(default_factory=lambda: SORT_PROFILE)
    """Profile for sort changes."""

    state_sync: DebounceProfile = field(default_factory=lambda: STATE_SYNC_PROFILE)
    """Profile for pushing query state to an external store."""

    def validate(self) -> None:
        for profile in (self.filter, self.sort, self.state_sync):
            profile.validate()


# ============================================================
# FACTORIES
# ============================================================

def create_debounced(
    fn: Callable[..., Any],
    profile: DebounceProfile,
    queue: TimerQueue,
    leak_detector: Optional[Any] = None,
) -> Debouncer:
    """Build a Debouncer from a profile."""
    return Debouncer(
        fn,
        profile.delay_ms,
        queue,
        leading=profile.leading,
        max_wait_ms=profile.max_wait_ms,
        name=profile.name,
        leak_detector=leak_detector,
    )


def create_filter_debounced(
    fn: Callable[..., Any],
    queue: TimerQueue,
    config: Optional[SchedulingConfig] = None,
    leak_detector: Optional[Any] = None,
) -> Debouncer:
    profile = config.filter if config else FILTER_PROFILE
    return create_debounced(fn, profile, queue, leak_detector)


def create_sort_debounced(
    fn: Callable[..., Any],
    queue: TimerQueue,
    config: Optional[SchedulingConfig] = None,
    leak_detector: Optional[Any] = None,
) -> Debouncer:
    profile = config.sort if config else SORT_PROFILE
    return create_debounced(fn, profile, queue, leak_detector)


def create_state_sync_debounced(
    fn: Callable[..., Any],
    queue: TimerQueue,
    config: Optional[SchedulingConfig] = None,
    leak_detector: Optional[Any] = None,
) -> Debouncer:
    profile = config.state_sync if config else STATE_SYNC_PROFILE
    return create_debounced(fn, profile, queue, leak_detector)


__all__ = [
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
