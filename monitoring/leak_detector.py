"""
Monitoring - Leak Detector.

============================================================
PURPOSE
============================================================
Registry of outstanding timers and listeners.

- track_* registers a resource, release_* forgets it
- check_for_leaks() warns once per kind with the count
- cleanup() cancels and removes everything

Neither check_for_leaks() nor cleanup() ever raises: a leak
must not interrupt the session that noticed it.

============================================================
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    TIMEOUT = "timeout"
    INTERVAL = "interval"
    EVENT_LISTENER = "event_listener"


# Used in warnings: "3 uncleared timeouts"
_KIND_PLURALS = {
    ResourceKind.TIMEOUT: "timeouts",
    ResourceKind.INTERVAL: "intervals",
    ResourceKind.EVENT_LISTENER: "event listeners",
}


@dataclass
class TrackedResource:
    kind: ResourceKind
    handle: Any
    label: Optional[str] = None
    event: Optional[str] = None
    listener: Optional[Callable[..., Any]] = None


RegistryKey = Tuple[Hashable, ...]


@dataclass
class LeakReport:
    """Outstanding resource counts at the time of a check."""

    timeouts: int = 0
    intervals: int = 0
    event_listeners: int = 0
    labels: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.timeouts + self.intervals + self.event_listeners

    @property
    def has_leaks(self) -> bool:
        return self.total > 0


class LeakDetector:
    """
    Tracks outstanding timer handles and event listeners.

    Timer handles are anything with cancel(). Listener targets
    are cleaned up through remove_listener(event, listener) when
    the target offers it.

    Timers are keyed by kind and handle (by value when hashable,
    otherwise by object), listeners by kind, target, event and
    listener. Registering the same key twice needs two releases.
    """

    def __init__(self, name: str = "query-engine"):
        self.name = name
        self._resources: Dict[RegistryKey, List[TrackedResource]] = {}
        self._lock = threading.Lock()

    # --------------------------------------------------------
    # REGISTRATION
    # --------------------------------------------------------

    @staticmethod
    def _handle_key(kind: ResourceKind, handle: Any) -> RegistryKey:
        try:
            hash(handle)
        except TypeError:
            return (kind, "object", id(handle))
        return (kind, "value", handle)

    @staticmethod
    def _listener_key(target: Any, event: str, listener: Callable[..., Any]) -> RegistryKey:
        return (ResourceKind.EVENT_LISTENER, id(target), event, id(listener))

    def _track(self, key: RegistryKey, resource: TrackedResource) -> None:
        with self._lock:
            self._resources.setdefault(key, []).append(resource)

    def _release(self, key: RegistryKey) -> bool:
        with self._lock:
            entries = self._resources.get(key)
            if not entries:
                return False
            entries.pop()
            if not entries:
                del self._resources[key]
            return True

    def track_timeout(self, handle: Any, label: Optional[str] = None) -> None:
        self._track(
            self._handle_key(ResourceKind.TIMEOUT, handle),
            TrackedResource(ResourceKind.TIMEOUT, handle, label),
        )

    def track_interval(self, handle: Any, label: Optional[str] = None) -> None:
        self._track(
            self._handle_key(ResourceKind.INTERVAL, handle),
            TrackedResource(ResourceKind.INTERVAL, handle, label),
        )

    def track_event_listener(
        self,
        target: Any,
        event: str,
        listener: Callable[..., Any],
        label: Optional[str] = None,
    ) -> None:
        self._track(
            self._listener_key(target, event, listener),
            TrackedResource(ResourceKind.EVENT_LISTENER, target, label, event, listener),
        )

    def release_timeout(self, handle: Any) -> bool:
        return self._release(self._handle_key(ResourceKind.TIMEOUT, handle))

    def release_interval(self, handle: Any) -> bool:
        return self._release(self._handle_key(ResourceKind.INTERVAL, handle))

    def release_event_listener(
        self,
        target: Any,
        event: str,
        listener: Callable[..., Any],
    ) -> bool:
        return self._release(self._listener_key(target, event, listener))

    @property
    def outstanding(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._resources.values())

    # --------------------------------------------------------
    # CHECK / CLEANUP
    # --------------------------------------------------------

    def check_for_leaks(self) -> LeakReport:
        """Warn about each kind with outstanding resources."""
        with self._lock:
            resources = [r for entries in self._resources.values() for r in entries]

        counts = {kind: 0 for kind in ResourceKind}
        labels = []
        for resource in resources:
            counts[resource.kind] += 1
            if resource.label:
                labels.append(resource.label)

        report = LeakReport(
            timeouts=counts[ResourceKind.TIMEOUT],
            intervals=counts[ResourceKind.INTERVAL],
            event_listeners=counts[ResourceKind.EVENT_LISTENER],
            labels=labels,
        )
        for kind in ResourceKind:
            if counts[kind]:
                message = f"Memory leak detected: {counts[kind]} uncleared {_KIND_PLURALS[kind]}"
                report.warnings.append(message)
                logger.warning(f"[{self.name}] {message}")
        return report

    def cleanup(self) -> int:
        """
        Cancel timers, remove listeners and empty the registry.

        Returns:
            Number of resources that were registered
        """
        with self._lock:
            resources = [r for entries in self._resources.values() for r in entries]
            self._resources.clear()

        for resource in resources:
            try:
                if resource.kind is ResourceKind.EVENT_LISTENER:
                    remove = getattr(resource.handle, "remove_listener", None)
                    if callable(remove):
                        remove(resource.event, resource.listener)
                else:
                    cancel = getattr(resource.handle, "cancel", None)
                    if callable(cancel):
                        cancel()
            except Exception:
                logger.exception(f"[{self.name}] Failed to clean up {resource.kind.value} {resource.label or ''}")

        if resources:
            logger.info(f"[{self.name}] Cleaned up {len(resources)} tracked resources")
        return len(resources)


__all__ = [
    "ResourceKind",
    "TrackedResource",
    "LeakReport",
    "LeakDetector",
]
