"""
Leak Detector Tests.

Tests for tracking, reporting and cleaning up outstanding
timers and listeners.
"""

import logging
from unittest.mock import MagicMock

import pytest

from core import MockClock
from monitoring import LeakDetector, ResourceKind
from scheduling import ManualTimerQueue


@pytest.fixture
def detector():
    return LeakDetector(name="test")


@pytest.fixture
def queue():
    return ManualTimerQueue(MockClock())


class TestLeakDetector:
    """Tests for LeakDetector."""

    def test_clean_session_reports_nothing(self, detector, caplog):
        with caplog.at_level(logging.WARNING, logger="monitoring.leak_detector"):
            report = detector.check_for_leaks()

        assert not report.has_leaks
        assert report.warnings == []
        assert caplog.text == ""

    def test_uncleared_timeout_warns(self, detector, queue, caplog):
        handle = queue.call_later(1000, lambda: None)
        detector.track_timeout(handle, label="filter")

        with caplog.at_level(logging.WARNING, logger="monitoring.leak_detector"):
            report = detector.check_for_leaks()

        assert report.timeouts == 1
        assert report.labels == ["filter"]
        assert "1" in report.warnings[0]
        assert "timeout" in report.warnings[0]
        assert "Memory leak detected" in caplog.text

    def test_counts_per_kind(self, detector):
        detector.track_timeout(MagicMock())
        detector.track_timeout(MagicMock())
        detector.track_interval(MagicMock())
        detector.track_event_listener(MagicMock(), "resize", lambda: None)

        report = detector.check_for_leaks()

        assert (report.timeouts, report.intervals, report.event_listeners) == (2, 1, 1)
        assert report.total == 4
        assert len(report.warnings) == 3

    def test_release(self, detector):
        handle = MagicMock()
        detector.track_timeout(handle)

        assert detector.release_timeout(handle) is True
        assert detector.release_timeout(handle) is False
        assert not detector.check_for_leaks().has_leaks

    def test_release_listener(self, detector):
        def listener():
            pass

        target = MagicMock()
        detector.track_event_listener(target, "scroll", listener)

        assert detector.release_event_listener(MagicMock(), "scroll", listener) is False
        assert detector.release_event_listener(target, "resize", listener) is False
        assert detector.release_event_listener(target, "scroll", listener) is True
        assert detector.outstanding == 0

    def test_cleanup_cancels_everything(self, detector, queue, caplog):
        fired = []
        timeout = queue.call_later(100, lambda: fired.append("timeout"))
        interval = queue.call_repeating(50, lambda: fired.append("interval"))
        target = MagicMock()

        def listener():
            pass

        detector.track_timeout(timeout)
        detector.track_interval(interval)
        detector.track_event_listener(target, "resize", listener)

        assert detector.cleanup() == 3
        queue.advance(500)

        assert fired == []
        target.remove_listener.assert_called_once_with("resize", listener)

        with caplog.at_level(logging.WARNING, logger="monitoring.leak_detector"):
            assert not detector.check_for_leaks().has_leaks
        assert caplog.text == ""

    def test_cleanup_failure_is_logged(self, detector, caplog):
        broken = MagicMock()
        broken.cancel.side_effect = RuntimeError("already gone")
        healthy = MagicMock()
        detector.track_timeout(broken, label="broken")
        detector.track_timeout(healthy)

        with caplog.at_level(logging.ERROR, logger="monitoring.leak_detector"):
            assert detector.cleanup() == 2

        healthy.cancel.assert_called_once()
        assert "broken" in caplog.text
        assert detector.outstanding == 0

    def test_resource_kinds(self):
        assert {k.value for k in ResourceKind} == {"timeout", "interval", "event_listener"}


class TestRegistryKeys:
    """Resources that share a handle or listener are counted separately."""

    def test_listener_on_two_targets(self, detector):
        def listener():
            pass

        first, second = MagicMock(), MagicMock()
        detector.track_event_listener(first, "scroll", listener)
        detector.track_event_listener(second, "scroll", listener)

        assert detector.check_for_leaks().event_listeners == 2

        detector.release_event_listener(first, "scroll", listener)
        assert detector.check_for_leaks().event_listeners == 1

    def test_listener_on_two_events(self, detector):
        def listener():
            pass

        target = MagicMock()
        detector.track_event_listener(target, "scroll", listener)
        detector.track_event_listener(target, "resize", listener)

        assert detector.outstanding == 2

    def test_cleanup_removes_each_registration(self, detector):
        def listener():
            pass

        target = MagicMock()
        detector.track_event_listener(target, "scroll", listener)
        detector.track_event_listener(target, "resize", listener)

        detector.cleanup()

        assert target.remove_listener.call_count == 2

    def test_same_value_different_kinds(self, detector):
        detector.track_timeout(5)
        detector.track_interval(5)

        report = detector.check_for_leaks()

        assert (report.timeouts, report.intervals) == (1, 1)

    def test_int_handle_released_by_value(self, detector):
        detector.track_timeout(123456789)

        assert detector.release_timeout(int("123456789")) is True
        assert detector.outstanding == 0

    def test_repeated_registration_needs_repeated_release(self, detector):
        handle = MagicMock()
        detector.track_timeout(handle)
        detector.track_timeout(handle)

        assert detector.outstanding == 2
        assert detector.release_timeout(handle) is True
        assert detector.outstanding == 1
        assert detector.release_timeout(handle) is True
        assert detector.release_timeout(handle) is False

    def test_unhashable_handle(self, detector):
        handle = {"timer": 1}
        detector.track_timeout(handle)

        assert detector.release_timeout({"timer": 1}) is False
        assert detector.release_timeout(handle) is True
