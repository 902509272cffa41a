"""
Unit tests for event sinks and the cancellation token.
"""

import threading

import pytest

from callsight.core.cancellation import CancellationToken
from callsight.core.events import CollectingSink, EventSink, FanOutSink, NullSink, coerce_severity
from callsight.core.models import LogEvent, Severity
from callsight.exceptions import OperationCancelled


class _BrokenSink(EventSink):
    def emit(self, message, severity=Severity.INFO):
        raise RuntimeError("sink down")


class TestCollectingSink:

    def test_events_keep_order_and_severity(self):
        sink = CollectingSink()
        sink.emit("a")
        sink.emit("b", Severity.SUCCESS)
        sink.emit("c", "warning")

        assert sink.messages == ["a", "b", "c"]
        assert [e.severity for e in sink.events] == [
            Severity.INFO, Severity.SUCCESS, Severity.WARNING,
        ]
        assert [e.message for e in sink.by_severity("warning")] == ["c"]

    def test_events_have_timestamps(self):
        sink = CollectingSink()
        sink.emit("a")

        event = sink.events[0]
        assert event.timestamp.endswith("Z")
        assert event.to_dict() == {
            "message": "a", "type": "info", "timestamp": event.timestamp,
        }

    def test_concurrent_emit(self):
        sink = CollectingSink()
        threads = [
            threading.Thread(target=lambda: [sink.emit("x") for _ in range(100)])
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(sink.events) == 400


class TestFanOutSink:

    def test_forwards_to_all(self):
        first, second = CollectingSink(), CollectingSink()
        FanOutSink([first, NullSink(), second]).emit("hello", Severity.ERROR)

        assert first.messages == ["hello"]
        assert second.by_severity(Severity.ERROR)[0].message == "hello"

    def test_broken_sink_does_not_stop_others(self):
        collected = CollectingSink()
        FanOutSink([_BrokenSink(), collected]).emit("still delivered")

        assert collected.messages == ["still delivered"]


def test_coerce_severity():
    assert coerce_severity(Severity.ERROR) is Severity.ERROR
    assert coerce_severity("SUCCESS") is Severity.SUCCESS
    assert coerce_severity("loud") is Severity.INFO


def test_log_event_defaults():
    event = LogEvent("m")
    assert event.severity is Severity.INFO


class TestCancellationToken:

    def test_initial_state(self):
        token = CancellationToken()

        assert not token.is_cancelled
        token.raise_if_cancelled()
        assert token.sleep(0) is True

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()

        assert token.is_cancelled
        with pytest.raises(OperationCancelled):
            token.raise_if_cancelled()
        assert token.sleep(0) is False
        assert token.sleep(30) is False

    def test_sleep_interrupted_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()

        try:
            assert token.sleep(30) is False
        finally:
            timer.cancel()

    def test_sleep_elapses(self):
        assert CancellationToken().sleep(0.01) is True
