"""
Event sinks receiving LogEvents from the orchestrator and backoff controller.

The pipeline only knows the EventSink interface; where events end up
(memory, log file, server-sent events) is decided by the caller.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Union

from .models import LogEvent, Severity

logger = logging.getLogger(__name__)

SeverityLike = Union[Severity, str]

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.PROGRESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def coerce_severity(severity: SeverityLike) -> Severity:
    if isinstance(severity, Severity):
        return severity
    try:
        return Severity(str(severity).lower())
    except ValueError:
        return Severity.INFO


class EventSink(ABC):
    """Receives ordered, append-only progress events."""

    @abstractmethod
    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        """Record one event. Must not raise."""
        pass


class NullSink(EventSink):
    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        pass


class CollectingSink(EventSink):
    """Keeps every event in memory (tests, CLI summaries)."""

    def __init__(self):
        self._events: List[LogEvent] = []
        self._lock = threading.Lock()

    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        event = LogEvent(message=message, severity=coerce_severity(severity))
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[LogEvent]:
        with self._lock:
            return list(self._events)

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.events]

    def by_severity(self, severity: SeverityLike) -> List[LogEvent]:
        wanted = coerce_severity(severity)
        return [e for e in self.events if e.severity is wanted]


class LoggingEventSink(EventSink):
    """Writes events to a Python logger."""

    def __init__(self, target: Optional[logging.Logger] = None):
        self.target = target or logger

    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        sev = coerce_severity(severity)
        self.target.log(_LEVELS[sev], message.strip())


class FanOutSink(EventSink):
    """Forwards each event to several sinks, in order."""

    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks = list(sinks)

    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        for sink in self.sinks:
            try:
                sink.emit(message, severity)
            except Exception as e:
                logger.error(f"Event sink {type(sink).__name__} failed: {e}")
