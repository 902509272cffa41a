"""
Server-sent event transport for batch progress.

Wire format: one `data: <json>\\n\\n` frame per record. Log frames carry
{message, type, timestamp}; the last frame of a stream is a terminal
record {success, message?, data?, error?}.

Producer side: StreamingTransport is an EventSink that queues frames for
a response generator. Consumer side: StreamDecoder reassembles frames
from arbitrary transport chunks and StreamClient reads them over HTTP.
"""

import codecs
import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import requests

from .events import EventSink, SeverityLike, coerce_severity
from .models import LogEvent, Severity

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"

_CLOSED = object()


def encode_frame(payload: Dict[str, Any]) -> bytes:
    return f"{FRAME_PREFIX}{json.dumps(payload)}{FRAME_SEPARATOR}".encode("utf-8")


def is_terminal(record: Dict[str, Any]) -> bool:
    return "success" in record or ("error" in record and "type" not in record)


class StreamingTransport(EventSink):
    """
    EventSink relaying events to one remote observer.

    emit() may be called from the worker thread while iter_frames() is
    consumed by the HTTP response; a queue keeps them in order. After
    finish() or close(), further events are dropped.
    """

    def __init__(self):
        # unbounded: put() never blocks while the lock is held
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: Any) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._queue.put(item)
            return True

    def emit(self, message: str, severity: SeverityLike = Severity.INFO) -> None:
        event = LogEvent(message=message, severity=coerce_severity(severity))
        if not self._put(encode_frame(event.to_dict())):
            logger.debug(f"Dropped event after stream close: {message}")

    def finish(
        self,
        success: bool,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Push the terminal record and close the channel."""
        record: Dict[str, Any] = {"success": success}
        if message is not None:
            record["message"] = message
        if data is not None:
            record["data"] = data
        if error is not None:
            record["error"] = error
        self._put(encode_frame(record))
        self.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def iter_frames(self) -> Iterator[bytes]:
        """Yield encoded frames until the channel is closed."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


class StreamDecoder:
    """
    Incremental parser for `data: <json>` frames.

    Keeps a rolling buffer so a frame (or a multi-byte character) split
    across chunks is parsed exactly once. Frames that fail to parse are
    logged and skipped.
    """

    def __init__(self):
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: Union[bytes, str]) -> List[Dict[str, Any]]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._parse_lines(lines)

    def close(self) -> List[Dict[str, Any]]:
        """Flush whatever is left once the channel has closed."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return []
        return self._parse_lines(remainder.split("\n"))

    @staticmethod
    def _parse_lines(lines: Iterable[str]) -> List[Dict[str, Any]]:
        records = []
        for line in lines:
            line = line.strip()
            if not line.startswith(FRAME_PREFIX):
                continue
            payload = line[len(FRAME_PREFIX):]
            try:
                record = json.loads(payload)
            except json.JSONDecodeError as e:
                logger.error(f"Error parsing stream frame: {e}. Line: {line[:200]}")
                continue
            if isinstance(record, dict):
                records.append(record)
            else:
                logger.error(f"Ignoring non-object stream frame: {line[:200]}")
        return records


@dataclass
class StreamResult:
    """Everything observed on one stream."""
    events: List[LogEvent] = field(default_factory=list)
    terminal: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return bool(self.terminal and self.terminal.get("success"))

    @property
    def error(self) -> Optional[str]:
        if self.terminal is None:
            return "Stream ended without a result"
        return self.terminal.get("error")


def consume_records(
    chunks: Iterable[Union[bytes, str]], on_event=None
) -> StreamResult:
    """
    Decode a whole stream.

    Args:
        chunks: Raw transport chunks in arrival order
        on_event: Optional callable(LogEvent) invoked for each log frame
    """
    decoder = StreamDecoder()
    result = StreamResult()

    def handle(record: Dict[str, Any]) -> None:
        if is_terminal(record):
            if result.terminal is None:
                result.terminal = record
            return
        event = LogEvent(
            message=str(record.get("message", "")),
            severity=coerce_severity(record.get("type", "info")),
            timestamp=str(record.get("timestamp", "")),
        )
        result.events.append(event)
        if on_event:
            on_event(event)

    for chunk in chunks:
        for record in decoder.feed(chunk):
            handle(record)
    for record in decoder.close():
        handle(record)
    return result


class StreamClient:
    """
    Reads the analysis stream from a running CallSight server.

    Usage:
        client = StreamClient("http://localhost:5000")
        result = client.analyze("calls.xlsx", "groq", "llama-3.3-70b-versatile")
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def analyze(
        self, file_path: str, provider: str, model: str, on_event=None
    ) -> StreamResult:
        with open(file_path, "rb") as f:
            response = requests.post(
                f"{self.base_url}/api/analyze-stream",
                files={"file": f},
                data={"provider": provider, "model": model},
                stream=True,
                timeout=self.timeout,
            )
        response.raise_for_status()
        try:
            return consume_records(response.iter_content(chunk_size=None), on_event)
        finally:
            response.close()
