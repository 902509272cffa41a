"""
Unit tests for the server-sent event transport and its decoder.
"""

import json
import threading
from unittest.mock import MagicMock, patch

from callsight.core.models import Severity
from callsight.core.streaming import (
    StreamDecoder,
    StreamingTransport,
    StreamClient,
    consume_records,
    encode_frame,
    is_terminal,
)


def _frame(payload):
    return encode_frame(payload)


class TestEncodeFrame:

    def test_wire_format(self):
        frame = encode_frame({"message": "hi", "type": "info", "timestamp": "t"})

        assert frame.startswith(b"data: ")
        assert frame.endswith(b"\n\n")
        assert json.loads(frame[len(b"data: "):].decode()) == {
            "message": "hi", "type": "info", "timestamp": "t",
        }

    def test_is_terminal(self):
        assert is_terminal({"success": True, "data": {}})
        assert is_terminal({"success": False, "error": "x"})
        assert is_terminal({"error": "x"})
        assert not is_terminal({"message": "m", "type": "error", "timestamp": "t"})


class TestStreamingTransport:

    def test_events_then_terminal(self):
        transport = StreamingTransport()
        transport.emit("one")
        transport.emit("two", Severity.WARNING)
        transport.finish(success=True, message="done", data={"totalCalls": 0})

        result = consume_records(transport.iter_frames())

        assert [e.message for e in result.events] == ["one", "two"]
        assert result.events[1].severity is Severity.WARNING
        assert result.success
        assert result.terminal["message"] == "done"
        assert result.terminal["data"] == {"totalCalls": 0}

    def test_failure_terminal(self):
        transport = StreamingTransport()
        transport.finish(success=False, error="No file uploaded")

        result = consume_records(transport.iter_frames())

        assert not result.success
        assert result.error == "No file uploaded"
        assert result.terminal == {"success": False, "error": "No file uploaded"}

    def test_events_after_close_are_dropped(self):
        transport = StreamingTransport()
        transport.emit("kept")
        transport.close()
        transport.emit("dropped")
        transport.finish(success=True)

        frames = list(transport.iter_frames())

        assert len(frames) == 1
        assert b"kept" in frames[0]

    def test_close_is_idempotent(self):
        transport = StreamingTransport()
        transport.close()
        transport.close()

        assert transport.closed
        assert list(transport.iter_frames()) == []

    def test_producer_thread(self):
        transport = StreamingTransport()

        def produce():
            for i in range(50):
                transport.emit(f"event {i}")
            transport.finish(success=True)

        worker = threading.Thread(target=produce)
        worker.start()
        result = consume_records(transport.iter_frames())
        worker.join(timeout=5)

        assert [e.message for e in result.events] == [f"event {i}" for i in range(50)]
        assert result.success

    def test_close_while_nobody_reads(self):
        transport = StreamingTransport()

        def produce():
            for i in range(5000):
                transport.emit(f"event {i}")

        worker = threading.Thread(target=produce)
        worker.start()
        worker.join(timeout=5)
        closer = threading.Thread(target=transport.close)
        closer.start()
        closer.join(timeout=5)

        assert not worker.is_alive()
        assert not closer.is_alive()
        assert transport.closed

    def test_string_severity_accepted(self):
        transport = StreamingTransport()
        transport.emit("p", "progress")
        transport.emit("odd", "verbose")
        transport.close()

        result = consume_records(transport.iter_frames())

        assert [e.severity for e in result.events] == [Severity.PROGRESS, Severity.INFO]


class TestStreamDecoder:

    def test_frame_split_across_chunks(self):
        frame = _frame({"message": "hello", "type": "info", "timestamp": "t"})
        decoder = StreamDecoder()

        first = decoder.feed(frame[:10])
        second = decoder.feed(frame[10:])

        assert first == []
        assert second == [{"message": "hello", "type": "info", "timestamp": "t"}]

    def test_several_frames_in_one_chunk(self):
        data = _frame({"message": "a"}) + _frame({"message": "b"})

        assert StreamDecoder().feed(data) == [{"message": "a"}, {"message": "b"}]

    def test_multibyte_character_split(self):
        frame = 'data: {"message": "café naïve"}\n\n'.encode("utf-8")
        cut = frame.index("é".encode("utf-8")) + 1
        decoder = StreamDecoder()

        records = decoder.feed(frame[:cut]) + decoder.feed(frame[cut:])

        assert records == [{"message": "café naïve"}]

    def test_malformed_frame_skipped(self):
        data = b"data: {not json}\n\n" + _frame({"message": "next"})

        assert StreamDecoder().feed(data) == [{"message": "next"}]

    def test_non_data_lines_ignored(self):
        data = b": keep-alive\n\nevent: ping\n" + _frame({"message": "x"})

        assert StreamDecoder().feed(data) == [{"message": "x"}]

    def test_trailing_frame_without_separator_flushed_on_close(self):
        decoder = StreamDecoder()

        assert decoder.feed(b'data: {"success": true}') == []
        assert decoder.close() == [{"success": True}]

    def test_close_with_empty_buffer(self):
        decoder = StreamDecoder()
        decoder.feed(_frame({"message": "x"}))

        assert decoder.close() == []

    def test_str_chunks(self):
        assert StreamDecoder().feed('data: {"message": "s"}\n\n') == [{"message": "s"}]


class TestConsumeRecords:

    def test_byte_by_byte(self):
        data = (
            _frame({"message": "a", "type": "info", "timestamp": "t1"})
            + _frame({"message": "b", "type": "success", "timestamp": "t2"})
            + _frame({"success": True, "message": "done"})
        )
        seen = []

        result = consume_records((data[i:i + 1] for i in range(len(data))), seen.append)

        assert [e.message for e in seen] == ["a", "b"]
        assert seen[1].severity is Severity.SUCCESS
        assert seen[0].timestamp == "t1"
        assert result.success

    def test_stream_without_terminal(self):
        result = consume_records([_frame({"message": "a", "type": "info"})])

        assert not result.success
        assert result.error == "Stream ended without a result"

    def test_only_first_terminal_kept(self):
        data = _frame({"success": False, "error": "first"}) + _frame({"success": True})

        result = consume_records([data])

        assert result.error == "first"


class TestStreamClient:

    @patch("callsight.core.streaming.requests")
    def test_analyze_posts_file_and_decodes(self, mock_requests, tmp_path):
        upload = tmp_path / "calls.csv"
        upload.write_text("Originating Number,Transcript\n1,hi\n")
        response = MagicMock()
        response.iter_content.return_value = [
            _frame({"message": "working", "type": "info", "timestamp": "t"})[:7],
            _frame({"message": "working", "type": "info", "timestamp": "t"})[7:],
            _frame({"success": True, "data": {"totalCalls": 1}}),
        ]
        mock_requests.post.return_value = response

        client = StreamClient("http://localhost:5000/")
        result = client.analyze(str(upload), "groq", "llama-3.3-70b-versatile")

        assert result.success
        assert result.terminal["data"] == {"totalCalls": 1}
        assert [e.message for e in result.events] == ["working"]
        args, kwargs = mock_requests.post.call_args
        assert args[0] == "http://localhost:5000/api/analyze-stream"
        assert kwargs["data"] == {"provider": "groq", "model": "llama-3.3-70b-versatile"}
        assert kwargs["stream"] is True
        response.raise_for_status.assert_called_once()
        response.close.assert_called_once()
