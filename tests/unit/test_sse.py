"""
Unit tests for the Server-Sent Events writer.
"""

import re

import pytest

from pipelinecore.errors import ClientDisconnected, StreamWriteError
from pipelinecore.streaming.sse import SSE, encode_data, format_event


class FailingStream:
    def __init__(self, exc):
        self.exc = exc

    def write(self, text):
        raise self.exc

    def close(self):
        pass


class TestWrite:

    def test_string_payload_used_verbatim(self, stream):
        SSE(stream).write('{"name":"John"}')
        assert stream.writes == ['data: {"name":"John"}\n\n']

    def test_structured_payload_is_compact_json(self, stream):
        SSE(stream).write({"name": "John"})
        assert stream.writes == ['data: {"name":"John"}\n\n']

    def test_all_options(self, stream):
        SSE(stream).write({"name": "John"}, id=123, event="override", retry=500)

        assert len(stream.writes) == 1
        block = stream.writes[0]
        assert re.search(r"event: override", block)
        assert re.search(r"retry: 500", block)
        assert re.search(r"id: 123", block)
        assert re.search(r'data: {"name":"John"}', block)
        assert re.search(r"\n\n$", block)

    def test_field_order(self, stream):
        SSE(stream).write("x", id=1, event="e", retry=10)
        assert stream.writes == ["event: e\nretry: 10\nid: 1\ndata: x\n\n"]

    def test_multiline_payload_expands_to_data_lines(self, stream):
        SSE(stream).write("first line.\nsecond line.")

        assert stream.writes == ["data: first line.\ndata: second line.\n\n"]
        assert stream.writes[0].count("data: ") == 2

    def test_constructor_defaults_apply_to_every_event(self, stream):
        sse = SSE(stream, event="send-name", retry=1000)
        sse.write('{"name":"John"}')
        sse.write({"name": "Ryan"})

        for block in stream.writes:
            assert "event: send-name\n" in block
            assert "retry: 1000\n" in block

    def test_per_call_options_override_defaults(self, stream):
        sse = SSE(stream, retry=1000)
        sse.write({"name": "Ryan"}, retry=1500)
        sse.write({"name": "John"})

        assert "retry: 1500\n" in stream.writes[0]
        assert "retry: 1000\n" not in stream.writes[0]
        assert "retry: 1000\n" in stream.writes[1]

    def test_ids(self, stream):
        sse = SSE(stream)
        sse.write('{"name":"John"}', id=1)
        sse.write({"name": "Ryan"}, id=2)

        assert stream.writes[0].startswith("id: 1\n")
        assert stream.writes[1].startswith("id: 2\n")

    @pytest.mark.parametrize("payload, options", [
        ("plain", {}),
        ("one\ntwo\nthree", {"id": 7}),
        ({"nested": {"list": [1, 2]}}, {"event": "e", "retry": 5}),
        ([1, 2, 3], {"id": "abc", "event": "e", "retry": 5}),
    ])
    def test_exactly_one_write_per_event(self, stream, payload, options):
        SSE(stream).write(payload, **options)
        assert len(stream.writes) == 1
        assert stream.writes[0].endswith("\n\n")

    def test_close_closes_stream(self, stream):
        SSE(stream).close()
        assert stream.closed

    def test_context_manager_closes(self, stream):
        with SSE(stream) as sse:
            sse.write("hi")
        assert stream.closed


class TestStreamFailures:

    @pytest.mark.parametrize("exc", [BrokenPipeError(), ConnectionResetError()])
    def test_disconnect(self, exc):
        with pytest.raises(ClientDisconnected) as excinfo:
            SSE(FailingStream(exc)).write("hi")
        assert excinfo.value.__cause__ is exc

    def test_other_io_error(self):
        with pytest.raises(StreamWriteError):
            SSE(FailingStream(OSError("disk full"))).write("hi")

    def test_non_io_error_propagates_as_is(self):
        with pytest.raises(RuntimeError):
            SSE(FailingStream(RuntimeError("bug"))).write("hi")


class TestFormatting:

    def test_encode_data(self):
        assert encode_data("text") == "text"
        assert encode_data({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
        assert encode_data(5) == "5"

    def test_format_event_skips_unset_options(self):
        assert format_event("x", id=None, event=None, retry=None) == "data: x\n\n"

    def test_crlf_payload(self):
        assert format_event("a\r\nb") == "data: a\ndata: b\n\n"

    def test_bare_carriage_return_starts_a_data_line(self):
        assert format_event("a\rb\n\rc") == "data: a\ndata: b\ndata: \ndata: c\n\n"

    @pytest.mark.parametrize("options", [
        {"id": "1\ndata: injected"},
        {"event": "tick\r"},
        {"event": "a\r\nb"},
    ])
    def test_line_breaks_in_fields_are_rejected(self, options):
        with pytest.raises(ValueError):
            format_event("x", **options)

    def test_rejected_event_is_never_written(self, stream):
        with pytest.raises(ValueError):
            SSE(stream).write("x", id="7\nevent: spoof")
        assert stream.writes == []
