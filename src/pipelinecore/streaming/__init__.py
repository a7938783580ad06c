"""
Streaming responses.

    sse.py    SSE writer: one write per event
    live.py   LiveStream buffer and event_stream() handler factory
"""

from .sse import SSE, encode_data, format_event
from .live import EVENT_STREAM_HEADERS, LiveStream, event_stream

__all__ = [
    "SSE",
    "encode_data",
    "format_event",
    "EVENT_STREAM_HEADERS",
    "LiveStream",
    "event_stream",
]
