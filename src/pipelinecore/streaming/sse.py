"""
=============================================================================
SERVER-SENT EVENTS WRITER
=============================================================================

Formats events in the text/event-stream wire format:

    event: send-name            ◄── only when an event name is set
    retry: 1500                 ◄── only when a retry time is set
    id: 2                       ◄── only when an id is set
    data: first line.           ◄── one data: line per payload line
    data: second line.
                                ◄── blank line ends the event

=============================================================================
ONE EVENT, ONE WRITE
=============================================================================

The whole block above is assembled in memory and handed to the stream in
a single write() call. A stream shared with other producers, or a
client reading mid-flush, never sees half an event.

The writer keeps no buffer between events and does not retry. If the
stream fails, the error reaches the caller and the streamed response is
over.

=============================================================================
USAGE
=============================================================================

    sse = SSE(stream, retry=300, event="event-name")
    sse.write({"name": "John"})
    sse.write({"name": "John"}, id=10)
    sse.write({"name": "John"}, id=10, event="other-event")
    sse.write({"name": "John"}, id=10, event="other-event", retry=500)
    sse.close()

Defaults given to the constructor apply to every event; keyword
arguments to write() override them for that event only.

=============================================================================
"""

import json
import re
from typing import Any, Optional, Protocol

from ..errors import ClientDisconnected, StreamWriteError


class OutputStream(Protocol):
    def write(self, text: str) -> Any: ...

    def close(self) -> Any: ...


# Field order inside an event block.
PERMITTED_OPTIONS = ("event", "retry", "id")


# Any of CRLF, CR or LF ends a line on the client side.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def encode_data(payload: Any) -> str:
    """Strings pass through; anything else becomes compact JSON."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, separators=(",", ":"))


def format_event(payload: Any, **options: Any) -> str:
    """
    Build the complete text block for one event.

    ``options`` may contain event, retry and id; None values are skipped.

    Raises:
        ValueError: if an option value contains a line break, which would
            start a new field on the client.
    """
    lines = []
    for option in PERMITTED_OPTIONS:
        value = options.get(option)
        if value is None:
            continue
        value = str(value)
        if _LINE_BREAK.search(value):
            raise ValueError(f"SSE {option} must not contain line breaks: {value!r}")
        lines.append(f"{option}: {value}")

    data = encode_data(payload)
    lines.extend(f"data: {line}" for line in _LINE_BREAK.split(data))
    return "\n".join(lines) + "\n\n"


class SSE:
    """
    Writes Server-Sent Events to an output stream.

    Args:
        stream: Anything with ``write(text)`` and ``close()``.
        event: Default event name for every write.
        retry: Default reconnection time in milliseconds.
    """

    def __init__(self, stream: OutputStream, event: Optional[str] = None, retry: Optional[int] = None):
        self.stream = stream
        self.options = {"event": event, "retry": retry}

    def write(
        self,
        payload: Any,
        id: Optional[Any] = None,
        event: Optional[str] = None,
        retry: Optional[int] = None,
    ) -> None:
        """
        Write one event.

        Raises:
            ClientDisconnected: the peer went away (broken pipe, reset).
            StreamWriteError: any other I/O failure from the stream.
            ValueError: an id, event or retry value spans several lines.
        """
        options = dict(self.options)
        overrides = {"id": id, "event": event, "retry": retry}
        options.update({k: v for k, v in overrides.items() if v is not None})

        block = format_event(payload, **options)
        try:
            self.stream.write(block)
        except StreamWriteError:
            raise
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ClientDisconnected("Client disconnected while writing an event") from exc
        except OSError as exc:
            raise StreamWriteError(f"Could not write event: {exc}") from exc

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "SSE":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
