"""
=============================================================================
LIVE STREAMING RESPONSES
=============================================================================

A handler normally builds its whole body before returning. A streaming
action instead keeps writing for as long as it likes, while the server is
already sending what has been written so far.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   action thread                 LiveStream            server thread │
    │   ─────────────                 ──────────            ───────────── │
    │   sse.write(...) ──► write() ──► queue.Queue ──► __iter__ ──► send  │
    │   sse.write(...) ──► write() ──►  (bounded)  ──► __iter__ ──► send  │
    │   return         ──► close() ──► poison pill ──► StopIteration      │
    │                                                                      │
    │   ClientDisconnected ◄── write() ◄── abort() ◄── client went away   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The queue holds at most LiveStream.queue_size chunks. A writer that gets
ahead of the client blocks until the server catches up.

When the client goes away the server calls abort(), or simply stops
iterating. Queued chunks are dropped and the action's next write() raises
ClientDisconnected, so the action thread ends instead of producing into
the void.

=============================================================================
ERRORS
=============================================================================

event_stream() starts the action in a daemon thread and waits for its
first write before returning (200, headers, live_stream).

    action raises before writing   →  re-raised to the caller (Failsafe
                                      turns it into a 500)
    action raises after writing    →  logged, stream closed; the 200 is
                                      already on its way

Either way the stream is closed, so the server's iteration always ends.

=============================================================================
"""

import logging
import queue
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional

from .sse import SSE
from ..errors import ClientDisconnected, StreamWriteError
from ..http.response import Handler, Request, Response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# Poison pill marking the end of the stream.
_CLOSED = object()


class LiveStream:
    """
    Thread-safe write-side/read-side stream.

    The action calls write() and close(); the server iterates to receive
    chunks in order and calls abort() if the client disconnects.

    Args:
        maxsize: Queue capacity. Defaults to ``LiveStream.queue_size``.
        ignore_disconnect: Discard writes made after abort() instead of
            raising ClientDisconnected.
    """

    queue_size = 10

    def __init__(self, maxsize: Optional[int] = None, ignore_disconnect: bool = False):
        if maxsize is None:
            maxsize = self.queue_size
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._aborted = threading.Event()
        self._committed = threading.Event()
        self._lock = threading.Lock()
        self.ignore_disconnect = ignore_disconnect

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def connected(self) -> bool:
        """Is the client still reading?"""
        return not self._aborted.is_set()

    @property
    def committed(self) -> bool:
        """True once something was written or the stream was closed."""
        return self._committed.is_set()

    def await_commit(self, timeout: Optional[float] = None) -> bool:
        return self._committed.wait(timeout)

    def write(self, text: str) -> None:
        """
        Queue one chunk for the reader, blocking while the queue is full.

        Raises:
            StreamWriteError: if the stream is already closed.
            ClientDisconnected: if the reader aborted, unless
                ignore_disconnect is set.
        """
        if self._closed.is_set():
            raise StreamWriteError("Cannot write to a closed stream")

        if not self._aborted.is_set():
            self._committed.set()
            # abort() drains the queue, which wakes a blocked put.
            self._queue.put(text)

        if self._aborted.is_set():
            self._drain()
            if not self.ignore_disconnect:
                raise ClientDisconnected("Client disconnected")

    def close(self) -> None:
        """Writer side: no more chunks. Closing twice is harmless."""
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()

        self._committed.set()
        if not self._aborted.is_set():
            self._queue.put(_CLOSED)

    def abort(self) -> None:
        """Reader side: the client is gone, drop everything queued."""
        self._aborted.set()
        self._drain()

    def _drain(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return

    def __iter__(self) -> Iterator[str]:
        try:
            while not self._aborted.is_set():
                chunk = self._queue.get()
                if chunk is _CLOSED:
                    return
                yield chunk
        except GeneratorExit:
            # The server stopped reading before the end of the stream.
            self.abort()
            raise


EVENT_STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def event_stream(
    action: Callable[[Request, SSE], Any],
    headers: Optional[Dict[str, str]] = None,
    event: Optional[str] = None,
    retry: Optional[int] = None,
) -> Handler:
    """
    Turn ``action(request, sse)`` into a streaming handler.

    Usage:
        def ticker(request, sse):
            for n in range(3):
                sse.write({"tick": n}, id=n)

        handler = event_stream(ticker, retry=1000)
        status, headers, body = handler(request)
        for chunk in body:
            send(chunk)
    """
    response_headers = dict(EVENT_STREAM_HEADERS)
    if headers:
        response_headers.update(headers)

    name = getattr(action, "__name__", repr(action))

    def handler(request: Request) -> Response:
        stream = LiveStream()
        sse = SSE(stream, event=event, retry=retry)
        early_failure: List[Exception] = []

        def run() -> None:
            try:
                action(request, sse)
            except ClientDisconnected:
                logger.info(f"Client disconnected from streaming action {name!r}")
            except Exception as exc:
                if stream.committed:
                    logger.exception(f"Streaming action {name!r} failed")
                else:
                    early_failure.append(exc)
            finally:
                stream.close()

        threading.Thread(target=run, name="LiveStream", daemon=True).start()
        stream.await_commit()

        if early_failure:
            raise early_failure[0]
        return int(HTTPStatus.OK), dict(response_headers), stream

    return handler
