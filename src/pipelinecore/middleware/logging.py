"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Logs one line per request: who asked for what, what they got back, and
how long it took.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   text:  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000]                 │
    │          "GET /users" 200 512 3.21ms                                │
    │                                                                      │
    │   json:  {"request_id": "a1b2c3d4", "method": "GET", ...}           │
    └─────────────────────────────────────────────────────────────────────┘

Place it just inside Failsafe. Requests that blow up are logged here at
ERROR level before the exception continues outward to the failsafe.

Streaming bodies (anything that is not a list or tuple) are logged with a
"-" size, since measuring them would consume the stream.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware
from ..http.response import Handler, Request, Response


# Namespaced so access logs can be routed separately:
#   logging.getLogger("pipelinecore.access").addHandler(file_handler)
logger = logging.getLogger("pipelinecore.access")

REQUEST_ID_KEY = "pipelinecore.request_id"


@dataclass
class RequestLog:
    """Structured log entry for a request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache combined-style line."""
        size = "-" if self.content_length is None else self.content_length
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{size} {self.duration_ms:.2f}ms'
        )


def _body_length(body: Iterable) -> Optional[int]:
    if not isinstance(body, (list, tuple)):
        return None
    return sum(len(chunk.encode("utf-8") if isinstance(chunk, str) else chunk) for chunk in body)


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Args:
        app: Downstream handler.
        log_format: "text" or "json".
        include_request_id: Add an X-Request-ID header to responses and
            expose the id to downstream code under
            ``request["pipelinecore.request_id"]``.
        log_level: Level used for successful requests.
        skip_paths: Paths never logged (health checks are noisy).
    """

    def __init__(
        self,
        app: Handler,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: Request) -> Response:
        # An id set further out (a proxy, an outer logger) is kept.
        request_id = request.setdefault(REQUEST_ID_KEY, str(uuid.uuid4())[:8])
        method = request.get("REQUEST_METHOD", "-")
        path = request.get("PATH_INFO", "/")

        start_time = time.time()
        try:
            status, headers, body = self.app(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise
        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            headers["X-Request-ID"] = request_id

        if path in self.skip_paths:
            return status, headers, body

        log_entry = RequestLog(
            request_id=request_id,
            method=method,
            path=path,
            query=request.get("QUERY_STRING", ""),
            client_ip=request.get("REMOTE_ADDR", "-"),
            user_agent=request.get("HTTP_USER_AGENT", "-"),
            status_code=int(status),
            content_length=_body_length(body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return status, headers, body
