"""
=============================================================================
RESPONSE TRIPLES
=============================================================================

Handlers in the pipeline return a plain 3-tuple:

    (status, headers, body)
       │        │       │
       │        │       └── iterable of str/bytes chunks
       │        └────────── dict of header name -> value
       └─────────────────── integer status code

Keeping responses as tuples means any callable can be a handler, and a
middleware can pass a response through without knowing who built it.
The helpers below build the few shapes the core itself emits.

=============================================================================
"""

import json
from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Tuple, Union

from .status_codes import HTTPStatus


Body = Iterable[Union[str, bytes]]
Response = Tuple[int, Dict[str, str], Body]

# Requests are environ-style mappings: {"REQUEST_METHOD": "GET", ...}
Request = MutableMapping[str, Any]

Handler = Callable[[Request], Response]


def text_response(
    text: str,
    status: int = HTTPStatus.OK,
    content_type: str = "text/plain; charset=utf-8",
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Single-chunk text response."""
    merged = {"Content-Type": content_type}
    if headers:
        merged.update(headers)
    return int(status), merged, [text]


def html_response(html: str, status: int = HTTPStatus.OK, headers: Optional[Mapping[str, str]] = None) -> Response:
    """HTML response with the bare ``text/html`` type the failsafe page uses."""
    return text_response(html, status, content_type="text/html", headers=headers)


def json_response(data: Any, status: int = HTTPStatus.OK, headers: Optional[Mapping[str, str]] = None) -> Response:
    """JSON response with compact separators."""
    return text_response(
        json.dumps(data, separators=(",", ":")),
        status,
        content_type="application/json; charset=utf-8",
        headers=headers,
    )


def too_many_requests(retry_after: int) -> Response:
    """
    Standard 429 response for a rate-limited request.

    Includes Retry-After so well-behaved clients back off until the
    current window expires.
    """
    status = HTTPStatus.TOO_MANY_REQUESTS
    return json_response(
        {
            "error": status.phrase,
            "message": f"Rate limit exceeded. Try again in {retry_after} seconds.",
            "retry_after": retry_after,
        },
        status=status,
        headers={"Retry-After": str(retry_after)},
    )


def body_text(response: Response) -> str:
    """Join a response body into one string, decoding bytes as UTF-8."""
    _, _, body = response
    return "".join(
        chunk.decode("utf-8") if isinstance(chunk, bytes) else chunk
        for chunk in body
    )
