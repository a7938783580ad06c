"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the pipeline core itself produces.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - handler success, event streams        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 404 Not Found     - default innermost app                 │
    │        │ 429 Too Many Requests - rate limiter denial               │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - failsafe response             │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    An IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.TOO_MANY_REQUESTS == 429
        True
        >>> HTTPStatus.TOO_MANY_REQUESTS.phrase
        'Too Many Requests'
    """

    OK = 200

    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429

    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase, as it appears after the code in a status line."""
        return _STATUS_PHRASES.get(self, "Unknown")

    def __str__(self) -> str:
        return f"{self.value} {self.phrase}"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
