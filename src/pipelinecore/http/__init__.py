"""
HTTP primitives shared by the middleware, rate limiter and streaming code.

    status_codes.py   HTTPStatus enum
    response.py       (status, headers, body) triples and builders
"""

from .status_codes import HTTPStatus
from .response import (
    Body,
    Handler,
    Request,
    Response,
    body_text,
    html_response,
    json_response,
    text_response,
    too_many_requests,
)

__all__ = [
    "HTTPStatus",
    "Body",
    "Handler",
    "Request",
    "Response",
    "body_text",
    "html_response",
    "json_response",
    "text_response",
    "too_many_requests",
]
