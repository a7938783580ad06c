"""
=============================================================================
FAILSAFE MIDDLEWARE
=============================================================================

The outermost boundary of the pipeline. Whatever goes wrong downstream,
the caller gets a well-formed response back and never an exception.

=============================================================================
FALLBACK CHAIN
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. app(request)              ──► success: response unchanged      │
    │           │ raises                                                   │
    │           ▼                                                          │
    │   log message + backtrace      (a broken logger is ignored)         │
    │           │                                                          │
    │           ▼                                                          │
    │   2. <error_page_dir>/500.html ──► 500 with the page as body        │
    │           │ unreadable                                               │
    │           ▼                                                          │
    │   3. built-in body             ──► 500 "500 Internal Server Error"  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each level is only tried when the previous one failed, and the last one
cannot fail: it returns a string constant.

Only Exception subclasses are contained. KeyboardInterrupt and SystemExit
still stop the process.

=============================================================================
"""

import logging
import os
from typing import Optional, Union

from .base import Middleware
from ..errors import DownstreamFailure
from ..http.response import Handler, Request, Response, html_response
from ..http.status_codes import HTTPStatus


DEFAULT_500_BODY = (
    "<html><body>"
    "<h1>500 Internal Server Error</h1>"
    "If you are the administrator of this website, then please read this web "
    "application's log file to find out what went wrong."
    "</body></html>"
)


class Failsafe(Middleware):
    """
    Converts any downstream fault into a static 500 response.

    Args:
        app: The downstream handler.
        logger: Where diagnostics go. Anything with an ``error(msg)``
            method works; defaults to this module's logger.
        error_page_dir: Directory holding ``<status>.html`` pages. When
            None, the built-in body is used.

    Usage:
        app = Failsafe(router, logger=app_logger, error_page_dir="public")
        status, headers, body = app({"PATH_INFO": "/"})
    """

    def __init__(
        self,
        app: Handler,
        logger: Optional[logging.Logger] = None,
        error_page_dir: Optional[Union[str, os.PathLike]] = None,
    ):
        super().__init__(app)
        self.logger = logger or logging.getLogger(__name__)
        self.error_page_dir = error_page_dir

    def __call__(self, request: Request) -> Response:
        try:
            return self.app(request)
        except Exception as exc:
            return self.failsafe_response(DownstreamFailure(exc))

    def failsafe_response(self, failure: DownstreamFailure) -> Response:
        """Log ``failure`` and build the 500 response. Never raises."""
        self._log_failsafe_exception(failure)
        status = HTTPStatus.INTERNAL_SERVER_ERROR
        return html_response(self._render_error_page(status), status)

    def _log_failsafe_exception(self, failure: DownstreamFailure) -> None:
        try:
            self.logger.error(f"Error during failsafe response: {failure.describe()}")
        except Exception:
            # Nothing left to report to; the response still goes out.
            pass

    def _render_error_page(self, status: int) -> str:
        if self.error_page_dir is None:
            return DEFAULT_500_BODY

        try:
            path = os.path.join(os.fspath(self.error_page_dir), f"{int(status)}.html")
            with open(path, encoding="utf-8") as page:
                return page.read()
        except Exception:
            return DEFAULT_500_BODY
