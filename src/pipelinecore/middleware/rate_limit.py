"""
=============================================================================
RATE LIMITING MIDDLEWARE
=============================================================================

Puts a RateLimiter in front of everything downstream of it in the stack.

    stack.use(RateLimitMiddleware, limiter)

Admitted responses get X-RateLimit-* headers so clients can see how much
quota is left. Denied requests get the limiter's responder output or a
429 with Retry-After, and never reach the app.

=============================================================================
"""

from .base import Middleware
from ..http.response import Handler, Request, Response
from ..ratelimit.limiter import RateLimiter


class RateLimitMiddleware(Middleware):
    """Gate every request through ``limiter``, keyed by its ``by`` function."""

    def __init__(self, app: Handler, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    def __call__(self, request: Request) -> Response:
        decision = self.limiter.admit(request)

        if not decision:
            status, headers, body = self.limiter.deny(request, decision)
        else:
            status, headers, body = self.app(request)

        headers["X-RateLimit-Limit"] = str(self.limiter.quota)
        headers["X-RateLimit-Remaining"] = str(max(0, decision.remaining))
        return status, headers, body
