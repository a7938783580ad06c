"""
=============================================================================
MIDDLEWARE
=============================================================================

    base.py          Middleware ABC, FunctionMiddleware
    stack.py         MiddlewareStack, MiddlewareEntry, MiddlewareRegistry
    failsafe.py      Failsafe - outermost fault boundary
    logging.py       LoggingMiddleware - access log lines
    rate_limit.py    RateLimitMiddleware - RateLimiter in front of the app

Built-in middleware can be referenced by name in any stack whose registry
comes from builtin_registry():

    stack = MiddlewareStack(builtin_registry())
    stack.use("Failsafe", error_page_dir="public")
    stack.use("LoggingMiddleware", log_format="json")

=============================================================================
"""

from typing import Optional

from .base import FunctionMiddleware, Middleware, function_middleware
from .failsafe import DEFAULT_500_BODY, Failsafe
from .logging import LoggingMiddleware
from .rate_limit import RateLimitMiddleware
from .stack import MiddlewareEntry, MiddlewareRegistry, MiddlewareStack, ref_name


def builtin_registry(parent: Optional[MiddlewareRegistry] = None) -> MiddlewareRegistry:
    """A fresh registry holding the built-in middleware."""
    registry = MiddlewareRegistry(parent)
    for middleware in (Failsafe, LoggingMiddleware, RateLimitMiddleware):
        registry.register(middleware)
    return registry


__all__ = [
    "Middleware",
    "FunctionMiddleware",
    "function_middleware",
    "Failsafe",
    "DEFAULT_500_BODY",
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "MiddlewareEntry",
    "MiddlewareRegistry",
    "MiddlewareStack",
    "ref_name",
    "builtin_registry",
]
