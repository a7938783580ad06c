"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware protocol used by the stack. Every middleware wraps
exactly one downstream application, handed to it at construction time:

    ┌─────────────────────────────────────────────────────────────────────┐
    │              ONION MODEL - REQUEST / RESPONSE FLOW                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ────────────────────────────────────────────────►         │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐     │
    │   │ Failsafe │───►│  Access  │───►│   Rate   │───►│   App    │     │
    │   │          │    │   Log    │    │  Limit   │    │          │     │
    │   └──────────┘    └──────────┘    └──────────┘    └──────────┘     │
    │                                                                      │
    │   ◄──────────────────────────────────────────────── Response        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A middleware class is therefore a factory: ``cls(app, *args, **options)``
returns a handler. That is what lets the stack record classes plus their
arguments and instantiate the chain later, in order, around any app.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..http.response import Handler, Request, Response


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses receive the downstream handler as ``app`` and implement
    ``__call__``. Call ``self.app(request)`` to continue the chain, or
    return a response directly to short-circuit it:

        class Timing(Middleware):
            def __call__(self, request):
                started = time.time()
                status, headers, body = self.app(request)
                headers["X-Runtime"] = f"{time.time() - started:.6f}"
                return status, headers, body
    """

    def __init__(self, app: Handler):
        self.app = app

    @abstractmethod
    def __call__(self, request: Request) -> Response:
        """Process the request and return a (status, headers, body) triple."""

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a plain function ``func(request, app) -> response`` as middleware.

    Extra constructor arguments are forwarded to the function after
    ``app``, so a stack entry like ``use(tagger, "v2")`` calls
    ``func(request, app, "v2")``.
    """

    def __init__(
        self,
        app: Handler,
        func: Callable[..., Response],
        *args,
        name: Optional[str] = None,
        **options,
    ):
        super().__init__(app)
        self._func = func
        self._args = args
        self._options = options
        self._name = name or func.__name__

    def __call__(self, request: Request) -> Response:
        return self._func(request, self.app, *self._args, **self._options)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[..., Response]) -> Callable[..., FunctionMiddleware]:
    """
    Decorator turning a function into a middleware factory.

        @function_middleware
        def powered_by(request, app):
            status, headers, body = app(request)
            headers["X-Powered-By"] = "pipelinecore"
            return status, headers, body

        stack.use(powered_by)

    The returned factory keeps the function's ``__name__`` so stack
    operations can still target it by name.
    """
    def factory(app: Handler, *args, **options) -> FunctionMiddleware:
        return FunctionMiddleware(app, func, *args, **options)

    factory.__name__ = func.__name__
    factory.__qualname__ = func.__qualname__
    factory.__doc__ = func.__doc__
    return factory
