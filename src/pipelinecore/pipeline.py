"""
=============================================================================
PIPELINE BUILDER
=============================================================================

Assembles the default middleware stack from a PipelineConfig and builds
it around an application.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      DEFAULT STACK                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Failsafe               always, outermost                          │
    │   LoggingMiddleware      while config.access_log is true            │
    │   RateLimitMiddleware    when config.rate_limit_quota is set        │
    │   <your middleware>      via pipeline.use(...) / insert_*(...)      │
    │   app                                                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Usage:

    pipeline = Pipeline(router, PipelineConfig(error_page_dir="public"))
    pipeline.use(Timing)
    pipeline.middleware.insert_before(Timing, Auth, realm="admin")

    status, headers, body = pipeline({"PATH_INFO": "/"})

The handler chain is built on the first request and cached. Call
rebuild() after changing the stack or the configuration.

=============================================================================
"""

import logging
from typing import Any, Optional

from .config import PipelineConfig
from .http.response import Handler, Request, Response, text_response
from .http.status_codes import HTTPStatus
from .middleware import (
    Failsafe,
    LoggingMiddleware,
    MiddlewareRegistry,
    MiddlewareStack,
    RateLimitMiddleware,
    builtin_registry,
)
from .ratelimit import CounterStore, MemoryCounterStore, RateLimiter, RedisCounterStore


logger = logging.getLogger(__name__)


def setup_logging(config: PipelineConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("pipelinecore").setLevel(level)


def create_store(config: PipelineConfig) -> CounterStore:
    """Redis when a URL is configured, otherwise in-process memory."""
    if config.redis_url:
        return RedisCounterStore.from_url(config.redis_url)
    return MemoryCounterStore()


def not_found_app(request: Request) -> Response:
    """Innermost app used when none is given."""
    status = HTTPStatus.NOT_FOUND
    return text_response(status.phrase, status)


def default_stack(
    config: PipelineConfig,
    registry: Optional[MiddlewareRegistry] = None,
    logger: Optional[logging.Logger] = None,
    store: Optional[CounterStore] = None,
) -> MiddlewareStack:
    """Build the default middleware stack for ``config``."""
    stack = MiddlewareStack(registry or builtin_registry())

    stack.use(Failsafe, logger=logger, error_page_dir=config.error_page_dir)

    stack.use(
        LoggingMiddleware,
        log_format=config.log_format,
        skip_paths=config.skip_log_paths,
        condition=lambda: config.access_log,
    )

    if config.rate_limit_quota is not None:
        limiter = RateLimiter(
            store if store is not None else create_store(config),
            quota=config.rate_limit_quota,
            window=config.rate_limit_window,
        )
        stack.use(RateLimitMiddleware, limiter)

    return stack


class Pipeline:
    """
    A configured middleware stack plus the app it wraps.

    Args:
        app: Innermost handler. Defaults to a 404 responder.
        config: Pipeline configuration; validated immediately.
        registry: Namespace for string middleware references. Defaults
            to the built-in registry.
        logger: Logger handed to Failsafe.
        store: Counter store for the default rate limiter.
    """

    def __init__(
        self,
        app: Optional[Handler] = None,
        config: Optional[PipelineConfig] = None,
        registry: Optional[MiddlewareRegistry] = None,
        logger: Optional[logging.Logger] = None,
        store: Optional[CounterStore] = None,
    ):
        self.config = config or PipelineConfig()
        self.config.validate()

        self.app = app or not_found_app
        self.middleware = default_stack(self.config, registry, logger, store)
        self._handler: Optional[Handler] = None

    def use(self, ref: Any, *args, **options) -> "Pipeline":
        """Append middleware to the stack. Returns self for chaining."""
        self.middleware.use(ref, *args, **options)
        self._handler = None
        return self

    def to_app(self) -> Handler:
        """Build a fresh handler chain from the active stack."""
        handler = self.middleware.build(self.app)
        logger.debug(f"Built pipeline: {[entry.name for entry in self.middleware.active()]}")
        return handler

    def rebuild(self) -> Handler:
        self._handler = self.to_app()
        return self._handler

    def __call__(self, request: Request) -> Response:
        if self._handler is None:
            self.rebuild()
        return self._handler(request)
