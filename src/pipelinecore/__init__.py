"""
=============================================================================
PIPELINECORE - Request Pipeline Core
=============================================================================

The pieces of a web framework's dispatch layer that have real ordering and
failure contracts, as a small library:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. MIDDLEWARE STACK                                               │
    │      - ordered entries: use / insert / insert_before / insert_after │
    │      - swap / delete / move, conditional activation                 │
    │      - names resolved lazily through a registry                     │
    │                                                                      │
    │   2. FAILSAFE                                                       │
    │      - outermost boundary, never raises                             │
    │      - app response → 500.html → built-in 500 body                  │
    │                                                                      │
    │   3. RATE LIMITER                                                   │
    │      - fixed window per key, atomic counter store                   │
    │      - memory or Redis store, Admitted / Denied results             │
    │                                                                      │
    │   4. SERVER-SENT EVENTS                                             │
    │      - one write per event, multi-line data, JSON payloads          │
    │      - LiveStream + event_stream() for threaded streaming actions   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    pipelinecore/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI (python -m pipelinecore middleware)
    ├── config.py            # PipelineConfig dataclass
    ├── errors.py            # Error taxonomy
    ├── pipeline.py          # Pipeline builder, default stack
    ├── http/                # Status codes, response triples
    ├── middleware/          # Stack, Failsafe, access log, rate limit
    ├── ratelimit/           # RateLimiter and counter stores
    └── streaming/           # SSE writer, LiveStream

=============================================================================
QUICK START
=============================================================================

    from pipelinecore import Pipeline, PipelineConfig
    from pipelinecore.http import json_response

    def app(request):
        return json_response({"path": request.get("PATH_INFO")})

    pipeline = Pipeline(app, PipelineConfig(rate_limit_quota=100))
    status, headers, body = pipeline({"PATH_INFO": "/", "REMOTE_ADDR": "10.0.0.1"})

=============================================================================
"""

__version__ = "1.0.0"

from .config import PipelineConfig
from .pipeline import Pipeline, default_stack, setup_logging
from .middleware import Failsafe, MiddlewareStack
from .ratelimit import RateLimiter
from .streaming import SSE

__all__ = [
    "Pipeline",
    "PipelineConfig",
    "default_stack",
    "setup_logging",
    "Failsafe",
    "MiddlewareStack",
    "RateLimiter",
    "SSE",
    "__version__",
]
