"""
Fixed-window rate limiting against a pluggable atomic counter store.

    limiter.py   RateLimiter, Admitted / Denied results
    stores.py    CounterStore, MemoryCounterStore, RedisCounterStore
"""

from .limiter import Admitted, Decision, Denied, RateLimiter, default_key
from .stores import CounterStore, MemoryCounterStore, RedisCounterStore

__all__ = [
    "Admitted",
    "Decision",
    "Denied",
    "RateLimiter",
    "default_key",
    "CounterStore",
    "MemoryCounterStore",
    "RedisCounterStore",
]
