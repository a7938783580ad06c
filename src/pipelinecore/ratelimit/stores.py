"""
=============================================================================
COUNTER STORES
=============================================================================

The rate limiter keeps no counts of its own. It asks a store to do one
thing atomically:

    increment(key, expires_in)
        ┌──────────────────────────────────────────────────────────────┐
        │  key absent or expired  ──►  count = 1, expire in window     │
        │  key present            ──►  count += 1, expiry unchanged    │
        └──────────────────────────────────────────────────────────────┘
        returns the new count

The expiry is attached only when a cycle starts, so a window always
measures from the FIRST attempt of the cycle. Later attempts never push
it back.

Two stores ship here:

    MemoryCounterStore   one process, lock + monotonic clock
    RedisCounterStore    shared between processes, one Lua script per call

=============================================================================
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict

import redis

from ..errors import StoreUnavailableError


class CounterStore(ABC):
    """Interface the rate limiter needs from a counter store."""

    @abstractmethod
    def increment(self, key: str, expires_in: float) -> int:
        """Atomically increment ``key``, starting a new cycle if absent."""

    @abstractmethod
    def value(self, key: str) -> int:
        """Current count for ``key``; 0 when absent or expired."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Forget ``key``."""


@dataclass
class _Counter:
    count: int
    expires_at: float


class MemoryCounterStore(CounterStore):
    """
    In-process counter store.

    Expired counters are dropped lazily on access. A single lock
    serializes every operation.

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake one to
            step through windows without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._counters: Dict[str, _Counter] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, expires_in: float) -> int:
        with self._lock:
            now = self._clock()
            counter = self._live_counter(key, now)
            if counter is None:
                counter = _Counter(count=0, expires_at=now + expires_in)
                self._counters[key] = counter
            counter.count += 1
            return counter.count

    def value(self, key: str) -> int:
        with self._lock:
            counter = self._live_counter(key, self._clock())
            return counter.count if counter else 0

    def delete(self, key: str) -> None:
        with self._lock:
            self._counters.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def _live_counter(self, key: str, now: float):
        counter = self._counters.get(key)
        if counter is not None and now >= counter.expires_at:
            del self._counters[key]
            return None
        return counter

    def __len__(self) -> int:
        return len(self._counters)


# INCR then attach the expiry only when this call created the key.
# Both run inside one script, so no caller sees a counter without a TTL.
_INCREMENT_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
return count
"""


class RedisCounterStore(CounterStore):
    """
    Counter store backed by Redis, for limits shared across processes.

    Any redis-py error is re-raised as StoreUnavailableError. The limiter
    never guesses admit or deny when the store is down.

        store = RedisCounterStore.from_url("redis://localhost:6379/0")
    """

    def __init__(self, client: "redis.Redis"):
        self.client = client
        self._increment = client.register_script(_INCREMENT_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisCounterStore":
        return cls(redis.Redis.from_url(url, **kwargs))

    def increment(self, key: str, expires_in: float) -> int:
        ttl_ms = max(1, int(math.ceil(expires_in * 1000)))
        try:
            return int(self._increment(keys=[key], args=[ttl_ms]))
        except redis.exceptions.RedisError as exc:
            raise StoreUnavailableError(f"Could not increment {key!r}: {exc}") from exc

    def value(self, key: str) -> int:
        try:
            raw = self.client.get(key)
        except redis.exceptions.RedisError as exc:
            raise StoreUnavailableError(f"Could not read {key!r}: {exc}") from exc
        return int(raw) if raw is not None else 0

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.exceptions.RedisError as exc:
            raise StoreUnavailableError(f"Could not delete {key!r}: {exc}") from exc
