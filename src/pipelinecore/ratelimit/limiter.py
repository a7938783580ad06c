"""
=============================================================================
RATE LIMITER
=============================================================================

A fixed-window quota per key, counted in an external store.

=============================================================================
HOW A WINDOW WORKS
=============================================================================

Config: quota=2, window=2s

    t=0.0  check → count=1 ≤ 2   ADMIT   (cycle starts, expires at t=2.0)
    t=0.5  check → count=2 ≤ 2   ADMIT
    t=1.0  check → count=3 > 2   DENY
    t=1.9  check → count=4 > 2   DENY
    t=2.0  counter expired
    t=3.0  check → count=1 ≤ 2   ADMIT   (new cycle, expires at t=5.0)

Every attempt increments, denied ones included. Once a key is over quota
it stays denied until the store expires the counter.

=============================================================================
TAGGED RESULTS
=============================================================================

admit() returns Admitted or Denied instead of raising, so callers branch
on the result:

    result = limiter.admit(request)
    if not result:
        return limiter.deny(request, result)

Only a store fault raises (StoreUnavailableError). An outage is never
turned into an admit or a deny.

=============================================================================
"""

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from functools import wraps
from typing import Callable, Optional, Union

from .stores import CounterStore
from ..errors import ConfigurationError
from ..http.response import Handler, Request, Response, too_many_requests


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admitted:
    """The attempt is within quota."""

    key: str
    count: int
    quota: int

    @property
    def remaining(self) -> int:
        return self.quota - self.count

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    """The attempt exceeded the quota for the current window."""

    key: str
    count: int
    quota: int
    retry_after: int

    @property
    def remaining(self) -> int:
        return 0

    def __bool__(self) -> bool:
        return False


Decision = Union[Admitted, Denied]


def default_key(request: Request) -> str:
    """Rate limit by client address."""
    return str(request.get("REMOTE_ADDR", "unknown"))


class RateLimiter:
    """
    Fixed-window rate limiter.

    Args:
        store: Counter store with an atomic increment.
        quota: Attempts allowed per window (positive integer).
        window: Window length in seconds, or a timedelta.
        by: Key derivation function. Called with whatever is passed to
            admit(); guard() passes the request. Defaults to the
            request's REMOTE_ADDR.
        responder: Optional ``responder(request, denied) -> response``
            used instead of the standard 429 on every denied attempt.
        name: Distinguishes several limits sharing one store and scope.
        scope: Usually the controller or resource being protected.

    Usage:
        limiter = RateLimiter(store, quota=10, window=60,
                              by=lambda request: request["HTTP_X_API_KEY"])

        @limiter.guard
        def create_post(request):
            ...
    """

    def __init__(
        self,
        store: CounterStore,
        quota: int,
        window: Union[float, timedelta],
        by: Callable[..., str] = default_key,
        responder: Optional[Callable[[Request, Denied], Response]] = None,
        name: Optional[str] = None,
        scope: Optional[str] = None,
    ):
        if isinstance(window, timedelta):
            window = window.total_seconds()

        if isinstance(quota, bool) or not isinstance(quota, int) or quota <= 0:
            raise ConfigurationError(f"quota must be a positive integer, got {quota!r}")
        if isinstance(window, bool) or not isinstance(window, (int, float)) or window <= 0:
            raise ConfigurationError(f"window must be a positive duration, got {window!r}")

        self.store = store
        self.quota = quota
        self.window = float(window)
        self.by = by
        self.responder = responder
        self.name = name
        self.scope = scope

    @property
    def retry_after(self) -> int:
        """Whole seconds a denied client is told to wait."""
        return int(math.ceil(self.window))

    def cache_key(self, discriminator: str) -> str:
        """``rate-limit:<scope>:<name>:<discriminator>``; unset parts are omitted."""
        parts = ["rate-limit", self.scope, self.name, discriminator]
        return ":".join(str(part) for part in parts if part is not None)

    def check(self, key: str) -> int:
        """
        Count one attempt for ``key`` and return the post-increment count.

        Raises:
            StoreUnavailableError: if the store cannot increment.
        """
        return self.store.increment(key, expires_in=self.window)

    def admit(self, *args) -> Decision:
        """Derive the key with ``by(*args)``, count the attempt, and decide."""
        key = self.cache_key(self.by(*args))
        count = self.check(key)

        if count <= self.quota:
            return Admitted(key=key, count=count, quota=self.quota)

        logger.info(f"Rate limit exceeded for {key} ({count}/{self.quota})")
        return Denied(key=key, count=count, quota=self.quota, retry_after=self.retry_after)

    def deny(self, request: Request, denied: Denied) -> Response:
        """Response for a denied attempt: the responder's, or a 429."""
        if self.responder is not None:
            return self.responder(request, denied)
        return too_many_requests(denied.retry_after)

    def guard(self, action: Handler) -> Handler:
        """
        Wrap a handler so it only runs when the request is admitted.

        Denied requests never reach ``action``.
        """
        @wraps(action)
        def guarded(request: Request) -> Response:
            decision = self.admit(request)
            if not decision:
                return self.deny(request, decision)
            return action(request)

        return guarded

    def reset(self, *args) -> None:
        """Drop the counter for the key ``by(*args)`` derives."""
        self.store.delete(self.cache_key(self.by(*args)))

    def __call__(self, action: Handler) -> Handler:
        return self.guard(action)

    def __repr__(self) -> str:
        return f"RateLimiter(quota={self.quota}, window={self.window:g})"
