"""
=============================================================================
PIPELINE ERRORS
=============================================================================

Every error the pipeline core can raise lives here, so callers have one
place to import from.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR TAXONOMY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PipelineError                                                      │
    │   ├── ConfigurationError     bad middleware ref, bad limiter config │
    │   ├── NotFoundError          insert_before/after/swap target absent │
    │   ├── IndexOutOfRangeError   insert() index outside 0..len          │
    │   ├── DownstreamFailure      handler fault, contained by Failsafe   │
    │   ├── StoreUnavailableError  counter store could not increment      │
    │   └── StreamWriteError       underlying stream write failed         │
    │       └── ClientDisconnected the client went away mid-stream        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Stack mutation errors are programmer errors and surface at configuration
time. Store and stream errors are the caller's to handle. Only
DownstreamFailure is never seen outside the failsafe boundary.

=============================================================================
"""

import traceback as _traceback
from typing import List


class PipelineError(Exception):
    """Base class for all pipeline core errors."""


class ConfigurationError(PipelineError):
    """Invalid configuration detected at build or boot time."""


class NotFoundError(PipelineError, LookupError):
    """A stack operation referenced a middleware that is not in the stack."""

    def __init__(self, target):
        self.target = target
        super().__init__(f"No such middleware to operate on: {target!r}")


class IndexOutOfRangeError(PipelineError, IndexError):
    """insert() was given a position outside the stack."""

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(
            f"Index {index} out of range for middleware stack of size {size}"
        )


class DownstreamFailure(PipelineError):
    """
    A fault raised by the application wrapped by Failsafe.

    Carries the original exception and its formatted backtrace so the
    failsafe can log both in one message.
    """

    def __init__(self, original: BaseException):
        self.original = original
        name = type(original).__name__
        try:
            message = f"{name}: {original}"
            self.backtrace: List[str] = _traceback.format_exception(
                type(original), original, original.__traceback__
            )
        except Exception:
            # An exception whose __str__ raises still gets reported by name.
            message = name
            self.backtrace = _traceback.format_tb(original.__traceback__)
        super().__init__(message)

    def describe(self) -> str:
        """Message plus full backtrace, suitable for a single log record."""
        return f"{self}\n{''.join(self.backtrace)}"


class StoreUnavailableError(PipelineError):
    """The counter store could not complete an atomic increment."""


class StreamWriteError(PipelineError, IOError):
    """Writing to the underlying output stream failed."""


class ClientDisconnected(StreamWriteError):
    """The client closed the connection while an event was being written."""
