"""
pytest configuration and fixtures.
"""

import io
import logging
from typing import Generator, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pipelinecore.ratelimit import MemoryCounterStore


FIXTURES = Path(__file__).parent / "fixtures"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStream:
    """Output stream that remembers every write() call."""

    def __init__(self):
        self.writes: List[str] = []
        self.closed = False

    def write(self, text: str) -> None:
        self.writes.append(text)

    def close(self) -> None:
        self.closed = True

    @property
    def text(self) -> str:
        return "".join(self.writes)


@pytest.fixture
def make_request():
    """Build an environ-style request mapping."""
    def factory(method: str = "GET", path: str = "/", remote_addr: str = "127.0.0.1", **extra) -> dict:
        request = {
            "REQUEST_METHOD": method,
            "PATH_INFO": path,
            "REMOTE_ADDR": remote_addr,
        }
        request.update(extra)
        return request
    return factory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryCounterStore:
    return MemoryCounterStore(clock=clock)


@pytest.fixture
def stream() -> RecordingStream:
    return RecordingStream()


@pytest.fixture
def error_pages() -> Path:
    """Directory holding a 500.html fixture page."""
    return FIXTURES / "public"


class LogCapture:
    """A dedicated logger whose output lands in a string buffer."""

    def __init__(self, name: str):
        self.buffer = io.StringIO()
        self.handler = logging.StreamHandler(self.buffer)
        self.logger = logging.getLogger(name)
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    @property
    def text(self) -> str:
        return self.buffer.getvalue()

    def detach(self) -> None:
        self.logger.removeHandler(self.handler)


@pytest.fixture
def log_capture() -> Generator[LogCapture, None, None]:
    capture = LogCapture("tests.pipeline")
    yield capture
    capture.detach()
