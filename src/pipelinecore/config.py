"""
=============================================================================
PIPELINE CONFIGURATION
=============================================================================

Everything the default pipeline needs to know, in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m pipelinecore middleware --rate-limit 100         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PIPELINE_RATE_LIMIT=100 python -m pipelinecore middleware  │
    │                                                                      │
    │   3. Defaults below                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Configuration is passed explicitly to whatever needs it. There is no
global settings object to patch in tests: build a PipelineConfig and
hand it over.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigurationError


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("text", "json")


@dataclass
class PipelineConfig:
    """
    Configuration for the default request pipeline.

    Development:
        PipelineConfig(log_level="DEBUG")

    Production:
        PipelineConfig(
            error_page_dir="/srv/app/public",
            log_format="json",
            rate_limit_quota=100,
            rate_limit_window=60,
            redis_url="redis://cache:6379/0",
        )
    """

    # ─────────────────────────────────────────────────────────────────────
    # FAILSAFE
    # ─────────────────────────────────────────────────────────────────────

    error_page_dir: Optional[str] = None
    """
    Directory with static error pages named by status (500.html).
    None = always use the built-in 500 body.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Level for the "pipelinecore" logger hierarchy."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    access_log: bool = True
    """
    Whether the access log middleware is active. Read every time the
    stack is built, so flipping it takes effect on the next build.
    """

    skip_log_paths: List[str] = field(default_factory=list)
    """Paths never written to the access log (health checks)."""

    # ─────────────────────────────────────────────────────────────────────
    # RATE LIMITING
    # ─────────────────────────────────────────────────────────────────────

    rate_limit_quota: Optional[int] = None
    """Requests allowed per window per client. None = no limiter."""

    rate_limit_window: float = 60.0
    """Window length in seconds."""

    redis_url: Optional[str] = None
    """
    Counter store location. None = in-process memory store, which only
    limits per process.
    """

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """
        Create configuration from environment variables.

        PIPELINE_ERROR_PAGES       error_page_dir
        PIPELINE_LOG_LEVEL         log_level (default INFO)
        PIPELINE_LOG_FORMAT        log_format (default text)
        PIPELINE_ACCESS_LOG        "0"/"false"/"no" disables the access log
        PIPELINE_SKIP_LOG_PATHS    comma separated paths
        PIPELINE_RATE_LIMIT        rate_limit_quota
        PIPELINE_RATE_WINDOW       rate_limit_window (default 60)
        PIPELINE_REDIS_URL         redis_url
        """
        quota = os.getenv("PIPELINE_RATE_LIMIT")
        skip = os.getenv("PIPELINE_SKIP_LOG_PATHS", "")
        try:
            return cls(
                error_page_dir=os.getenv("PIPELINE_ERROR_PAGES"),
                log_level=os.getenv("PIPELINE_LOG_LEVEL", "INFO"),
                log_format=os.getenv("PIPELINE_LOG_FORMAT", "text"),
                access_log=os.getenv("PIPELINE_ACCESS_LOG", "1").lower() not in ("0", "false", "no"),
                skip_log_paths=[p.strip() for p in skip.split(",") if p.strip()],
                rate_limit_quota=int(quota) if quota else None,
                rate_limit_window=float(os.getenv("PIPELINE_RATE_WINDOW", "60")),
                redis_url=os.getenv("PIPELINE_REDIS_URL"),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid pipeline environment: {exc}") from exc

    def validate(self) -> None:
        """Fail fast at boot rather than on the first request."""
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in _LOG_FORMATS:
            raise ConfigurationError(f"log_format must be one of {_LOG_FORMATS}")

        if self.rate_limit_quota is not None and self.rate_limit_quota <= 0:
            raise ConfigurationError("rate_limit_quota must be > 0")

        if self.rate_limit_window <= 0:
            raise ConfigurationError("rate_limit_window must be > 0")

        if self.error_page_dir is not None and not os.path.isdir(self.error_page_dir):
            raise ConfigurationError(f"error_page_dir is not a directory: {self.error_page_dir}")
