"""
=============================================================================
PIPELINECORE CLI ENTRY POINT
=============================================================================

Prints the middleware stack the current configuration produces, outermost
first, one "use" line per active entry:

    $ python -m pipelinecore middleware --rate-limit 100
    use Failsafe(logger=None, error_page_dir=None)
    use LoggingMiddleware(log_format='text', skip_paths=[]) [conditional]
    use RateLimitMiddleware(RateLimiter(quota=100, window=60))
    run not_found_app

Settings come from PIPELINE_* environment variables (see
PipelineConfig.from_env) and are overridden by the flags below.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import PipelineConfig
from .errors import PipelineError
from .pipeline import Pipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipelinecore",
        description="Request pipeline core tools",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"pipelinecore {__version__}",
    )

    commands = parser.add_subparsers(dest="command")

    middleware = commands.add_parser(
        "middleware",
        help="List the active middleware stack in order",
    )
    middleware.add_argument(
        "--error-pages",
        default=None,
        help="Directory with static error pages (500.html)",
    )
    middleware.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format",
    )
    middleware.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable the access log middleware",
    )
    middleware.add_argument(
        "--rate-limit",
        type=int,
        default=None,
        help="Requests allowed per window per client",
    )
    middleware.add_argument(
        "--window",
        type=float,
        default=None,
        help="Rate limit window in seconds",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_env()
    if args.error_pages is not None:
        config.error_page_dir = args.error_pages
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.no_access_log:
        config.access_log = False
    if args.rate_limit is not None:
        config.rate_limit_quota = args.rate_limit
    if args.window is not None:
        config.rate_limit_window = args.window
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "middleware":
        parser.print_help()
        return 1

    try:
        pipeline = Pipeline(config=_config_from_args(args))
        entries = pipeline.middleware.active()
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for entry in entries:
        print(f"use {entry.inspect()}")
    print(f"run {pipeline.app.__name__}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
