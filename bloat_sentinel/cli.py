"""
Command-line entry point for the bloat sentinel.

Usage:
    octo-sentinel daemon    # start sentinel as background daemon
    octo-sentinel start     # run sentinel in the foreground
    octo-sentinel stop      # stop the running sentinel
    octo-sentinel status    # show sentinel status and session health
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, SentinelConfig
from .daemon import Sentinel, start_daemon, stop_daemon
from .incident import SENTINEL_BANNER
from .sentinel_log import setup_logging
from .status import render_status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="octo-sentinel",
        description=SENTINEL_BANNER,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  daemon    Start sentinel as background daemon
  start     Start sentinel in foreground
  stop      Stop running sentinel
  status    Show sentinel status and session health
        """,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to sentinel-config.json")
    parser.add_argument(
        "command",
        choices=["start", "daemon", "stop", "status"],
        nargs="?",
        help="Sentinel command",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = SentinelConfig.load(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "start":
        setup_logging(config.log_path)
        Sentinel.from_config(config).run_forever()
        return 0

    if args.command in ("daemon", "stop"):
        # Terminal output comes from print; the log only needs the file handler
        setup_logging(config.log_path, interactive=False)
        if args.command == "daemon":
            return start_daemon(config, args.config)
        return stop_daemon(config)

    print(render_status(config, use_color=sys.stdout.isatty()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
