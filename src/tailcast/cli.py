"""Command-line entry point for ``tailcast``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from tailcast import __version__
from tailcast.config import TailConfig, load_config
from tailcast.errors import ConfigError, WatchSetupError
from tailcast.tail.watcher import ensure_watchable

_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="tailcast",
        description="Stream new lines of a file to WebSocket clients",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a TOML config file with a [tail] table",
    )
    parser.add_argument(
        "--file",
        default=None,
        help="File to follow (default: $TAILCAST_FILE or ./logs.txt)",
    )
    parser.add_argument("--host", default=None, help="Server bind host")
    parser.add_argument("--port", type=int, default=None, help="Server bind port")
    parser.add_argument(
        "--debounce-ms",
        type=int,
        default=None,
        help="Quiet period after a change before reading (default: 100)",
    )
    parser.add_argument(
        "--catch-up",
        type=int,
        default=None,
        help="Lines sent to each new client on connect (default: 10)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Backward read chunk size in bytes (default: 1024)",
    )
    parser.add_argument(
        "--poll",
        action="store_true",
        default=None,
        help="Poll for changes instead of using OS notifications",
    )
    parser.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default="info",
        help="Log level for tailcast and uvicorn (default: info)",
    )
    return parser.parse_args(argv if argv is not None else sys.argv[1:])


def resolve_config(args: argparse.Namespace) -> TailConfig:
    """Merge config file, environment and CLI flags."""
    config_path = Path(args.config) if args.config else None
    return load_config(
        config_path,
        overrides={
            "file": args.file,
            "host": args.host,
            "port": args.port,
            "debounce_ms": args.debounce_ms,
            "catch_up_lines": args.catch_up,
            "chunk_size": args.chunk_size,
            "force_polling": args.poll,
        },
    )


def main(argv: list[str] | None = None) -> None:
    """Load config and serve the followed file."""
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    args = parse_cli_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    try:
        ensure_watchable(config.file.expanduser().resolve())
    except WatchSetupError as exc:
        raise SystemExit(str(exc)) from exc

    from tailcast.server.cli import run_server

    run_server(config, log_level=args.log_level)


if __name__ == "__main__":
    main()
