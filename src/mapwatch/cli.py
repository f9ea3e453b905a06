"""Command-line entry point: ``mapwatch``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from dotenv import load_dotenv

from mapwatch.config import WatchConfig
from mapwatch.exceptions import ConfigMissingError
from mapwatch.log import configure_logging
from mapwatch.server import NotifierServer


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mapwatch",
        description="Poll the battle map and push new ⚔️ locations to WebSocket subscribers.",
    )
    parser.add_argument("--env-file", default=".env", help="dotenv file to load before reading the environment")
    parser.add_argument("--host", help="listening address (MAPWATCH_HOST)")
    parser.add_argument("--port", type=int, help="listening port (MAPWATCH_PORT / PORT)")
    parser.add_argument("--interval", type=float, help="seconds between polls (MAPWATCH_POLL_INTERVAL)")
    parser.add_argument("--map-url", help="map page to poll (MAPWATCH_MAP_URL)")
    parser.add_argument("--log-file", help="JSON-lines log file (MAPWATCH_LOG_FILE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> WatchConfig:
    """Merge CLI flags over the environment.

    Raises
    ------
    ConfigMissingError
        No auth token in the environment.
    """
    overrides: dict[str, Any] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    if args.map_url is not None:
        overrides["map_url"] = args.map_url
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.verbose:
        overrides["verbose"] = True
    return WatchConfig.from_env(**overrides)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    load_dotenv(args.env_file)

    try:
        config = build_config(args)
    except ConfigMissingError as exc:
        print(f"mapwatch: {exc}", file=sys.stderr)
        return 2

    configure_logging(config)
    asyncio.run(NotifierServer(config).serve())
    return 0


if __name__ == "__main__":
    sys.exit(main())
