"""CLI entry point: load settings, then hand over to the interactive console."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys

from streamone_sdk.config import load_settings
from streamone_sdk.errors import ConfigError


def main() -> None:
    parser = argparse.ArgumentParser(
        description="StreamOne SDK console: log in, list roles and check tokens",
    )
    parser.add_argument(
        "--config",
        default=str(pathlib.Path.cwd() / "config" / "settings.yaml"),
        help="Path to settings.yaml (default: ./config/settings.yaml)",
    )
    parser.add_argument(
        "--session",
        action="store_true",
        help="Log a user in and act within their session",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        settings = load_settings(args.config)
        config = settings.build_config()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)

    from streamone_sdk.prompt.cli import run_cli

    run_cli(config, settings, use_session=args.session, verbose=args.verbose)


if __name__ == "__main__":
    main()
