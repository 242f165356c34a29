from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn
import yaml


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="incidentmap")
    parser.add_argument(
        "--config",
        default=None,
        help="YAML settings file (default: $INCIDENTMAP_CONFIG)",
    )
    sub = parser.add_subparsers(dest="subcommand", required=True)

    # --- UI ---
    ui = sub.add_parser("ui", help="Serve the incident map API and live updates")
    ui.add_argument("--host", default=None, help="Bind host (overrides settings)")
    ui.add_argument("--port", type=int, default=None, help="Bind port (overrides settings)")
    ui.add_argument("--log-level", default=None, help="Log level (overrides settings)")

    # --- Settings ---
    sub.add_parser("settings", help="Print the effective settings")

    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        # env var consumed by settings.get_settings() when server.py is imported
        os.environ["INCIDENTMAP_CONFIG"] = str(Path(args.config).expanduser())

    from incidentmap.settings import get_settings, reset_settings

    reset_settings()
    try:
        s = get_settings()
    except (ValueError, yaml.YAMLError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.subcommand == "ui":
        level = (args.log_level or s.log_level).lower()
        _configure_logging(level)

        uvicorn.run(
            "incidentmap.server:app",
            host=args.host or s.host,
            port=args.port or s.port,
            reload=False,
            log_level=level,
        )
        return 0

    if args.subcommand == "settings":
        print(s.model_dump_json(indent=2))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
