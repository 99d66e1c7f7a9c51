from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import load_config
from .errors import ConfigError, PipelineError
from .logging_config import configure
from .models import Profile
from .pipeline import run_trip

log = logging.getLogger("tourmap.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tourmap",
        description="Geocode a list of stops, route bike/foot legs and draw trip maps",
    )
    parser.add_argument("config", help="Path to the trip YAML file")
    parser.add_argument("--profile", choices=[p.value for p in Profile],
                        help="Travel profile (overrides the file)")
    parser.add_argument("--day", type=int, action="append", dest="days",
                        help="Render a detail map for this day (repeatable)")
    parser.add_argument("--gpx", action="store_true", default=None, dest="emit_gpx",
                        help="Also write the stops as a GPX file")
    parser.add_argument("--output-dir", help="Directory for maps and summaries")
    parser.add_argument("--no-basemap", action="store_true",
                        help="Skip the tile background")
    parser.add_argument("--log-level", default="INFO",
                        help="DEBUG, INFO, WARNING … (default: INFO)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure(args.log_level)

    try:
        config = load_config(
            args.config,
            profile=args.profile,
            days=args.days,
            emit_gpx=args.emit_gpx,
            output_dir=Path(args.output_dir) if args.output_dir else None,
        )
    except ConfigError as exc:
        log.error("Invalid configuration: %s", exc)
        return 1

    if args.no_basemap:
        config.style.basemap = None

    try:
        report = run_trip(config)
    except PipelineError as exc:
        log.error("Trip %r aborted in stage '%s': %s", config.name, exc.stage, exc.cause)
        return 1

    print(report.summary())
    for kind, path in report.artefacts.items():
        print(f"  {kind:<9} {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
