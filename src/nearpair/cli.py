"""
NearPair CLI entrypoint.

Subcommands:
- `nearest`: load a point table, find each point's nearest other point, write a result table
- `geocode`: fill latitude/longitude columns from an address column
- `report`: print an offline sanity report for a point table

All logic lives in the library modules; this file only parses arguments and wires
settings, files and collaborators together.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from nearpair.catalog.export import results_as_rows, write_results, write_rows
from nearpair.catalog.loader import load_points, read_rows
from nearpair.config.settings import Settings, get_settings
from nearpair.core.cache import record_cache_stats
from nearpair.core.geo import convert_distance, distance_units, to_meters
from nearpair.core.logging import configure_logging
from nearpair.errors import NearPairError
from nearpair.geocoding.client import build_geocoding_client, geocode_rows
from nearpair.neighbors.finder import filter_close_pairs, find_nearest_pairs
from nearpair.quality.report import build_points_report


def _field_options(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    """Resolve column names: CLI flags first, then configured defaults."""
    label_field = args.label_field if args.label_field is not None else settings.columns.label
    return {
        "id_field": args.id_field or settings.columns.id,
        "label_field": label_field or None,
        "lat_field": args.lat_field or settings.columns.lat,
        "lon_field": args.lon_field or settings.columns.lon,
    }


def _cmd_nearest(args: argparse.Namespace) -> int:
    """Handle the `nearest` subcommand."""
    settings = get_settings()
    points = load_points(args.input, **_field_options(args, settings))
    workers = int(args.workers) if args.workers is not None else settings.finder.workers

    results = find_nearest_pairs(points, workers=workers)
    if args.max_distance is not None:
        results = filter_close_pairs(results, to_meters(args.max_distance, args.unit))

    if args.json:
        print(json.dumps(results_as_rows(results, unit=args.unit), ensure_ascii=False, indent=2))
    if args.output:
        path = write_results(results, args.output, unit=args.unit)
        if not args.json:
            print(f"Wrote {len(results)} of {len(points)} nearest-neighbor rows to {path}")
    if not args.json and results:
        closest = min(results, key=lambda r: r.distance_m)
        print(
            f"Closest pair: {closest.source_id} -> {closest.nearest_id} "
            f"({convert_distance(closest.distance_m, args.unit):.2f} {args.unit})"
        )
    return 0


def _cmd_geocode(args: argparse.Namespace) -> int:
    """Handle the `geocode` subcommand."""
    settings = get_settings()
    client = build_geocoding_client(settings, api_key=args.api_key)
    rows = read_rows(args.input)

    with record_cache_stats() as stats:
        out, summary = geocode_rows(
            rows,
            client,
            address_field=args.address_field or settings.columns.address,
            lat_field=args.lat_field or settings.columns.lat,
            lon_field=args.lon_field or settings.columns.lon,
            overwrite=bool(args.overwrite),
        )
    path = write_rows(out, args.output)

    report = {**summary.as_dict(), "cache": stats.as_dict(), "output": str(path)}
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    settings = get_settings()
    points = load_points(args.input, **_field_options(args, settings))
    report = build_points_report(points, workers=settings.finder.workers)
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


def _add_field_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--id-field", type=str, default=None, help="Identifier column (missing -> row index).")
    p.add_argument(
        "--label-field", type=str, default=None, help="Type/category column; pass '' to disable."
    )
    p.add_argument("--lat-field", type=str, default=None)
    p.add_argument("--lon-field", type=str, default=None)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the NearPair CLI."""
    parser = argparse.ArgumentParser(prog="nearpair")
    parser.add_argument("--log-level", type=str, default=None, help="Override the configured log level.")
    sub = parser.add_subparsers(dest="command", required=True)

    near = sub.add_parser("nearest", help="Find each point's nearest other point.")
    near.add_argument("input", help="Input table (.csv or .json)")
    near.add_argument("output", nargs="?", default=None, help="Output table (.csv or .json)")
    _add_field_arguments(near)
    near.add_argument("--workers", type=int, default=None, help="Threads for the scan (default from config).")
    near.add_argument("--unit", choices=distance_units(), default="m", help="Unit for display/extra column.")
    near.add_argument(
        "--max-distance",
        type=float,
        default=None,
        help="Only keep pairs at most this far apart (in --unit).",
    )
    near.add_argument("--json", action="store_true", help="Print results as JSON to stdout")
    near.set_defaults(func=_cmd_nearest)

    geo = sub.add_parser("geocode", help="Fill coordinates from an address column.")
    geo.add_argument("input")
    geo.add_argument("output")
    geo.add_argument("--address-field", type=str, default=None)
    geo.add_argument("--lat-field", type=str, default=None)
    geo.add_argument("--lon-field", type=str, default=None)
    geo.add_argument("--api-key", type=str, default=None, help="Defaults to NEARPAIR_GEOCODER_API_KEY.")
    geo.add_argument("--overwrite", action="store_true", help="Re-geocode rows that already have coordinates.")
    geo.set_defaults(func=_cmd_geocode)

    rep = sub.add_parser("report", help="Offline sanity report for a point table.")
    rep.add_argument("input")
    _add_field_arguments(rep)
    rep.set_defaults(func=_cmd_report)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m nearpair.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except NearPairError as e:
        print(f"nearpair: error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        # Unwritable output paths.
        print(f"nearpair: error: {e.filename or ''}: {e.strerror or e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
