"""
MDS Assist CLI entrypoint.

This CLI is intended for quick checks in the field or while debugging, without the web UI.
It delegates all geodesy and composition logic to `mdsassist.core.geo` and `mdsassist.reporting`.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from mdsassist.config.settings import get_settings
from mdsassist.core.geo import compass_label, format_distance, haversine_m, initial_bearing_deg
from mdsassist.core.logging import configure_logging
from mdsassist.domain.models import (
    CommentFragments,
    Coordinate,
    IncidentSite,
    Landmark,
    LocationFragment,
    WindReading,
)
from mdsassist.reporting.composer import compose
from mdsassist.reporting.relative import (
    WIND_FROM_BEARINGS,
    incident_site_report,
    nearest_landmark_report,
    wind_relative_report,
)

DIRECTIONS = list(WIND_FROM_BEARINGS)


def _parse_landmark(value: str) -> Landmark:
    """Parse `LAT,LON,DESCRIPTION` into a Landmark."""
    parts = value.split(",", 2)
    if len(parts) != 3:
        raise ValueError(f"Invalid --landmark '{value}', expected LAT,LON,DESCRIPTION")
    lat, lon, description = parts
    return Landmark(description=description.strip(), lat=float(lat), lon=float(lon))


def _cmd_measure(args: argparse.Namespace) -> int:
    a = Coordinate(lat=args.from_lat, lon=args.from_lon)
    b = Coordinate(lat=args.to_lat, lon=args.to_lon)
    distance = haversine_m(a, b)
    bearing = initial_bearing_deg(a, b)
    payload = {
        "distance_m": round(distance, 2),
        "bearing_deg": round(bearing, 2),
        "compass": compass_label(bearing),
        "display": format_distance(distance),
    }
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(f"{payload['display']} {payload['compass']} (bearing {payload['bearing_deg']:.1f} deg, {payload['distance_m']:.1f} m)")
    return 0


def _cmd_relative(args: argparse.Namespace) -> int:
    settings = get_settings()
    position = Coordinate(lat=args.lat, lon=args.lon)
    lines: list[str] = []

    if args.site_lat is not None and args.site_lon is not None:
        site = IncidentSite(lat=args.site_lat, lon=args.site_lon)
        label = settings.reporting.incident_site_label
        lines.append(incident_site_report(position, site, label=label))
        if args.wind_from:
            lines.append(wind_relative_report(site, position, args.wind_from, label=label))
    elif args.wind_from:
        raise ValueError("--wind-from needs --site-lat/--site-lon")

    if args.landmark:
        landmarks = [_parse_landmark(v) for v in args.landmark]
        lines.append(nearest_landmark_report(position, landmarks))

    for line in lines:
        print(line)
    return 0


def _cmd_compose(args: argparse.Namespace) -> int:
    """Compose both report strings from a JSON payload file (or stdin via `-`)."""
    raw = Path(args.input).read_text(encoding="utf-8") if args.input != "-" else sys.stdin.read()
    data: dict[str, Any] = json.loads(raw or "{}")

    location = LocationFragment.model_validate(data.get("location") or {})
    comments = CommentFragments.model_validate(data.get("comments") or {})
    if args.wind_intensity:
        comments = comments.model_copy(
            update={"wind": WindReading(intensity=args.wind_intensity, direction=args.wind_dir)}
        )
    report = compose(location, data.get("position_reports") or [], comments)

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0
    print("Location Description:")
    print(report.location_text)
    print()
    print("Additional Comments:")
    print(report.comments_text)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the MDS Assist CLI."""
    parser = argparse.ArgumentParser(prog="mdsassist")
    sub = parser.add_subparsers(dest="command", required=True)

    m = sub.add_parser("measure", help="Distance, bearing and compass label between two points.")
    m.add_argument("--from-lat", required=True, type=float)
    m.add_argument("--from-lon", required=True, type=float)
    m.add_argument("--to-lat", required=True, type=float)
    m.add_argument("--to-lon", required=True, type=float)
    m.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    m.set_defaults(func=_cmd_measure)

    rel = sub.add_parser("relative", help="Describe a position relative to the incident site and landmarks.")
    rel.add_argument("--lat", required=True, type=float)
    rel.add_argument("--lon", required=True, type=float)
    rel.add_argument("--site-lat", type=float, default=None)
    rel.add_argument("--site-lon", type=float, default=None)
    rel.add_argument("--wind-from", choices=DIRECTIONS, default=None)
    rel.add_argument(
        "--landmark", action="append", default=[], help="Repeatable: LAT,LON,DESCRIPTION"
    )
    rel.set_defaults(func=_cmd_relative)

    c = sub.add_parser("compose", help="Compose location description and comments from a JSON payload.")
    c.add_argument("input", help="Path to JSON payload (location/position_reports/comments), or '-' for stdin")
    c.add_argument("--wind-intensity", choices=["light", "moderate", "strong", "no-wind"], default=None)
    c.add_argument("--wind-dir", choices=DIRECTIONS, default=None)
    c.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    c.set_defaults(func=_cmd_compose)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m mdsassist.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
