from __future__ import annotations

import math
from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Protocol

"""
Geodesy helpers.

We keep a tiny spherical-earth layer here so report builders can compute distances and
headings without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_M = 6_371_000
FEET_PER_METER = 3.28084
FEET_PER_MILE = 5280

COMPASS_LABELS: tuple[str, ...] = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)
SECTOR_DEG = 360 / len(COMPASS_LABELS)


class GeoPoint(Protocol):
    """Anything with a latitude/longitude pair in decimal degrees."""

    @property
    def lat(self) -> float: ...

    @property
    def lon(self) -> float: ...


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair past 1.0 for antipodal points.
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def initial_bearing_deg(a: GeoPoint, b: GeoPoint) -> float:
    """Forward azimuth from `a` to `b`, degrees clockwise from true north in [0, 360)."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlon = radians(b.lon - a.lon)

    x = sin(dlon) * cos(lat2)
    y = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return (degrees(atan2(x, y)) + 360) % 360


def compass_label(bearing_deg: float) -> str:
    """Map a bearing onto the 16-point compass rose.

    Each label is centered on its nominal heading, so N covers [348.75, 11.25).
    """
    sector = int(((float(bearing_deg) + SECTOR_DEG / 2) % 360) // SECTOR_DEG)
    return COMPASS_LABELS[sector % len(COMPASS_LABELS)]


def format_distance(meters: float) -> str:
    """Render a distance for field reports.

    Below one mile the value is shown in feet rounded *up* to the next multiple of 10
    (over-reporting is the safe side); from one mile on it is shown in miles with one
    decimal place.
    """
    feet = float(meters) * FEET_PER_METER
    if feet >= FEET_PER_MILE:
        return f"{feet / FEET_PER_MILE:.1f} mi"
    return f"{int(math.ceil(feet / 10)) * 10} ft"


def angle_difference_deg(a: float, b: float) -> float:
    """Smallest absolute difference between two bearings, in [0, 180]."""
    d = abs(float(a) - float(b)) % 360
    return min(d, 360 - d)
