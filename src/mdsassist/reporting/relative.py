"""
Relative position sentences.

Turns two coordinates into a field-report sentence such as `"120 ft NW of incident site"`.
The compass label describes where the *origin* lies as seen from the target, which is
how the sentence reads.
"""

from __future__ import annotations

from typing import Literal, Sequence

from mdsassist.core.geo import (
    GeoPoint,
    angle_difference_deg,
    compass_label,
    format_distance,
    haversine_m,
    initial_bearing_deg,
)
from mdsassist.domain.models import Landmark

INCIDENT_SITE_LABEL = "incident site"

# Wind is picked on an 8-point rose; each direction maps to the bearing it blows *from*.
WIND_FROM_BEARINGS: dict[str, float] = {
    "N": 0,
    "NE": 45,
    "E": 90,
    "SE": 135,
    "S": 180,
    "SW": 225,
    "W": 270,
    "NW": 315,
}
WIND_TOLERANCE_DEG = 22.5

WindRelation = Literal["upwind", "downwind", "crosswind"]


def relative_report(origin: GeoPoint, target: GeoPoint, target_label: str) -> str:
    """`"{distance} {compass} of {target_label}"` for `origin` relative to `target`."""
    distance = haversine_m(origin, target)
    bearing = initial_bearing_deg(target, origin)
    return f"{format_distance(distance)} {compass_label(bearing)} of {target_label}"


def incident_site_report(
    position: GeoPoint, site: GeoPoint, *, label: str = INCIDENT_SITE_LABEL
) -> str:
    return relative_report(position, site, label)


def nearest_landmark(origin: GeoPoint, landmarks: Sequence[Landmark]) -> tuple[Landmark, float]:
    """Closest landmark to `origin` and its distance in meters (ties keep the first).

    Raises:
        ValueError: If `landmarks` is empty; callers must check first.
    """
    if not landmarks:
        raise ValueError("nearest_landmark requires at least one landmark")
    best = landmarks[0]
    best_d = haversine_m(origin, best)
    for lm in landmarks[1:]:
        d = haversine_m(origin, lm)
        if d < best_d:
            best, best_d = lm, d
    return best, best_d


def nearest_landmark_report(origin: GeoPoint, landmarks: Sequence[Landmark]) -> str:
    landmark, _ = nearest_landmark(origin, landmarks)
    return relative_report(origin, landmark, landmark.description)


def wind_from_bearing(wind_from: str) -> float:
    try:
        return WIND_FROM_BEARINGS[wind_from.strip().upper()]
    except KeyError:
        raise ValueError(
            f"Unknown wind direction '{wind_from}'; expected one of {', '.join(WIND_FROM_BEARINGS)}"
        ) from None


def wind_relation(site: GeoPoint, position: GeoPoint, wind_from: str) -> WindRelation:
    """Classify `position` as upwind, downwind or crosswind of `site`."""
    wind_bearing = wind_from_bearing(wind_from)
    bearing = initial_bearing_deg(site, position)
    if angle_difference_deg(bearing, wind_bearing) <= WIND_TOLERANCE_DEG:
        return "upwind"
    if angle_difference_deg(bearing, wind_bearing + 180) <= WIND_TOLERANCE_DEG:
        return "downwind"
    return "crosswind"


def wind_relative_report(
    site: GeoPoint, position: GeoPoint, wind_from: str, *, label: str = INCIDENT_SITE_LABEL
) -> str:
    """`"~{distance} {compass} and {relation} of incident site"`."""
    relation = wind_relation(site, position, wind_from)
    distance = haversine_m(site, position)
    bearing = initial_bearing_deg(site, position)
    return f"~{format_distance(distance)} {compass_label(bearing)} and {relation} of {label}"
