"""
Attach / retrieve composed reports by proximity.

A user can pin the current report strings to where they stand and later pull them back
when standing near the same spot. The store itself is an external collaborator; this
module holds the nearest-within-radius rule.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Protocol, Sequence

from mdsassist.core.geo import GeoPoint, haversine_m
from mdsassist.domain.models import FieldReport, ReportSnapshot

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 50.0
DEFAULT_MAX_SNAPSHOTS = 1000


class SnapshotStore(Protocol):
    def add(self, snapshot: ReportSnapshot) -> None: ...

    def all(self) -> Sequence[ReportSnapshot]: ...


class InMemorySnapshotStore:
    """Process-local store for the demo API and tests.

    Holds at most `max_items` snapshots; the oldest is evicted first. Not shared across
    workers and lost on restart.
    """

    def __init__(self, max_items: int = DEFAULT_MAX_SNAPSHOTS) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be > 0")
        self._items: deque[ReportSnapshot] = deque(maxlen=max_items)

    def add(self, snapshot: ReportSnapshot) -> None:
        self._items.append(snapshot)

    def all(self) -> Sequence[ReportSnapshot]:
        return list(self._items)


def attach(store: SnapshotStore, position: GeoPoint, report: FieldReport) -> ReportSnapshot:
    snapshot = ReportSnapshot(
        lat=position.lat,
        lon=position.lon,
        location_text=report.location_text,
        comments_text=report.comments_text,
    )
    store.add(snapshot)
    logger.info("Attached report at lat=%.5f lon=%.5f", position.lat, position.lon)
    return snapshot


def retrieve_nearby(
    store: SnapshotStore, position: GeoPoint, *, radius_m: float = DEFAULT_RADIUS_M
) -> ReportSnapshot | None:
    """Closest stored snapshot strictly within `radius_m`, or None (ties keep the first)."""
    closest: ReportSnapshot | None = None
    min_d = float("inf")
    for snapshot in store.all():
        d = haversine_m(position, snapshot)
        if d < min_d:
            closest, min_d = snapshot, d
    if closest is None or min_d >= radius_m:
        logger.info("No stored report within %.0f m", radius_m)
        return None
    return closest
