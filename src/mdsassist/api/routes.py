"""
API routes.

Endpoints:
- GET  `/api/health`: liveness + app name.
- POST `/api/geodesy/measure`: distance, bearing, compass label, display string.
- POST `/api/reports/relative`: incident-site / nearest-landmark / wind-relative sentences.
- POST `/api/reports/compose`: the two final report strings.
- POST `/api/reports/attach`, `/api/reports/retrieve`: pin a report to a coordinate and read it back.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from mdsassist.config.settings import get_settings
from mdsassist.core.geo import compass_label, format_distance, haversine_m, initial_bearing_deg
from mdsassist.domain.models import (
    CardinalDirection,
    CommentFragments,
    Coordinate,
    FieldReport,
    IncidentSite,
    Landmark,
    LocationFragment,
    ReportSnapshot,
)
from mdsassist.reporting.composer import compose
from mdsassist.reporting.proximity import InMemorySnapshotStore, attach, retrieve_nearby
from mdsassist.reporting.relative import (
    incident_site_report,
    nearest_landmark_report,
    wind_relative_report,
)

router = APIRouter()


class MeasureRequest(BaseModel):
    origin: Coordinate
    target: Coordinate


class MeasureResponse(BaseModel):
    distance_m: float
    bearing_deg: float
    compass: str
    display: str


class RelativeRequest(BaseModel):
    position: Coordinate
    incident_site: IncidentSite | None = None
    landmarks: list[Landmark] = Field(default_factory=list)
    wind_from: CardinalDirection | None = None


class RelativeResponse(BaseModel):
    incident_site: str | None = None
    nearest_landmark: str | None = None
    wind_relative: str | None = None


class ComposeRequest(BaseModel):
    location: LocationFragment = Field(default_factory=LocationFragment)
    position_reports: list[str] = Field(default_factory=list)
    comments: CommentFragments = Field(default_factory=CommentFragments)


class AttachRequest(BaseModel):
    position: Coordinate
    report: FieldReport


class RetrieveRequest(BaseModel):
    position: Coordinate


class RetrieveResponse(BaseModel):
    snapshot: ReportSnapshot | None = None


@lru_cache
def _store() -> InMemorySnapshotStore:
    """Demo-only, process-local store; bounded, oldest snapshots evicted first."""
    return InMemorySnapshotStore()


def _validation_error(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)})


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "app": get_settings().app.name}


@router.post("/api/geodesy/measure", response_model=MeasureResponse)
def post_measure(req: MeasureRequest) -> MeasureResponse:
    distance = haversine_m(req.origin, req.target)
    bearing = initial_bearing_deg(req.origin, req.target)
    return MeasureResponse(
        distance_m=distance,
        bearing_deg=bearing,
        compass=compass_label(bearing),
        display=format_distance(distance),
    )


@router.post("/api/reports/relative", response_model=RelativeResponse)
def post_relative(req: RelativeRequest) -> RelativeResponse:
    """Build whichever relative sentences the supplied reference points allow."""
    label = get_settings().reporting.incident_site_label
    out = RelativeResponse()
    try:
        if req.incident_site is not None:
            out.incident_site = incident_site_report(req.position, req.incident_site, label=label)
            if req.wind_from:
                out.wind_relative = wind_relative_report(
                    req.incident_site, req.position, req.wind_from, label=label
                )
        elif req.wind_from:
            raise ValueError("wind_from requires incident_site")
        if req.landmarks:
            out.nearest_landmark = nearest_landmark_report(req.position, req.landmarks)
    except ValueError as e:
        raise _validation_error(e) from e
    return out


@router.post("/api/reports/compose", response_model=FieldReport)
def post_compose(req: ComposeRequest) -> FieldReport:
    return compose(req.location, req.position_reports, req.comments)


@router.post("/api/reports/attach", response_model=ReportSnapshot)
def post_attach(req: AttachRequest) -> ReportSnapshot:
    return attach(_store(), req.position, req.report)


@router.post("/api/reports/retrieve", response_model=RetrieveResponse)
def post_retrieve(req: RetrieveRequest) -> RetrieveResponse:
    radius = get_settings().reporting.proximity_radius_m
    return RetrieveResponse(snapshot=retrieve_nearby(_store(), req.position, radius_m=radius))
