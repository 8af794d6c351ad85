"""
Domain models (Pydantic).

These types are the contract between the acquisition engine, the report builders and
the outer surfaces (CLI/API):
- sensor output (`Coordinate`, `PositionSample`, `AcquisitionResult`)
- collaborator-provided reference points (`Landmark`, `IncidentSite`)
- form state consumed by the composer (`LocationFragment`, `CommentFragments`)
- composed output (`FieldReport`, `ReportSnapshot`)

Everything here is transient: recomputed per user action and never persisted by this package.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

CardinalDirection = Literal["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
CornerDirection = Literal["NE", "NW", "SE", "SW"]
EdgeDirection = Literal["N", "E", "S", "W"]
LocationKind = Literal["corner", "edge", "intersection", "landmark"]
WindIntensity = Literal["light", "moderate", "strong", "no-wind"]

NO_WIND: WindIntensity = "no-wind"


class Coordinate(BaseModel):
    """A sensor fix in decimal degrees, with optional horizontal accuracy in meters."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    accuracy_m: float | None = Field(default=None, ge=0)


class PositionSample(BaseModel):
    """A coordinate plus the moment it was captured."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_better_than(self, other: "PositionSample") -> bool:
        """Strictly more precise than `other`; ties (and unknown accuracy) lose."""
        mine = self.coordinate.accuracy_m
        theirs = other.coordinate.accuracy_m
        if mine is None:
            return False
        if theirs is None:
            return True
        return mine < theirs


class AcquisitionFailure(str, Enum):
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission-denied"
    TIMEOUT_NO_FIX = "timeout-no-fix"
    SENSOR_ERROR = "sensor-error"


class AcquisitionResult(BaseModel):
    """Outcome of one acquisition: a coordinate or a failure reason, never both."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate | None = None
    failure: AcquisitionFailure | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "AcquisitionResult":
        if (self.coordinate is None) == (self.failure is None):
            raise ValueError("AcquisitionResult needs exactly one of coordinate/failure")
        return self

    @classmethod
    def succeeded(cls, coordinate: Coordinate) -> "AcquisitionResult":
        return cls(coordinate=coordinate)

    @classmethod
    def failed(cls, reason: AcquisitionFailure) -> "AcquisitionResult":
        return cls(failure=reason)

    @property
    def ok(self) -> bool:
        return self.coordinate is not None


class Landmark(BaseModel):
    """A named reference point supplied by the landmark store or the map picker."""

    model_config = ConfigDict(frozen=True)

    description: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class IncidentSite(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class LocationFragment(BaseModel):
    """Structured landmark description built in the location form."""

    model_config = ConfigDict(frozen=True)

    distance_ft: int = Field(0, ge=0)
    direction: CardinalDirection | None = None
    kind: LocationKind | None = None
    corner: CornerDirection | None = None
    edge: EdgeDirection | None = None
    landmark: str | None = None
    second_landmark: str | None = None
    # Free-form text appended after the structured phrase (e.g. an address phrase).
    note: str | None = None

    def add_distance(self, step_ft: int) -> "LocationFragment":
        """Return a copy with `step_ft` added to the cumulative distance."""
        if step_ft <= 0:
            raise ValueError("step_ft must be > 0")
        return self.model_copy(update={"distance_ft": self.distance_ft + int(step_ft)})


class WindReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    intensity: WindIntensity | None = None
    direction: CardinalDirection | None = None


class CommentFragments(BaseModel):
    """Optional comment pieces; any subset may be empty."""

    model_config = ConfigDict(frozen=True)

    instrument_note: str | None = None
    quick_phrases: tuple[str, ...] = ()
    manual_note: str | None = None
    weather: str | None = None
    ai_scene_text: str | None = None
    wind: WindReading | None = None
    wind_relative: str | None = None


class FieldReport(BaseModel):
    """The two final strings shown read-only and offered for copy."""

    model_config = ConfigDict(frozen=True)

    location_text: str
    comments_text: str


class ReportSnapshot(BaseModel):
    """A composed report pinned to the coordinate it was attached at."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    location_text: str = ""
    comments_text: str = ""


class Phrase(BaseModel):
    title: str
    content: str
