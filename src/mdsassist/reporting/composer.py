"""
Field report composition.

`compose` merges the location-builder state, position sentences and comment fragments into
the two strings pasted into the incident report. It is a pure function: the same inputs
always produce the same strings.

Comment order is fixed:
instrument note (own first line) -> quick phrases -> manual note -> weather -> AI scene text
-> wind -> wind relative to the incident site.
"""

from __future__ import annotations

from typing import Sequence

from mdsassist.domain.models import CommentFragments, FieldReport, LocationFragment
from mdsassist.reporting.fragments import join_fragments, normalize_fragment, weather_phrase, wind_phrase


def location_phrase(location: LocationFragment) -> str:
    """Structured phrase from the location builder, or "" until it is complete.

    Nothing is rendered unless a cumulative distance and a direction were both chosen.
    """
    if location.distance_ft <= 0 or not location.direction:
        return ""
    lead = f"~{location.distance_ft} feet {location.direction} of"
    landmark = normalize_fragment(location.landmark)

    if location.kind == "corner":
        if location.corner and landmark:
            return f"{lead} {location.corner} corner of {landmark}"
    elif location.kind == "edge":
        if location.edge and landmark:
            return f"{lead} {location.edge} edge of {landmark}"
    elif location.kind == "intersection":
        second = normalize_fragment(location.second_landmark)
        if landmark and second:
            return f"{lead} intersection of {landmark} and {second}"
    elif location.kind == "landmark":
        if landmark:
            return f"{lead} {landmark}"
    return ""


def compose_location(location: LocationFragment, position_reports: Sequence[str | None] = ()) -> str:
    return join_fragments([location_phrase(location), location.note, *position_reports])


def compose_comments(comments: CommentFragments) -> str:
    body = join_fragments(
        [
            *comments.quick_phrases,
            comments.manual_note,
            weather_phrase(comments.weather),
            comments.ai_scene_text,
            wind_phrase(comments.wind),
            comments.wind_relative,
        ]
    )
    instrument = normalize_fragment(comments.instrument_note)
    if instrument and body:
        return f"{instrument}\n{body}"
    return instrument or body


def compose(
    location: LocationFragment,
    position_reports: Sequence[str | None],
    comments: CommentFragments,
) -> FieldReport:
    """Build the location description and additional comments strings."""
    return FieldReport(
        location_text=compose_location(location, position_reports),
        comments_text=compose_comments(comments),
    )
