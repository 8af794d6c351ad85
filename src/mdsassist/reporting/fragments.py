"""
Small text helpers shared by the report builders.

Fragments come from many places (form fields, AI replies, the phrase library), so each
one is normalized the same way before joining: trimmed, trailing periods stripped.
"""

from __future__ import annotations

import re
from typing import Iterable

from mdsassist.domain.models import NO_WIND, WindReading

FRAGMENT_SEPARATOR = ". "

_TRAILING_DOTS = re.compile(r"[.\s]+$")
_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")

_WEATHER_PHRASES = {
    "clear": "Clear skies",
    "rain": "Rainy",
    "fog": "Foggy",
    "snow": "Snowy",
    "dust": "Dusty",
}


def normalize_fragment(text: str | None) -> str:
    """Trim and drop any trailing run of periods (and spaces between them); None becomes an empty string."""
    if not text:
        return ""
    return _TRAILING_DOTS.sub("", text.strip()).strip()


def join_fragments(parts: Iterable[str | None]) -> str:
    """Normalize, drop empties, and join with `". "`."""
    cleaned = [normalize_fragment(p) for p in parts]
    return FRAGMENT_SEPARATOR.join(p for p in cleaned if p)


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def weather_phrase(value: str | None) -> str:
    """Expand a weather picker value ("rain") into report wording ("Rainy")."""
    if not value or not value.strip():
        return ""
    return _WEATHER_PHRASES.get(value.strip().lower(), value.strip())


def wind_phrase(wind: WindReading | None) -> str:
    """`"Light wind from NW"`, or `"No wind"` for the no-wind sentinel."""
    if wind is None or not wind.intensity:
        return ""
    if wind.intensity == NO_WIND:
        return "No wind"
    if not wind.direction:
        return ""
    return f"{capitalize(wind.intensity)} wind from {wind.direction}"


def address_phrase(ai_reply: str | None, display_name: str | None) -> str:
    """Location phrase from a reverse-geocoded address.

    Prefers the AI-reformatted reply (surrounding quotes stripped); falls back to
    "Near <address>".
    """
    reply = _SURROUNDING_QUOTES.sub("", (ai_reply or "").strip()).strip()
    if reply:
        return reply
    return f"Near {(display_name or '').strip() or 'Unknown location'}"
