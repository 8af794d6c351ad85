"""
Quick-phrase library.

Users keep a small list of reusable comment phrases ("Drift", "Odor noted", ...) and toggle
them into the comments. Storage belongs to the document store; this module only holds the
list semantics.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from mdsassist.domain.models import Phrase


def toggle_phrase(selected: Sequence[str], content: str) -> tuple[str, ...]:
    """Add `content` to the selection, or remove it if already selected (order kept)."""
    if content in selected:
        return tuple(p for p in selected if p != content)
    return (*selected, content)


class PhraseLibrary:
    """An ordered list of titled phrases."""

    def __init__(self, phrases: Iterable[Phrase] = ()):
        self._phrases: list[Phrase] = list(phrases)

    def __iter__(self):
        return iter(self._phrases)

    def __len__(self) -> int:
        return len(self._phrases)

    @property
    def phrases(self) -> list[Phrase]:
        return list(self._phrases)

    def add(self, title: str, content: str) -> Phrase:
        if not title.strip() or not content.strip():
            raise ValueError("A phrase needs both a title and content.")
        phrase = Phrase(title=title, content=content)
        self._phrases.append(phrase)
        return phrase

    def edit(self, index: int, title: str, content: str) -> Phrase:
        if not 0 <= index < len(self._phrases):
            raise IndexError(f"No phrase at index {index}")
        phrase = Phrase(title=title, content=content)
        self._phrases[index] = phrase
        return phrase

    def remove(self, title: str) -> bool:
        """Remove the first phrase with `title`; returns False when none matched."""
        for i, phrase in enumerate(self._phrases):
            if phrase.title == title:
                del self._phrases[i]
                return True
        return False
