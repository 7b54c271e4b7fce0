"""Sidebar filtering of subjects by a live text query."""

from __future__ import annotations

from learnhub.corpus import CorpusEntry


def normalize_query(query: str | None) -> str:
    return (query or "").strip().casefold()


def filter_subjects(subjects: tuple[CorpusEntry, ...], query: str | None) -> tuple[CorpusEntry, ...]:
    """Return subjects whose display name contains ``query``, case-insensitively.

    Only subject names are matched; categories and files ride along with
    their subject unchanged. A blank query returns ``subjects`` as given.
    """
    needle = normalize_query(query)
    if not needle:
        return subjects
    return tuple(subject for subject in subjects if needle in subject.display_name.casefold())


class SubjectFilter:
    """Tracks the visible subjects for the sidebar as the query changes."""

    def __init__(self, subjects: tuple[CorpusEntry, ...]) -> None:
        self._subjects = subjects
        self._query = ""
        self._visible = subjects

    @property
    def query(self) -> str:
        return self._query

    @property
    def visible(self) -> tuple[CorpusEntry, ...]:
        return self._visible

    def update(self, query: str | None) -> bool:
        """Apply a new query; returns False when the visible subjects cannot have changed."""
        normalized = normalize_query(query)
        if normalized == self._query:
            return False
        self._query = normalized
        visible = filter_subjects(self._subjects, normalized)
        changed = visible != self._visible
        self._visible = visible
        return changed
