"""Exception hierarchy shared by the corpus, navigation and preference layers."""

from __future__ import annotations


class LearnHubError(Exception):
    """Base class for all learnhub errors."""


class CorpusPathError(LearnHubError):
    """A document path is not inside the corpus root."""


class NavigationError(LearnHubError):
    """A navigation transition was rejected; the current state is unchanged."""


class UnknownEntryError(NavigationError):
    def __init__(self, path: str, expected: str) -> None:
        super().__init__(f"No {expected} at {path!r} in the corpus")
        self.path = path
        self.expected = expected


class InvalidTransitionError(NavigationError):
    pass


class InvalidStateError(NavigationError):
    """A navigation snapshot would break the subject/category/file nesting."""


class StorageUnavailableError(LearnHubError):
    """Preference storage could not be written."""
