"""Navigation state: one immutable snapshot replaced by explicit transitions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum

from learnhub.corpus import CorpusEntry, CorpusIndex, EntryKind
from learnhub.errors import InvalidStateError, InvalidTransitionError, UnknownEntryError

LOG = logging.getLogger(__name__)


class ViewMode(str, Enum):
    EMPTY = "empty"
    SUBJECT_OVERVIEW = "subject_overview"
    FILE_VIEW = "file_view"


@dataclass(frozen=True)
class NavigationState:
    """What the viewer shows. Narrower selections always imply the wider ones."""

    subject: str | None = None
    category: str | None = None
    file: str | None = None
    scroll_anchor: str | None = None

    def __post_init__(self) -> None:
        if self.category is not None:
            if self.subject is None or _parent(self.category) != self.subject:
                raise InvalidStateError(f"category {self.category!r} is not inside subject {self.subject!r}")
        if self.file is not None:
            if self.category is None or _parent(self.file) != self.category:
                raise InvalidStateError(f"file {self.file!r} is not inside category {self.category!r}")
        if self.scroll_anchor is not None and self.file is None:
            raise InvalidStateError("a scroll anchor needs a selected file")

    @property
    def mode(self) -> ViewMode:
        if self.file is not None:
            return ViewMode.FILE_VIEW
        if self.subject is not None:
            return ViewMode.SUBJECT_OVERVIEW
        return ViewMode.EMPTY


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


Listener = Callable[[NavigationState, NavigationState], None]


class NavigationStore:
    """Owns the current ``NavigationState`` for one browsing session.

    Transitions validate against the corpus index, build a complete new
    snapshot and swap it in with a single assignment, so listeners never see
    a half-updated selection. Each effective transition notifies every
    listener exactly once with ``(previous, current)``.
    """

    def __init__(self, index: CorpusIndex, initial: NavigationState | None = None) -> None:
        self.index = index
        self._state = initial or NavigationState()
        self._listeners: list[Listener] = []
        self._batch_depth = 0
        self._batch_origin: NavigationState | None = None
        self._batch_forced = False

    @property
    def state(self) -> NavigationState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def batch(self) -> Iterator[NavigationStore]:
        """Coalesce transitions made inside the block into one notification."""
        if self._batch_depth == 0:
            self._batch_origin = self._state
            self._batch_forced = False
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                origin = self._batch_origin
                forced = self._batch_forced
                self._batch_origin = None
                self._batch_forced = False
                if origin is not None and (forced or origin != self._state):
                    self._notify(origin, self._state)

    def select_subject(self, subject_path: str) -> NavigationState:
        subject = self._require(subject_path, EntryKind.SUBJECT)
        return self._replace(NavigationState(subject=subject.path))

    def select_category(self, category_path: str) -> NavigationState:
        category = self._require(category_path, EntryKind.CATEGORY)
        return self._replace(NavigationState(subject=_parent(category.path), category=category.path))

    def select_file(self, file_path: str, anchor: str | None = None) -> NavigationState:
        """Show a file; ``anchor`` is set in the same transition when a TOC entry was clicked."""
        file_entry = self._require(file_path, EntryKind.FILE)
        category = _parent(file_entry.path)
        return self._replace(
            NavigationState(
                subject=_parent(category),
                category=category,
                file=file_entry.path,
                scroll_anchor=anchor or None,
            )
        )

    def jump_to_anchor(self, anchor_id: str) -> NavigationState:
        """Scroll the open file to ``anchor_id``.

        Always notifies, even when the anchor is already current, so a repeated
        click on the same TOC entry scrolls back to it.
        """
        if self._state.mode is not ViewMode.FILE_VIEW:
            raise InvalidTransitionError("jumping to an anchor needs an open file")
        return self._replace(replace(self._state, scroll_anchor=anchor_id or None), force=True)

    def follow_link(self, target: str, anchor: str | None = None) -> NavigationState:
        """Open a link clicked inside a document.

        ``target`` is a corpus path; an empty target points into the open file.
        Links to anything that is not a corpus document raise like any other
        unknown path.
        """
        target = target.strip("/")
        anchor = anchor or None
        if not target or target == self._state.file:
            if anchor is None:
                if target:
                    return self._state
                raise InvalidTransitionError("link has neither a document nor an anchor")
            return self.jump_to_anchor(anchor)
        return self.select_file(target, anchor)

    def reset(self) -> NavigationState:
        return self._replace(NavigationState())

    def _require(self, path: str, kind: EntryKind) -> CorpusEntry:
        entry = self.index.resolve(path)
        if entry is None or entry.kind is not kind:
            raise UnknownEntryError(path, kind.value)
        return entry

    def _replace(self, new_state: NavigationState, force: bool = False) -> NavigationState:
        previous = self._state
        if new_state == previous:
            if not force:
                return previous
            new_state = previous
        self._state = new_state
        LOG.debug("Navigation %s -> %s", previous, new_state)
        if self._batch_depth == 0:
            self._notify(previous, new_state)
        elif force:
            self._batch_forced = True
        return new_state

    def _notify(self, previous: NavigationState, current: NavigationState) -> None:
        for listener in list(self._listeners):
            listener(previous, current)


def breadcrumb(state: NavigationState, index: CorpusIndex) -> list[str]:
    """Display names from subject down to the selected file."""
    names: list[str] = []
    for path in (state.subject, state.category, state.file):
        if path is None:
            break
        entry = index.resolve(path)
        names.append(entry.display_name if entry is not None else path.rsplit("/", 1)[-1])
    return names
