"""Tests for learnhub.navigation: atomic transitions and listener notification."""
from __future__ import annotations

import pytest

from learnhub.corpus import build_corpus_index
from learnhub.errors import InvalidStateError, InvalidTransitionError, UnknownEntryError
from learnhub.navigation import NavigationState, NavigationStore, ViewMode, breadcrumb

LISTING = [
    "Oracle-SQL/interview-questions/oracle-sql-interview-questions.md",
    "Oracle-SQL/notes/joins.md",
    "Spring-Framework/notes/beans.md",
]
FILE = "Oracle-SQL/interview-questions/oracle-sql-interview-questions.md"


@pytest.fixture()
def store() -> NavigationStore:
    return NavigationStore(build_corpus_index(LISTING))


@pytest.fixture()
def events(store: NavigationStore) -> list[tuple[NavigationState, NavigationState]]:
    recorded: list[tuple[NavigationState, NavigationState]] = []
    store.subscribe(lambda previous, current: recorded.append((previous, current)))
    return recorded


class TestNavigationState:
    def test_default_is_empty(self) -> None:
        assert NavigationState().mode is ViewMode.EMPTY

    def test_modes(self) -> None:
        assert NavigationState(subject="S").mode is ViewMode.SUBJECT_OVERVIEW
        assert NavigationState(subject="S", category="S/notes").mode is ViewMode.SUBJECT_OVERVIEW
        state = NavigationState(subject="S", category="S/notes", file="S/notes/a.md")
        assert state.mode is ViewMode.FILE_VIEW

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"file": "S/notes/a.md"},
            {"subject": "S", "file": "S/notes/a.md"},
            {"subject": "T", "category": "S/notes"},
            {"subject": "S", "category": "S/quiz", "file": "S/notes/a.md"},
            {"subject": "S", "scroll_anchor": "top"},
        ],
    )
    def test_inconsistent_snapshots_are_rejected(self, kwargs) -> None:
        with pytest.raises(InvalidStateError):
            NavigationState(**kwargs)

    def test_snapshots_are_immutable(self) -> None:
        state = NavigationState(subject="S")
        with pytest.raises(AttributeError):
            state.subject = "T"


class TestTransitions:
    def test_initial_state(self, store: NavigationStore) -> None:
        assert store.state == NavigationState()
        assert store.state.mode is ViewMode.EMPTY

    def test_select_subject(self, store: NavigationStore, events) -> None:
        state = store.select_subject("Oracle-SQL")
        assert state.mode is ViewMode.SUBJECT_OVERVIEW
        assert state.subject == "Oracle-SQL"
        assert state.file is None
        assert len(events) == 1

    def test_select_file_sets_all_fields(self, store: NavigationStore, events) -> None:
        state = store.select_file(FILE)
        assert state.mode is ViewMode.FILE_VIEW
        assert state.subject == "Oracle-SQL"
        assert state.category == "Oracle-SQL/interview-questions"
        assert state.file == FILE
        assert state.scroll_anchor is None
        assert len(events) == 1

    def test_select_file_with_anchor_is_one_transition(self, store: NavigationStore, events) -> None:
        store.select_file("Spring-Framework/notes/beans.md")
        events.clear()
        anchor = "q1-explain-the-difference-between-union-and-union-all"
        store.select_file(FILE, anchor=anchor)
        assert len(events) == 1
        previous, current = events[0]
        assert previous.file == "Spring-Framework/notes/beans.md"
        assert current.file == FILE
        assert current.scroll_anchor == anchor

    def test_selecting_a_new_file_resets_scroll(self, store: NavigationStore) -> None:
        store.select_file(FILE, anchor="somewhere")
        state = store.select_file("Oracle-SQL/notes/joins.md")
        assert state.scroll_anchor is None

    def test_select_subject_clears_file(self, store: NavigationStore) -> None:
        store.select_file(FILE, anchor="x")
        state = store.select_subject("Oracle-SQL")
        assert state.file is None
        assert state.category is None
        assert state.scroll_anchor is None

    def test_select_category(self, store: NavigationStore) -> None:
        state = store.select_category("Oracle-SQL/notes")
        assert state.mode is ViewMode.SUBJECT_OVERVIEW
        assert state.subject == "Oracle-SQL"
        assert state.category == "Oracle-SQL/notes"

    def test_jump_to_anchor_changes_only_anchor(self, store: NavigationStore, events) -> None:
        before = store.select_file(FILE)
        events.clear()
        after = store.jump_to_anchor("q2")
        assert after.file == before.file
        assert after.category == before.category
        assert after.subject == before.subject
        assert after.scroll_anchor == "q2"
        assert len(events) == 1

    @pytest.mark.parametrize("setup", ["empty", "subject"])
    def test_jump_to_anchor_requires_file_view(self, store: NavigationStore, events, setup: str) -> None:
        if setup == "subject":
            store.select_subject("Oracle-SQL")
        before = store.state
        events.clear()
        with pytest.raises(InvalidTransitionError):
            store.jump_to_anchor("q1")
        assert store.state is before
        assert events == []

    def test_unknown_paths_leave_state_untouched(self, store: NavigationStore, events) -> None:
        before = store.select_file(FILE)
        events.clear()
        with pytest.raises(UnknownEntryError):
            store.select_file("Oracle-SQL/notes/missing.md")
        with pytest.raises(UnknownEntryError):
            store.select_subject("Nope")
        assert store.state is before
        assert events == []

    def test_wrong_kind_is_rejected(self, store: NavigationStore) -> None:
        with pytest.raises(UnknownEntryError):
            store.select_file("Oracle-SQL/notes")
        with pytest.raises(UnknownEntryError):
            store.select_subject(FILE)
        with pytest.raises(UnknownEntryError):
            store.select_category("Oracle-SQL")

    def test_no_notification_for_unchanged_state(self, store: NavigationStore, events) -> None:
        store.select_file(FILE)
        store.select_file(FILE)
        assert len(events) == 1

    def test_reset(self, store: NavigationStore) -> None:
        store.select_file(FILE)
        assert store.reset().mode is ViewMode.EMPTY

    def test_empty_corpus_rejects_selection(self) -> None:
        store = NavigationStore(build_corpus_index([]))
        with pytest.raises(UnknownEntryError):
            store.select_subject("Oracle-SQL")
        assert store.state.mode is ViewMode.EMPTY


class TestListeners:
    def test_listeners_see_complete_snapshots(self, store: NavigationStore) -> None:
        seen: list[NavigationState] = []

        def check(_previous: NavigationState, current: NavigationState) -> None:
            # Reading the store inside the callback returns the same snapshot.
            assert store.state is current
            seen.append(current)

        store.subscribe(check)
        store.select_subject("Spring-Framework")
        store.select_file(FILE, anchor="a")
        store.jump_to_anchor("b")
        assert [s.mode for s in seen] == [ViewMode.SUBJECT_OVERVIEW, ViewMode.FILE_VIEW, ViewMode.FILE_VIEW]

    def test_batch_coalesces_into_one_notification(self, store: NavigationStore, events) -> None:
        with store.batch():
            store.select_subject("Spring-Framework")
            store.select_file("Spring-Framework/notes/beans.md")
            store.select_file(FILE)
            assert events == []
        assert len(events) == 1
        previous, current = events[0]
        assert previous == NavigationState()
        assert current.file == FILE

    def test_batch_returning_to_start_does_not_notify(self, store: NavigationStore, events) -> None:
        with store.batch():
            store.select_subject("Oracle-SQL")
            store.reset()
        assert events == []

    def test_nested_batches_notify_once(self, store: NavigationStore, events) -> None:
        with store.batch():
            store.select_subject("Oracle-SQL")
            with store.batch():
                store.select_file(FILE)
            assert events == []
        assert len(events) == 1

    def test_unsubscribe(self, store: NavigationStore) -> None:
        calls: list[NavigationState] = []
        unsubscribe = store.subscribe(lambda _p, c: calls.append(c))
        store.select_subject("Oracle-SQL")
        unsubscribe()
        store.select_subject("Spring-Framework")
        assert len(calls) == 1

    def test_repeated_anchor_jump_notifies_each_time(self, store: NavigationStore, events) -> None:
        store.select_file(FILE)
        first = store.jump_to_anchor("intro")
        second = store.jump_to_anchor("intro")
        assert len(events) == 3
        previous, current = events[-1]
        assert previous is first
        assert current is second
        assert current.scroll_anchor == "intro"

    def test_repeated_anchor_jump_inside_batch_notifies_once(self, store: NavigationStore, events) -> None:
        store.select_file(FILE, anchor="intro")
        events.clear()
        with store.batch():
            store.jump_to_anchor("intro")
        assert len(events) == 1
        assert events[0][1].scroll_anchor == "intro"


class TestFollowLink:
    def test_link_to_another_document(self, store: NavigationStore, events) -> None:
        store.select_file(FILE)
        state = store.follow_link("Oracle-SQL/notes/joins.md", "outer-join")
        assert state.file == "Oracle-SQL/notes/joins.md"
        assert state.category == "Oracle-SQL/notes"
        assert state.scroll_anchor == "outer-join"
        assert len(events) == 2

    def test_fragment_link_jumps_within_open_file(self, store: NavigationStore, events) -> None:
        store.select_file(FILE)
        store.follow_link("", "q1")
        store.follow_link(FILE, "q1")
        assert [current.scroll_anchor for _previous, current in events] == [None, "q1", "q1"]
        assert store.state.file == FILE

    def test_link_outside_the_corpus_documents(self, store: NavigationStore, events) -> None:
        before = store.select_file(FILE)
        events.clear()
        with pytest.raises(UnknownEntryError):
            store.follow_link("Oracle-SQL/img/plan.png")
        with pytest.raises(InvalidTransitionError):
            store.follow_link("", None)
        assert store.state is before
        assert events == []

    def test_fragment_link_without_open_file(self, store: NavigationStore) -> None:
        with pytest.raises(InvalidTransitionError):
            store.follow_link("", "q1")


class TestBreadcrumb:
    def test_breadcrumb_for_file(self, store: NavigationStore) -> None:
        state = store.select_file(FILE)
        assert breadcrumb(state, store.index) == [
            "Oracle-SQL",
            "Interview Questions",
            "Oracle Sql Interview Questions",
        ]

    def test_breadcrumb_for_subject_and_empty(self, store: NavigationStore) -> None:
        assert breadcrumb(store.state, store.index) == []
        state = store.select_subject("Spring-Framework")
        assert breadcrumb(state, store.index) == ["Spring-Framework"]
