"""Tests for learnhub.search: subject filtering for the sidebar."""
from __future__ import annotations

import pytest

from learnhub.corpus import build_corpus_index
from learnhub.search import SubjectFilter, filter_subjects, normalize_query

LISTING = [
    "Oracle-SQL/interview-questions/oracle-sql-interview-questions.md",
    "Spring-Framework/notes/beans.md",
    "Web-Technologies/quiz/html-basics.md",
    "Web-Technologies/notes/css.md",
]


@pytest.fixture()
def subjects():
    return build_corpus_index(LISTING).subjects


def _names(entries) -> list[str]:
    return [entry.display_name for entry in entries]


class TestFilterSubjects:
    def test_substring_match(self, subjects) -> None:
        assert _names(filter_subjects(subjects, "web")) == ["Web-Technologies"]

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query_returns_input_unchanged(self, subjects, query) -> None:
        assert filter_subjects(subjects, query) is subjects

    @pytest.mark.parametrize("query", ["WEB", "wEb", "  web  "])
    def test_case_and_surrounding_space_are_ignored(self, subjects, query: str) -> None:
        assert _names(filter_subjects(subjects, query)) == ["Web-Technologies"]

    @pytest.mark.parametrize("query", ["o", "sql", "-", "framework", "zzz", "Technologies"])
    def test_results_are_an_ordered_subset(self, subjects, query: str) -> None:
        result = filter_subjects(subjects, query)
        assert set(result) <= set(subjects)
        positions = [subjects.index(entry) for entry in result]
        assert positions == sorted(positions)

    def test_categories_and_files_are_not_matched(self, subjects) -> None:
        assert filter_subjects(subjects, "quiz") == ()
        assert filter_subjects(subjects, "beans") == ()

    def test_matching_subject_keeps_its_whole_subtree(self, subjects) -> None:
        (web,) = filter_subjects(subjects, "tech")
        assert len(web.children) == 2

    def test_no_match(self, subjects) -> None:
        assert filter_subjects(subjects, "kotlin") == ()

    def test_empty_corpus(self) -> None:
        assert filter_subjects((), "web") == ()


class TestSubjectFilter:
    def test_starts_with_everything_visible(self, subjects) -> None:
        subject_filter = SubjectFilter(subjects)
        assert subject_filter.query == ""
        assert subject_filter.visible is subjects

    def test_update_reports_changes(self, subjects) -> None:
        subject_filter = SubjectFilter(subjects)
        assert subject_filter.update("spring") is True
        assert _names(subject_filter.visible) == ["Spring-Framework"]
        assert subject_filter.update("") is True
        assert subject_filter.visible is subjects

    def test_same_normalized_query_is_a_no_op(self, subjects) -> None:
        subject_filter = SubjectFilter(subjects)
        subject_filter.update("web")
        assert subject_filter.update("  WEB ") is False
        assert subject_filter.query == "web"

    def test_different_query_with_same_result(self, subjects) -> None:
        subject_filter = SubjectFilter(subjects)
        subject_filter.update("web")
        assert subject_filter.update("web-tech") is False
        assert subject_filter.query == "web-tech"


def test_normalize_query() -> None:
    assert normalize_query("  Web ") == "web"
    assert normalize_query(None) == ""
