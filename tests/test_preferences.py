"""Tests for learnhub.preferences: theme resolution and best-effort persistence."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from learnhub.preferences import DEFAULT_THEME, PreferenceStore


@pytest.fixture()
def prefs_path(tmp_path: Path) -> Path:
    return tmp_path / ".learnhub.json"


class TestLoad:
    def test_default_is_light(self, prefs_path: Path) -> None:
        assert PreferenceStore(prefs_path).load().theme == DEFAULT_THEME == "light"

    def test_system_hint_used_without_stored_value(self, prefs_path: Path) -> None:
        store = PreferenceStore(prefs_path, system_theme=lambda: "dark")
        assert store.load().theme == "dark"

    def test_stored_value_beats_system_hint(self, prefs_path: Path) -> None:
        prefs_path.write_text(json.dumps({"theme": "light"}), encoding="utf-8")
        store = PreferenceStore(prefs_path, system_theme=lambda: "dark")
        assert store.load().theme == "light"

    def test_unknown_stored_theme_is_ignored(self, prefs_path: Path) -> None:
        prefs_path.write_text(json.dumps({"theme": "solarized"}), encoding="utf-8")
        store = PreferenceStore(prefs_path, system_theme=lambda: "dark")
        assert store.load().theme == "dark"

    def test_malformed_file_falls_back(self, prefs_path: Path, caplog) -> None:
        prefs_path.write_text("{theme: dark", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="learnhub.preferences"):
            prefs = PreferenceStore(prefs_path).load()
        assert prefs.theme == "light"
        assert "Ignoring preferences file" in caplog.text

    def test_non_object_payload_falls_back(self, prefs_path: Path) -> None:
        prefs_path.write_text(json.dumps(["dark"]), encoding="utf-8")
        assert PreferenceStore(prefs_path).load().theme == "light"

    def test_failing_system_hint_is_ignored(self, prefs_path: Path) -> None:
        def broken() -> str:
            raise RuntimeError("no display")

        assert PreferenceStore(prefs_path, system_theme=broken).load().theme == "light"

    def test_unrecognised_system_hint_is_ignored(self, prefs_path: Path) -> None:
        assert PreferenceStore(prefs_path, system_theme=lambda: "sepia").load().theme == "light"

    @pytest.mark.parametrize(("stored", "expected"), [(8, 8), (0, 0), (-1, 0), ("8", 0), (True, 0)])
    def test_document_cache_size(self, prefs_path: Path, stored, expected: int) -> None:
        prefs_path.write_text(json.dumps({"document_cache_size": stored}), encoding="utf-8")
        assert PreferenceStore(prefs_path).load().document_cache_size == expected


class TestSave:
    def test_save_round_trips(self, prefs_path: Path) -> None:
        assert PreferenceStore(prefs_path).save("dark") is True
        assert json.loads(prefs_path.read_text(encoding="utf-8"))["theme"] == "dark"
        assert PreferenceStore(prefs_path, system_theme=lambda: "light").load().theme == "dark"

    def test_save_keeps_other_keys(self, prefs_path: Path) -> None:
        prefs_path.write_text(json.dumps({"theme": "light", "document_cache_size": 4}), encoding="utf-8")
        PreferenceStore(prefs_path).save("dark")
        assert json.loads(prefs_path.read_text(encoding="utf-8")) == {"theme": "dark", "document_cache_size": 4}

    def test_unusable_file_is_kept_aside_before_rewriting(self, prefs_path: Path, caplog) -> None:
        original = '{"theme": "dark", "document_cache_size": 16,'
        prefs_path.write_text(original, encoding="utf-8")
        store = PreferenceStore(prefs_path)
        with caplog.at_level(logging.WARNING, logger="learnhub.preferences"):
            assert store.save("dark") is True
        backup = prefs_path.with_name(prefs_path.name + ".bad")
        assert backup.read_text(encoding="utf-8") == original
        assert json.loads(prefs_path.read_text(encoding="utf-8")) == {"theme": "dark"}
        assert "kept it as" in caplog.text

    def test_invalid_theme_is_rejected(self, prefs_path: Path) -> None:
        store = PreferenceStore(prefs_path)
        with pytest.raises(ValueError):
            store.save("blue")
        assert store.current.theme == "light"
        assert not prefs_path.exists()

    def test_toggle_flips_and_persists(self, prefs_path: Path) -> None:
        store = PreferenceStore(prefs_path)
        store.load()
        assert store.toggle_theme().theme == "dark"
        assert store.toggle_theme().theme == "light"
        assert json.loads(prefs_path.read_text(encoding="utf-8"))["theme"] == "light"

    def test_unwritable_storage_still_changes_session_theme(self, tmp_path: Path, caplog) -> None:
        store = PreferenceStore(tmp_path / "missing-dir" / ".learnhub.json")
        store.load()
        with caplog.at_level(logging.WARNING, logger="learnhub.preferences"):
            prefs = store.toggle_theme()
        assert prefs.theme == "dark"
        assert store.current.theme == "dark"
        assert "Theme preference not saved" in caplog.text
        assert store.save("light") is False


class TestSearchQuery:
    def test_search_query_is_session_only(self, prefs_path: Path) -> None:
        store = PreferenceStore(prefs_path)
        store.load()
        assert store.set_search_query("web").search_query == "web"
        store.save("dark")
        payload = json.loads(prefs_path.read_text(encoding="utf-8"))
        assert "search_query" not in payload
        assert PreferenceStore(prefs_path).load().search_query == ""
