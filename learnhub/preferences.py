"""Cross-session user preferences (currently just the theme)."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from learnhub.errors import StorageUnavailableError

LOG = logging.getLogger(__name__)

PREFERENCES_FILE_NAME = ".learnhub.json"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


def _preferences_file_path() -> Path:
    return Path.home() / PREFERENCES_FILE_NAME


@dataclass(frozen=True)
class Preferences:
    theme: str = DEFAULT_THEME
    # Never written to disk; lives for the session only.
    search_query: str = ""
    # Read from the preferences file; 0 disables the rendered-document cache.
    document_cache_size: int = 0


class PreferenceStore:
    """Loads preferences at startup and persists the theme on every change.

    Writes are best-effort: when the file cannot be written the in-memory
    preferences still change for the rest of the session.
    """

    def __init__(
        self,
        path: Path | None = None,
        system_theme: Callable[[], str | None] | None = None,
    ) -> None:
        self.path = path if path is not None else _preferences_file_path()
        self._system_theme = system_theme
        self._current = Preferences()

    @property
    def current(self) -> Preferences:
        return self._current

    def load(self) -> Preferences:
        """Resolve theme from the stored value, then the system hint, then ``light``."""
        payload = self._read_payload() or {}
        theme = payload.get("theme")
        if theme not in THEMES:
            theme = self._system_hint() or DEFAULT_THEME
        cache_size = payload.get("document_cache_size", 0)
        if not isinstance(cache_size, int) or isinstance(cache_size, bool) or cache_size < 0:
            cache_size = 0
        self._current = Preferences(theme=theme, document_cache_size=cache_size)
        return self._current

    def save(self, theme: str) -> bool:
        """Persist ``theme``; returns False if storage was unavailable."""
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}; expected one of {', '.join(THEMES)}")
        self._current = replace(self._current, theme=theme)
        try:
            self._write_theme(theme)
        except StorageUnavailableError as exc:
            LOG.warning("Theme preference not saved: %s", exc)
            return False
        return True

    def toggle_theme(self) -> Preferences:
        next_theme = "dark" if self._current.theme == "light" else "light"
        self.save(next_theme)
        return self._current

    def set_search_query(self, query: str) -> Preferences:
        self._current = replace(self._current, search_query=query)
        return self._current

    def _system_hint(self) -> str | None:
        if self._system_theme is None:
            return None
        try:
            hint = self._system_theme()
        except Exception as exc:
            LOG.debug("System colour scheme unavailable: %s", exc)
            return None
        return hint if hint in THEMES else None

    def _read_payload(self) -> dict | None:
        """Stored JSON object; ``{}`` when there is no file, None when it cannot be used."""
        try:
            raw = self.path.read_text(encoding="utf-8")
            payload = json.loads(raw)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            # Unreadable or malformed preferences should not block browsing.
            LOG.warning("Ignoring preferences file %s: %s", self.path, exc)
            return None
        if not isinstance(payload, dict):
            LOG.warning("Ignoring preferences file %s: expected a JSON object", self.path)
            return None
        return payload

    def _write_theme(self, theme: str) -> None:
        payload = self._read_payload()
        if payload is None:
            self._set_aside_unusable_file()
            payload = {}
        payload["theme"] = theme
        try:
            self.path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as exc:
            raise StorageUnavailableError(f"could not write {self.path}: {exc}") from exc

    def _set_aside_unusable_file(self) -> None:
        backup = self.path.with_name(self.path.name + ".bad")
        try:
            self.path.replace(backup)
        except OSError as exc:
            raise StorageUnavailableError(f"could not move unusable {self.path} aside: {exc}") from exc
        LOG.warning("Preferences file %s could not be used; kept it as %s", self.path, backup)
