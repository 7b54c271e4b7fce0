"""Corpus discovery and the immutable subject/category/file index."""

from __future__ import annotations

import json
import logging
import os
import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from learnhub.errors import CorpusPathError

LOG = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("notes", "questions", "quiz", "real-problems", "interview-questions")
CATEGORY_LABELS = {
    "notes": "Notes",
    "questions": "Questions",
    "quiz": "Quiz",
    "real-problems": "Real Problems",
    "interview-questions": "Interview Questions",
}
ASSET_DIR_NAME = "img"
DOCUMENT_SUFFIX = ".md"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+:")


class EntryKind(str, Enum):
    SUBJECT = "subject"
    CATEGORY = "category"
    FILE = "file"


@dataclass(frozen=True)
class CorpusEntry:
    kind: EntryKind
    name: str
    display_name: str
    path: str
    children: tuple[CorpusEntry, ...] = ()


@dataclass(frozen=True)
class CorpusNotice:
    """A listing entry that was skipped while building the index."""

    path: str
    reason: str


@dataclass(frozen=True)
class CorpusIndex:
    subjects: tuple[CorpusEntry, ...] = ()
    notices: tuple[CorpusNotice, ...] = ()
    assets: tuple[str, ...] = ()
    _by_path: dict[str, CorpusEntry] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.subjects

    def resolve(self, path: str) -> CorpusEntry | None:
        """Return the entry whose path is ``path`` (any kind), or None."""
        return self._by_path.get(normalize_listing_path(path))

    def files(self) -> list[CorpusEntry]:
        """All file entries in sidebar order."""
        return [
            file_entry
            for subject in self.subjects
            for category in subject.children
            for file_entry in category.children
        ]

    def subject_of(self, path: str) -> CorpusEntry | None:
        head = normalize_listing_path(path).split("/", 1)[0]
        entry = self._by_path.get(head)
        if entry is not None and entry.kind is EntryKind.SUBJECT:
            return entry
        return None


def normalize_listing_path(raw: str) -> str:
    """Normalize separators and strip leading ``./`` and ``/`` from a listing path."""
    text = raw.strip().replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text.strip("/")


def display_name_for_category(name: str) -> str:
    label = CATEGORY_LABELS.get(name.casefold())
    if label:
        return label
    return _humanize(name)


def display_name_for_file(name: str) -> str:
    stem = name[: -len(DOCUMENT_SUFFIX)] if name.lower().endswith(DOCUMENT_SUFFIX) else name
    return _humanize(stem) or name


def _humanize(text: str) -> str:
    words = text.replace("_", " ").replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _segment_problem(segment: str) -> str | None:
    if not segment:
        return "empty path segment"
    if segment in {".", ".."}:
        return "relative path segment"
    return None


def build_corpus_index(listing, categories: Iterable[str] = DEFAULT_CATEGORIES) -> CorpusIndex:
    """Validate a listing against the ``subject/category/file.md`` convention.

    Entries that break the convention are skipped and reported as notices;
    a listing that cannot be iterated or has no valid entries yields an
    empty index.
    """
    allowed = {name.casefold() for name in categories}
    notices: list[CorpusNotice] = []
    assets: list[str] = []
    # subject -> category -> ordered file names; dicts keep first-seen order.
    grouped: dict[str, dict[str, list[str]]] = {}
    seen_files: set[str] = set()

    def skip(path: str, reason: str) -> None:
        LOG.warning("Skipping corpus entry %r: %s", path, reason)
        notices.append(CorpusNotice(path, reason))

    if listing is None:
        LOG.warning("Corpus listing is empty; no content to show")
        return CorpusIndex()
    try:
        raw_items = list(listing)
    except TypeError:
        LOG.warning("Corpus listing of type %s is not iterable; no content to show", type(listing).__name__)
        return CorpusIndex()

    for raw in raw_items:
        if not isinstance(raw, str):
            skip(repr(raw), "listing entry is not a path string")
            continue
        path = normalize_listing_path(raw)
        if not path:
            continue
        segments = path.split("/")
        if any(segment.startswith(".") and segment not in {".", ".."} for segment in segments):
            # Dotfiles and VCS folders are not part of the corpus.
            LOG.debug("Ignoring hidden corpus entry %r", path)
            continue
        problem = next((p for p in map(_segment_problem, segments) if p), None)
        if problem:
            skip(path, problem)
            continue
        if len(segments) >= 2 and segments[1] == ASSET_DIR_NAME:
            if len(segments) == 3:
                assets.append(path)
            else:
                skip(path, "assets must sit directly under the img folder")
            continue
        if len(segments) != 3:
            skip(path, "expected subject/category/file layout")
            continue
        subject, category, file_name = segments
        if category.casefold() not in allowed:
            skip(path, f"unknown category {category!r}")
            continue
        if not file_name.lower().endswith(DOCUMENT_SUFFIX):
            skip(path, "not a markdown document")
            continue
        if path in seen_files:
            skip(path, "duplicate file path")
            continue
        seen_files.add(path)
        grouped.setdefault(subject, {}).setdefault(category, []).append(file_name)

    by_path: dict[str, CorpusEntry] = {}
    subjects: list[CorpusEntry] = []
    for subject in sorted(grouped, key=lambda name: (name.casefold(), name)):
        category_entries: list[CorpusEntry] = []
        for category, file_names in grouped[subject].items():
            category_path = f"{subject}/{category}"
            file_entries = tuple(
                CorpusEntry(EntryKind.FILE, name, display_name_for_file(name), f"{category_path}/{name}")
                for name in file_names
            )
            category_entries.append(
                CorpusEntry(
                    EntryKind.CATEGORY,
                    category,
                    display_name_for_category(category),
                    category_path,
                    file_entries,
                )
            )
        category_entries.sort(key=lambda entry: (entry.display_name.casefold(), entry.name))
        subjects.append(CorpusEntry(EntryKind.SUBJECT, subject, subject, subject, tuple(category_entries)))

    for subject_entry in subjects:
        by_path[subject_entry.path] = subject_entry
        for category_entry in subject_entry.children:
            by_path[category_entry.path] = category_entry
            for file_entry in category_entry.children:
                by_path[file_entry.path] = file_entry

    if not subjects:
        LOG.warning("Corpus listing has no valid documents; no content to show")
    else:
        LOG.info("Indexed %d document(s) across %d subject(s)", len(seen_files), len(subjects))
    return CorpusIndex(tuple(subjects), tuple(notices), tuple(assets), by_path)


def scan_corpus_directory(root: Path) -> list[str]:
    """Return every file under ``root`` as a relative posix path.

    Directories and files are visited in case-insensitive name order so the
    listing, and therefore file order inside categories, is stable.
    """
    if not root.is_dir():
        return []

    def on_walk_error(_err) -> None:
        # Unreadable folders are expected in some trees; skip quietly.
        return

    listing: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error, followlinks=False):
        dirnames.sort(key=str.casefold)
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        for file_name in sorted(filenames, key=str.casefold):
            listing.append(file_name if rel_dir == "." else f"{rel_dir}/{file_name}")
    return listing


def load_manifest(manifest_path: Path) -> list[str]:
    """Read a listing from a JSON array, a JSON ``{"files": [...]}`` object, or a text file."""
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        LOG.warning("Could not read corpus manifest %s: %s", manifest_path, exc)
        return []

    stripped = raw.strip()
    if stripped.startswith(("[", "{")):
        try:
            payload = json.loads(stripped)
        except ValueError as exc:
            LOG.warning("Corpus manifest %s is not valid JSON: %s", manifest_path, exc)
            return []
        if isinstance(payload, dict):
            payload = payload.get("files", [])
        if not isinstance(payload, list):
            LOG.warning("Corpus manifest %s has no file list", manifest_path)
            return []
        return [item for item in payload if isinstance(item, str)]

    lines = [line.strip() for line in raw.splitlines()]
    return [line for line in lines if line and not line.startswith("#")]


class CorpusDirectory:
    """Read-only access to the documents of a corpus rooted at a directory."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def listing(self) -> list[str]:
        return scan_corpus_directory(self.root)

    def document_path(self, path: str) -> Path:
        """Map a corpus-relative path to a file under the root."""
        candidate = (self.root / normalize_listing_path(path)).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise CorpusPathError(f"{path!r} is outside the corpus root")
        return candidate

    def corpus_path_for(self, local_path: Path) -> str | None:
        """Map a file system path back to its corpus path; ``""`` is the root itself."""
        try:
            relative = local_path.resolve().relative_to(self.root)
        except ValueError:
            return None
        text = relative.as_posix()
        return "" if text == "." else text

    def read_text(self, path: str) -> str:
        return self.document_path(path).read_text(encoding="utf-8", errors="replace")

    def exists(self, path: str) -> bool:
        try:
            return self.document_path(path).is_file()
        except CorpusPathError:
            return False


def relative_reference(document_path: str, reference: str) -> str:
    """Resolve a relative link target against the directory of ``document_path``.

    URLs with a scheme, root-absolute paths and bare fragments are returned
    unchanged.
    """
    target = reference.strip()
    if not target or target.startswith(("#", "/")) or _has_scheme(target):
        return target
    base_dir = posixpath.dirname(normalize_listing_path(document_path))
    joined = posixpath.normpath(posixpath.join(base_dir, target)) if base_dir else posixpath.normpath(target)
    return joined


def _has_scheme(target: str) -> bool:
    return _SCHEME_RE.match(target) is not None
