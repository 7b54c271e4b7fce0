"""Heading anchors and the nested table of contents."""

from __future__ import annotations

import re
from dataclasses import dataclass

from learnhub.blocks import RenderedDocument

_PUNCTUATION_RE = re.compile(r"[^\w\s-]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")
FALLBACK_SLUG = "section"


def slugify(text: str) -> str:
    """Derive a URL-safe slug: lowercase, punctuation dropped, whitespace to hyphens."""
    slug = _PUNCTUATION_RE.sub("", text.strip().lower())
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


class AnchorRegistry:
    """Hands out anchor ids that are unique within one document."""

    def __init__(self) -> None:
        self._issued: set[str] = set()
        self._next_suffix: dict[str, int] = {}

    def claim(self, text: str) -> str:
        base = slugify(text)
        if base not in self._issued:
            self._issued.add(base)
            return base
        suffix = self._next_suffix.get(base, 2)
        candidate = f"{base}-{suffix}"
        # A literal heading such as "Intro 2" may already own "intro-2".
        while candidate in self._issued:
            suffix += 1
            candidate = f"{base}-{suffix}"
        self._next_suffix[base] = suffix + 1
        self._issued.add(candidate)
        return candidate


@dataclass(frozen=True)
class TocEntry:
    text: str
    level: int
    anchor_id: str
    children: tuple[TocEntry, ...] = ()


class _OpenEntry:
    __slots__ = ("text", "level", "anchor_id", "children")

    def __init__(self, text: str, level: int, anchor_id: str) -> None:
        self.text = text
        self.level = level
        self.anchor_id = anchor_id
        self.children: list[_OpenEntry] = []

    def freeze(self) -> TocEntry:
        return TocEntry(self.text, self.level, self.anchor_id, tuple(child.freeze() for child in self.children))


def build_toc(document: RenderedDocument) -> tuple[TocEntry, ...]:
    """Nest the document's headings into an outline.

    A heading becomes a child of the most recent heading with a lower level
    that is still open; skipped levels (H1 then H3) nest directly under that
    ancestor without inventing intermediate entries.
    """
    roots: list[_OpenEntry] = []
    stack: list[_OpenEntry] = []
    for block in document.headings():
        entry = _OpenEntry(block.text, block.level, block.anchor_id or slugify(block.text))
        while stack and stack[-1].level >= entry.level:
            stack.pop()
        if stack:
            stack[-1].children.append(entry)
        else:
            roots.append(entry)
        stack.append(entry)
    return tuple(entry.freeze() for entry in roots)


def flatten_toc(entries: tuple[TocEntry, ...]) -> list[TocEntry]:
    """Pre-order traversal of an outline."""
    flat: list[TocEntry] = []
    for entry in entries:
        flat.append(entry)
        flat.extend(flatten_toc(entry.children))
    return flat


def find_toc_entry(entries: tuple[TocEntry, ...], anchor_id: str) -> TocEntry | None:
    for entry in flatten_toc(entries):
        if entry.anchor_id == anchor_id:
            return entry
    return None
