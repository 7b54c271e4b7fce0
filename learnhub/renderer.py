"""Markdown text to structured blocks, via markdown-it-py."""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.dollarmath import dollarmath_plugin

from learnhub.blocks import (
    Block,
    BlockKind,
    Inline,
    InlineKind,
    ListItem,
    RenderedDocument,
    TableCell,
    inlines_plain_text,
)
from learnhub.corpus import relative_reference
from learnhub.toc import AnchorRegistry

LOG = logging.getLogger(__name__)

_INLINE_CONTAINERS = {
    "em": InlineKind.EMPHASIS,
    "strong": InlineKind.STRONG,
    "s": InlineKind.STRIKE,
}
_INLINE_LEAVES = {
    "text": InlineKind.TEXT,
    "code_inline": InlineKind.CODE,
    # Only reachable if html is ever re-enabled; keep such markup as literal text.
    "html_inline": InlineKind.TEXT,
}
# Inline math keeps its source delimiters; nothing typesets it in the preview.
_MATH_DELIMITERS = {
    "math_inline": "$",
    "math_inline_double": "$$",
}


class MarkdownRenderer:
    """Converts markdown text into a ``RenderedDocument``.

    Raw HTML is disabled in the parser, so tags in the source (including
    ``<script>``) come through as literal text and are escaped by the view.
    """

    def __init__(self) -> None:
        self._md = MarkdownIt(
            "commonmark",
            {"html": False},
        ).enable("table").enable("strikethrough")
        # TeX stays out of emphasis parsing. A $ next to a space or a digit never
        # opens or closes inline math, so prices and shell variables stay prose.
        self._md.use(dollarmath_plugin, allow_space=False, allow_digits=False)

    def render(self, markdown_text: str, path: str = "") -> RenderedDocument:
        """Render ``markdown_text`` belonging to the corpus file at ``path``.

        Never raises for bad input: if a construct cannot be converted, the
        blocks before it are kept and the rest of the source becomes one
        literal block.
        """
        source_lines = markdown_text.splitlines()
        try:
            root = SyntaxTreeNode(self._md.parse(markdown_text))
        except Exception as exc:
            LOG.warning("Could not parse %s, showing it as plain text: %s", path or "<document>", exc)
            literal = (Block(BlockKind.LITERAL, text=markdown_text, line=0),) if markdown_text else ()
            return RenderedDocument(path, literal, f"parse failed: {exc}")

        builder = _BlockBuilder(path, AnchorRegistry())
        blocks: list[Block] = []
        for node in root.children:
            try:
                blocks.extend(builder.blocks_for(node))
            except Exception as exc:
                start = node.map[0] if node.map else 0
                remainder = "\n".join(source_lines[start:])
                LOG.warning(
                    "Could not render %s from line %d, showing the rest as plain text: %s",
                    path or "<document>",
                    start + 1,
                    exc,
                )
                if remainder:
                    blocks.append(Block(BlockKind.LITERAL, text=remainder, line=start))
                return RenderedDocument(path, tuple(blocks), f"line {start + 1}: {exc}")
        return RenderedDocument(path, tuple(blocks))


class _BlockBuilder:
    """Walks a markdown-it syntax tree for one document."""

    def __init__(self, path: str, anchors: AnchorRegistry) -> None:
        self.path = path
        self.anchors = anchors

    def blocks_for(self, node: SyntaxTreeNode) -> list[Block]:
        handler = getattr(self, f"_{node.type}", None)
        if handler is None:
            LOG.debug("Unhandled markdown node %s in %s", node.type, self.path)
            content = node.content if node.type != "root" else ""
            return [Block(BlockKind.LITERAL, text=content, line=_line(node))] if content else []
        return handler(node)

    def _children(self, node: SyntaxTreeNode) -> tuple[Block, ...]:
        blocks: list[Block] = []
        for child in node.children:
            blocks.extend(self.blocks_for(child))
        return tuple(blocks)

    def _heading(self, node: SyntaxTreeNode) -> list[Block]:
        inlines = self._inline_children(node)
        text = inlines_plain_text(inlines).strip()
        return [
            Block(
                BlockKind.HEADING,
                inlines=inlines,
                text=text,
                level=int(node.tag[1:]),
                anchor_id=self.anchors.claim(text),
                line=_line(node),
            )
        ]

    def _paragraph(self, node: SyntaxTreeNode) -> list[Block]:
        inlines = self._inline_children(node)
        meaningful = [inline for inline in inlines if not (inline.kind is InlineKind.TEXT and not inline.text.strip())]
        if len(meaningful) == 1 and meaningful[0].kind is InlineKind.IMAGE:
            image = meaningful[0]
            return [
                Block(
                    BlockKind.IMAGE,
                    src=image.href or "",
                    alt=image.text,
                    title=image.title,
                    line=_line(node),
                )
            ]
        return [Block(BlockKind.PARAGRAPH, inlines=inlines, line=_line(node))]

    def _bullet_list(self, node: SyntaxTreeNode) -> list[Block]:
        items = tuple(ListItem(self._children(item)) for item in node.children)
        return [Block(BlockKind.LIST, ordered=False, items=items, line=_line(node))]

    def _ordered_list(self, node: SyntaxTreeNode) -> list[Block]:
        items = tuple(ListItem(self._children(item)) for item in node.children)
        start = int(node.attrs.get("start", 1))
        return [Block(BlockKind.LIST, ordered=True, start=start, items=items, line=_line(node))]

    def _fence(self, node: SyntaxTreeNode) -> list[Block]:
        # Language tag is display metadata only; nothing is ever executed.
        info = node.info.strip().split(maxsplit=1)[0] if node.info and node.info.strip() else ""
        return [Block(BlockKind.CODE, text=node.content, language=info, line=_line(node))]

    def _code_block(self, node: SyntaxTreeNode) -> list[Block]:
        return [Block(BlockKind.CODE, text=node.content, line=_line(node))]

    def _math_block(self, node: SyntaxTreeNode) -> list[Block]:
        return [Block(BlockKind.MATH, text=node.content.strip("\n"), line=_line(node))]

    _math_block_label = _math_block

    def _blockquote(self, node: SyntaxTreeNode) -> list[Block]:
        return [Block(BlockKind.QUOTE, children=self._children(node), line=_line(node))]

    def _hr(self, node: SyntaxTreeNode) -> list[Block]:
        return [Block(BlockKind.RULE, line=_line(node))]

    def _table(self, node: SyntaxTreeNode) -> list[Block]:
        header: tuple[TableCell, ...] = ()
        rows: list[tuple[TableCell, ...]] = []
        for section in node.children:
            for row in section.children:
                cells = tuple(self._table_cell(cell) for cell in row.children)
                if section.type == "thead" and not header:
                    header = cells
                else:
                    rows.append(cells)
        return [Block(BlockKind.TABLE, header=header, rows=tuple(rows), line=_line(node))]

    def _table_cell(self, node: SyntaxTreeNode) -> TableCell:
        style = str(node.attrs.get("style", ""))
        align = None
        if style.startswith("text-align:"):
            align = style.split(":", 1)[1].strip() or None
        return TableCell(self._inline_children(node), align)

    def _inline_children(self, node: SyntaxTreeNode) -> tuple[Inline, ...]:
        inlines: list[Inline] = []
        for child in node.children:
            if child.type == "inline":
                inlines.extend(self._inlines(child.children))
        return tuple(inlines)

    def _inlines(self, nodes: list[SyntaxTreeNode]) -> list[Inline]:
        inlines: list[Inline] = []
        for node in nodes:
            kind = node.type
            if kind in _INLINE_LEAVES:
                if node.content:
                    inlines.append(Inline(_INLINE_LEAVES[kind], text=node.content))
            elif kind in _MATH_DELIMITERS:
                fence = _MATH_DELIMITERS[kind]
                inlines.append(Inline(InlineKind.MATH, text=f"{fence}{node.content}{fence}"))
            elif kind in _INLINE_CONTAINERS:
                inlines.append(Inline(_INLINE_CONTAINERS[kind], children=tuple(self._inlines(node.children))))
            elif kind == "softbreak":
                inlines.append(Inline(InlineKind.SOFTBREAK))
            elif kind == "hardbreak":
                inlines.append(Inline(InlineKind.HARDBREAK))
            elif kind == "link":
                inlines.append(
                    Inline(
                        InlineKind.LINK,
                        children=tuple(self._inlines(node.children)),
                        href=relative_reference(self.path, str(node.attrs.get("href", ""))),
                        title=_optional_attr(node, "title"),
                    )
                )
            elif kind == "image":
                inlines.append(
                    Inline(
                        InlineKind.IMAGE,
                        text=node.content,
                        href=relative_reference(self.path, str(node.attrs.get("src", ""))),
                        title=_optional_attr(node, "title"),
                    )
                )
            else:
                LOG.debug("Unhandled inline node %s in %s", kind, self.path)
                if node.content:
                    inlines.append(Inline(InlineKind.TEXT, text=node.content))
        return inlines


def _line(node: SyntaxTreeNode) -> int | None:
    return node.map[0] if node.map else None


def _optional_attr(node: SyntaxTreeNode, name: str) -> str | None:
    value = node.attrs.get(name)
    return str(value) if value else None


class DocumentCache:
    """Least-recently-used cache of rendered documents.

    Keys combine the corpus path with a digest of the text, so an edited file
    on disk never returns a stale render. Capacity 0 disables caching.
    """

    def __init__(self, capacity: int = 0) -> None:
        self.capacity = max(0, int(capacity))
        self._entries: OrderedDict[tuple[str, str], RenderedDocument] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _key(path: str, markdown_text: str) -> tuple[str, str]:
        digest = hashlib.sha1(markdown_text.encode("utf-8", errors="replace")).hexdigest()
        return path, digest

    def get_or_render(self, renderer: MarkdownRenderer, path: str, markdown_text: str) -> RenderedDocument:
        if self.capacity == 0:
            return renderer.render(markdown_text, path)
        key = self._key(path, markdown_text)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            return cached
        document = renderer.render(markdown_text, path)
        self._entries[key] = document
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return document

    def clear(self) -> None:
        self._entries.clear()
