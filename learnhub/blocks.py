"""Structured representation of a rendered markdown document.

Every value here is a frozen dataclass holding tuples, so two renders of the
same text compare equal field by field.

Type hierarchy:
  Inline           - text run or inline construct (emphasis, link, code, ...)
  TableCell        - one header or body cell of a table
  ListItem         - one item of a list, holding nested blocks
  Block            - one structural unit (heading, paragraph, list, ...)
  RenderedDocument - ordered blocks of one file plus failure metadata
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    CODE = "code"
    TABLE = "table"
    QUOTE = "quote"
    RULE = "rule"
    IMAGE = "image"
    MATH = "math"
    # Unparsed source kept after a render failure.
    LITERAL = "literal"


class InlineKind(str, Enum):
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    STRIKE = "strike"
    CODE = "code"
    LINK = "link"
    IMAGE = "image"
    MATH = "math"
    SOFTBREAK = "softbreak"
    HARDBREAK = "hardbreak"


@dataclass(frozen=True)
class Inline:
    kind: InlineKind
    text: str = ""
    children: tuple[Inline, ...] = ()
    href: str | None = None
    title: str | None = None

    def plain_text(self) -> str:
        """Visible text of this inline, without markup."""
        if self.kind in (InlineKind.SOFTBREAK, InlineKind.HARDBREAK):
            return "\n" if self.kind is InlineKind.HARDBREAK else " "
        if self.children:
            return inlines_plain_text(self.children)
        return self.text


def inlines_plain_text(inlines: tuple[Inline, ...]) -> str:
    return "".join(inline.plain_text() for inline in inlines)


@dataclass(frozen=True)
class TableCell:
    inlines: tuple[Inline, ...] = ()
    align: str | None = None


@dataclass(frozen=True)
class ListItem:
    blocks: tuple[Block, ...] = ()


@dataclass(frozen=True)
class Block:
    """One structural unit of a document.

    Only the fields relevant to ``kind`` are populated:

    - heading: ``level``, ``text``, ``anchor_id``, ``inlines``
    - paragraph: ``inlines``
    - list: ``ordered``, ``start``, ``items``
    - code / literal: ``text``, ``language`` (code only)
    - math: ``text`` without the surrounding ``$$`` fences
    - table: ``header``, ``rows``
    - quote: ``children``
    - image: ``src``, ``alt``, ``title``
    """

    kind: BlockKind
    inlines: tuple[Inline, ...] = ()
    text: str = ""
    level: int = 0
    anchor_id: str | None = None
    language: str = ""
    ordered: bool = False
    start: int = 1
    items: tuple[ListItem, ...] = ()
    header: tuple[TableCell, ...] = ()
    rows: tuple[tuple[TableCell, ...], ...] = ()
    children: tuple[Block, ...] = ()
    src: str = ""
    alt: str = ""
    title: str | None = None
    line: int | None = None


@dataclass(frozen=True)
class RenderedDocument:
    path: str
    blocks: tuple[Block, ...] = ()
    partial_failure: str | None = None

    @property
    def title(self) -> str:
        """First level-1 heading, falling back to the first heading or the file name."""
        headings = self.headings()
        for block in headings:
            if block.level == 1:
                return block.text
        if headings:
            return headings[0].text
        return self.path.rsplit("/", 1)[-1]

    def headings(self) -> list[Block]:
        """Top-level heading blocks in document order.

        Headings nested inside quotes or list items are rendered but stay out of the outline.
        """
        return [block for block in self.blocks if block.kind is BlockKind.HEADING]

    def plain_text(self) -> str:
        """Serialise the document as plain text for copy and save actions."""
        parts = [_block_plain_text(block) for block in self.blocks]
        return "\n\n".join(part for part in parts if part) + "\n"


def _block_plain_text(block: Block, indent: str = "") -> str:
    kind = block.kind
    if kind is BlockKind.HEADING:
        return indent + block.text
    if kind is BlockKind.PARAGRAPH:
        return indent + inlines_plain_text(block.inlines)
    if kind is BlockKind.MATH:
        return "\n".join(indent + line for line in ["$$", *block.text.rstrip("\n").split("\n"), "$$"])
    if kind in (BlockKind.CODE, BlockKind.LITERAL):
        return "\n".join(indent + line for line in block.text.rstrip("\n").split("\n"))
    if kind is BlockKind.RULE:
        return indent + "-" * 20
    if kind is BlockKind.IMAGE:
        return indent + f"[{block.alt or 'image'}]"
    if kind is BlockKind.QUOTE:
        return "\n".join(_block_plain_text(child, indent + "> ") for child in block.children)
    if kind is BlockKind.TABLE:
        lines = ["\t".join(inlines_plain_text(cell.inlines) for cell in block.header)]
        for row in block.rows:
            lines.append("\t".join(inlines_plain_text(cell.inlines) for cell in row))
        return "\n".join(indent + line for line in lines)
    if kind is BlockKind.LIST:
        out: list[str] = []
        for offset, item in enumerate(block.items):
            marker = f"{block.start + offset}. " if block.ordered else "- "
            item_parts = [_block_plain_text(child, "") for child in item.blocks]
            item_text = "\n".join(part for part in item_parts if part)
            item_lines = item_text.split("\n") if item_text else [""]
            out.append(indent + marker + item_lines[0])
            pad = indent + " " * len(marker)
            out.extend(pad + line for line in item_lines[1:])
        return "\n".join(out)
    return ""
