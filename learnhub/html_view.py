"""HTML pages for the main panel, built from rendered blocks.

Every piece of document text and every attribute is escaped here, and the
page carries a ``script-src 'none'`` policy, so nothing from the corpus can
execute in the preview.
"""

from __future__ import annotations

import html

from learnhub.blocks import Block, BlockKind, Inline, InlineKind, RenderedDocument, TableCell
from learnhub.corpus import CorpusEntry

_PALETTES = {
    "light": {
        "fg": "#1f2937",
        "bg": "#f9fafb",
        "code-bg": "#e5e7eb",
        "border": "#d1d5db",
        "link": "#0b57d0",
        "muted": "#6b7280",
        "notice-bg": "rgba(217, 119, 6, 0.14)",
        "notice-border": "#d97706",
    },
    "dark": {
        "fg": "#e5e7eb",
        "bg": "#111827",
        "code-bg": "#1f2937",
        "border": "#374151",
        "link": "#8ab4f8",
        "muted": "#9ca3af",
        "notice-bg": "rgba(251, 191, 36, 0.2)",
        "notice-border": "#fbbf24",
    },
}
_ALLOWED_ALIGN = {"left", "right", "center"}


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def _page(title: str, body: str, theme: str) -> str:
    palette = _PALETTES.get(theme, _PALETTES["light"])
    variables = "\n".join(f"      --{name}: {value};" for name, value in palette.items())
    return f"""<!doctype html>
<html lang="en" data-theme="{_attr(theme)}">
<head>
  <meta charset="utf-8"/>
  <meta http-equiv="Content-Security-Policy" content="script-src 'none'; object-src 'none'"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{html.escape(title)}</title>
  <style>
    :root {{
      color-scheme: {"dark" if theme == "dark" else "light"};
{variables}
    }}
    html, body {{
      margin: 0;
      padding: 0;
      background: var(--bg);
      color: var(--fg);
      font-family: "Noto Sans", "DejaVu Sans", sans-serif;
      line-height: 1.55;
      font-size: 16px;
    }}
    main {{
      max-width: 980px;
      margin: 0 auto;
      padding: 1.1rem 1.4rem 4rem 1.4rem;
    }}
    a {{
      color: var(--link);
    }}
    pre, code {{
      font-family: "Noto Sans Mono", "DejaVu Sans Mono", monospace;
    }}
    code {{
      background: var(--code-bg);
      border-radius: 4px;
      padding: 0.1rem 0.35rem;
    }}
    pre {{
      background: var(--code-bg);
      border: 1px solid var(--border);
      border-radius: 6px;
      padding: 0.8rem;
      overflow: auto;
    }}
    pre > code {{
      background: transparent;
      padding: 0;
    }}
    table {{
      border-collapse: collapse;
    }}
    th, td {{
      border: 1px solid var(--border);
      padding: 0.4rem 0.6rem;
    }}
    blockquote {{
      margin: 0.8rem 0;
      padding: 0.1rem 1rem;
      border-left: 4px solid var(--border);
      color: var(--muted);
    }}
    img {{
      max-width: 100%;
    }}
    .learnhub-notice {{
      border: 1px solid var(--notice-border);
      background: var(--notice-bg);
      border-radius: 6px;
      padding: 0.5rem 0.8rem;
      margin-bottom: 1rem;
    }}
    .learnhub-placeholder {{
      min-height: 80vh;
      display: grid;
      place-items: center;
      color: var(--muted);
    }}
    .learnhub-overview li {{
      margin: 0.2rem 0;
    }}
  </style>
</head>
<body><main>
{body}
</main></body>
</html>
"""


def render_html(document: RenderedDocument, theme: str, title: str | None = None) -> str:
    """Render a full HTML page for ``document``."""
    parts: list[str] = []
    if document.partial_failure:
        parts.append(
            '<div class="learnhub-notice">Part of this document could not be formatted '
            f"and is shown as plain text ({html.escape(document.partial_failure)}).</div>"
        )
    parts.extend(_block_html(block) for block in document.blocks)
    return _page(title or document.title, "\n".join(parts), theme)


def placeholder_html(message: str, theme: str) -> str:
    """Render an empty-state page in the preview pane."""
    return _page("learnhub", f'<div class="learnhub-placeholder">{html.escape(message)}</div>', theme)


def subject_overview_html(subject: CorpusEntry, theme: str, category_path: str | None = None) -> str:
    """List the categories and files of a subject, optionally narrowed to one category."""
    parts = [f"<h1>{html.escape(subject.display_name)}</h1>"]
    categories = [c for c in subject.children if category_path is None or c.path == category_path]
    for category in categories:
        count = len(category.children)
        parts.append(
            f"<h2>{html.escape(category.display_name)} "
            f'<small>({count} document{"s" if count != 1 else ""})</small></h2>'
        )
        items = "".join(f"<li>{html.escape(file_entry.display_name)}</li>" for file_entry in category.children)
        parts.append(f'<ul class="learnhub-overview">{items}</ul>')
    return _page(subject.display_name, "\n".join(parts), theme)


def _block_html(block: Block) -> str:
    kind = block.kind
    if kind is BlockKind.HEADING:
        level = min(6, max(1, block.level))
        anchor = f' id="{_attr(block.anchor_id)}"' if block.anchor_id else ""
        return f"<h{level}{anchor}>{_inlines_html(block.inlines)}</h{level}>"
    if kind is BlockKind.PARAGRAPH:
        return f"<p>{_inlines_html(block.inlines)}</p>"
    if kind is BlockKind.CODE:
        language = f' class="language-{_attr(block.language)}"' if block.language else ""
        return f"<pre><code{language}>{html.escape(block.text)}</code></pre>"
    if kind is BlockKind.MATH:
        return f'<pre class="learnhub-math">$$\n{html.escape(block.text)}\n$$</pre>'
    if kind is BlockKind.LITERAL:
        return f'<pre class="learnhub-literal">{html.escape(block.text)}</pre>'
    if kind is BlockKind.RULE:
        return "<hr/>"
    if kind is BlockKind.IMAGE:
        title = f' title="{_attr(block.title)}"' if block.title else ""
        return f'<p><img src="{_attr(block.src)}" alt="{_attr(block.alt)}"{title}/></p>'
    if kind is BlockKind.QUOTE:
        inner = "\n".join(_block_html(child) for child in block.children)
        return f"<blockquote>\n{inner}\n</blockquote>"
    if kind is BlockKind.LIST:
        items = []
        for item in block.items:
            items.append("<li>" + "\n".join(_list_item_child_html(child) for child in item.blocks) + "</li>")
        if block.ordered:
            start = f' start="{block.start}"' if block.start != 1 else ""
            return f"<ol{start}>\n" + "\n".join(items) + "\n</ol>"
        return "<ul>\n" + "\n".join(items) + "\n</ul>"
    if kind is BlockKind.TABLE:
        head = "".join(_cell_html("th", cell) for cell in block.header)
        rows = "\n".join("<tr>" + "".join(_cell_html("td", cell) for cell in row) + "</tr>" for row in block.rows)
        return f"<table>\n<thead><tr>{head}</tr></thead>\n<tbody>\n{rows}\n</tbody>\n</table>"
    return ""


def _list_item_child_html(block: Block) -> str:
    # Tight list items read better without paragraph margins.
    if block.kind is BlockKind.PARAGRAPH:
        return _inlines_html(block.inlines)
    return _block_html(block)


def _cell_html(tag: str, cell: TableCell) -> str:
    align = f' style="text-align:{cell.align}"' if cell.align in _ALLOWED_ALIGN else ""
    return f"<{tag}{align}>{_inlines_html(cell.inlines)}</{tag}>"


def _inlines_html(inlines: tuple[Inline, ...]) -> str:
    return "".join(_inline_html(inline) for inline in inlines)


def _inline_html(inline: Inline) -> str:
    kind = inline.kind
    if kind is InlineKind.TEXT:
        return html.escape(inline.text)
    if kind is InlineKind.CODE:
        return f"<code>{html.escape(inline.text)}</code>"
    if kind is InlineKind.MATH:
        return f'<span class="learnhub-math">{html.escape(inline.text)}</span>'
    if kind is InlineKind.SOFTBREAK:
        return "\n"
    if kind is InlineKind.HARDBREAK:
        return "<br/>"
    if kind is InlineKind.EMPHASIS:
        return f"<em>{_inlines_html(inline.children)}</em>"
    if kind is InlineKind.STRONG:
        return f"<strong>{_inlines_html(inline.children)}</strong>"
    if kind is InlineKind.STRIKE:
        return f"<s>{_inlines_html(inline.children)}</s>"
    if kind is InlineKind.LINK:
        title = f' title="{_attr(inline.title)}"' if inline.title else ""
        return f'<a href="{_attr(inline.href or "")}"{title}>{_inlines_html(inline.children)}</a>'
    if kind is InlineKind.IMAGE:
        title = f' title="{_attr(inline.title)}"' if inline.title else ""
        return f'<img src="{_attr(inline.href or "")}" alt="{_attr(inline.text)}"{title}/>'
    return html.escape(inline.plain_text())
