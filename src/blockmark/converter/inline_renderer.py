"""Inline rendering: normalized inline AST nodes to inline-markup strings.

This is the inverse direction of :mod:`blockmark.converter.inline_markup`.
It flattens the inline children of a paragraph, heading, list item or table
cell into the editor's inline markup:

==============  ==========================
node            markup
==============  ==========================
text            entity-escaped text
strong          ``<b>…</b>``
emphasis        ``<i>…</i>``
inline_code     ``<code>…</code>``
link            ``<a href="…">…</a>``
break           ``<br>``
softbreak       newline
html_inline     raw HTML, verbatim
image           its alt text
==============  ==========================

Any other node kind falls through to its children, so content is never
dropped just because its wrapper is unrecognized (``strikethrough`` is the
common case).
"""

from __future__ import annotations

import html
from collections.abc import Callable

RenderInline = Callable[[list[dict]], str]
"""Signature shared by every collaborator that accepts an inline renderer."""


def render_inline(nodes: list[dict] | None) -> str:
    """Render a sequence of inline AST nodes to an inline-markup string."""
    if not nodes:
        return ""

    parts: list[str] = []

    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type", "")

        if node_type == "text":
            parts.append(html.escape(node.get("raw", ""), quote=False))

        elif node_type == "strong":
            parts.append(f"<b>{render_inline(node.get('children'))}</b>")

        elif node_type == "emphasis":
            parts.append(f"<i>{render_inline(node.get('children'))}</i>")

        elif node_type == "inline_code":
            code = html.escape(node.get("raw", ""), quote=False)
            parts.append(f"<code>{code}</code>")

        elif node_type == "link":
            url = node.get("attrs", {}).get("url", "")
            label = render_inline(node.get("children"))
            parts.append(f'<a href="{html.escape(url, quote=True)}">{label}</a>')

        elif node_type == "break":
            parts.append("<br>")

        elif node_type == "softbreak":
            parts.append("\n")

        elif node_type == "html_inline":
            parts.append(node.get("raw", ""))

        elif node_type == "image":
            parts.append(html.escape(extract_text(node.get("children", [])), quote=False))

        elif "children" in node:
            parts.append(render_inline(node["children"]))

        elif "raw" in node:
            parts.append(html.escape(str(node["raw"]), quote=False))

    return "".join(parts)


def extract_text(nodes: list[dict] | None) -> str:
    """Recursively extract plain text from AST nodes, ignoring formatting."""
    if not nodes:
        return ""
    parts: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type", "")
        if node_type == "text":
            parts.append(node.get("raw", ""))
        elif node_type in ("softbreak", "break"):
            parts.append("\n")
        elif "children" in node:
            parts.append(extract_text(node["children"]))
        elif "raw" in node:
            parts.append(str(node["raw"]))
    return "".join(parts)
