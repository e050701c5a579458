"""Convert normalized AST nodes to block-document blocks.

Each top-level node yields zero or one block:

- heading -> header (level clamped to 1-6)
- paragraph -> paragraph; a lone image -> image; a lone
  ``[Embedded content](url)`` link -> embed; ``- [ ] text`` -> checklist
- list -> list (ordered / unordered / checklist) or, for a flat task list,
  a checklist block
- code -> code with language
- blockquote -> quote, with a trailing ``— Author`` line split into caption;
  ``⚠️ **Title**`` quotes -> warning
- thematic_break -> delimiter
- table -> table (delegates to tables.py)
- image -> image
- html -> raw, except the marker comments written for unknown blocks
- anything else with text -> paragraph tagged ``[kind]``

After the walk, adjacent checklist blocks recovered from paragraph text are
merged, and an italic paragraph directly after an image or embed becomes its
caption.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable as _Callable

from blockmark.config import BlockmarkConfig
from blockmark.converter.inline_renderer import RenderInline, extract_text, render_inline
from blockmark.converter.lists import list_style, reconstruct_list
from blockmark.converter.tables import extract_table
from blockmark.models import ConversionWarning

# ``- [ ] text`` left in paragraph text (escaped bullets, hand-written HTML).
# Prose that starts with this literal sequence is misread as a checklist.
_CHECKLIST_TEXT_RE = re.compile(r"^- \[([ xX])\] (.*)$", re.DOTALL)

_ATTRIBUTION_RE = re.compile(r"^(?:—|–|--)\s*(.+)$")

_WARNING_TITLE_RE = re.compile(r"^⚠️?\s*<b>(.*?)</b>\s*$")

_ITALIC_LINE_RE = re.compile(r"^<i>((?:(?!</?i>).)*)</i>$", re.DOTALL)

# Comments written by the serializer for block types it could not render.
_MARKER_COMMENT_RE = re.compile(
    r"^<!--\s*(?:Unknown|Unsupported) block type:[^>]*?-->$",
    re.IGNORECASE,
)

EMBED_LABEL = "Embedded content"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_blocks(
    nodes: list[dict],
    config: BlockmarkConfig,
    render: RenderInline = render_inline,
) -> tuple[list[dict], list[ConversionWarning]]:
    """Convert normalized AST nodes to blocks.

    Parameters
    ----------
    nodes:
        Top-level nodes from a :class:`~blockmark.converter.parsers.MarkdownParser`.
    config:
        Converter configuration.
    render:
        Inline renderer used for every text-bearing node.

    Returns
    -------
    tuple[list[dict], list[ConversionWarning]]
        (blocks, warnings)
    """
    ctx = _BuildContext(config, render)
    for node in nodes:
        if isinstance(node, dict):
            _process_node(node, ctx)

    blocks = ctx.blocks
    if config.merge_checklists:
        blocks = _merge_checklists(blocks, ctx.checklist_ids)
    blocks = _attach_captions(blocks)
    return blocks, ctx.warnings


class _BuildContext:
    """Mutable accumulator for the block building pass."""

    __slots__ = ("blocks", "checklist_ids", "config", "render", "warnings")

    def __init__(self, config: BlockmarkConfig, render: RenderInline) -> None:
        self.config = config
        self.render = render
        self.blocks: list[dict] = []
        self.warnings: list[ConversionWarning] = []
        # id() of checklist blocks recovered from paragraph text
        self.checklist_ids: set[int] = set()

    def add_block(self, block_type: str, data: dict) -> dict:
        block = {"type": block_type, "data": data}
        self.blocks.append(block)
        return block

    def add_warning(self, code: str, message: str, **context: object) -> None:
        self.warnings.append(ConversionWarning(
            code=code, message=message, context=dict(context),
        ))


# ---------------------------------------------------------------------------
# Node dispatch
# ---------------------------------------------------------------------------

def _process_node(node: dict, ctx: _BuildContext) -> None:
    node_type = node.get("type", "")
    handler = _NODE_HANDLERS.get(node_type)
    if handler is not None:
        handler(node, ctx)
        return
    _build_other(node, ctx)


# ---------------------------------------------------------------------------
# Node builders
# ---------------------------------------------------------------------------

def _build_heading(node: dict, ctx: _BuildContext) -> None:
    text = ctx.render(node.get("children") or []).strip()
    if not text:
        return
    level = (node.get("attrs") or {}).get("level", 1)
    try:
        level = int(level)
    except (TypeError, ValueError):
        level = 1
    ctx.add_block("header", {"text": text, "level": max(1, min(6, level))})


def _build_paragraph(node: dict, ctx: _BuildContext) -> None:
    children = [c for c in node.get("children") or [] if isinstance(c, dict)]
    meaningful = [
        c for c in children
        if not (c.get("type") == "text" and not c.get("raw", "").strip())
    ]

    if len(meaningful) == 1 and meaningful[0].get("type") == "image":
        _build_image(meaningful[0], ctx)
        return

    if len(meaningful) == 1 and meaningful[0].get("type") == "link":
        link = meaningful[0]
        if extract_text(link.get("children") or []).strip() == EMBED_LABEL:
            source = (link.get("attrs") or {}).get("url", "")
            if source:
                ctx.add_block("embed", {"source": source})
                return

    text = ctx.render(children)
    if not text.strip():
        return

    match = _CHECKLIST_TEXT_RE.match(text)
    if match:
        block = ctx.add_block("checklist", {
            "items": [{"text": match.group(2).strip(), "checked": match.group(1) != " "}],
        })
        ctx.checklist_ids.add(id(block))
        return

    ctx.add_block("paragraph", {"text": text})


def _build_list(node: dict, ctx: _BuildContext) -> None:
    style = list_style(node)
    items = reconstruct_list(node.get("children") or [], ctx.render, style=style)
    if not items:
        return

    if style == "checklist" and not any(item.items for item in items):
        ctx.add_block("checklist", {
            "items": [{"text": item.content, "checked": item.checked} for item in items],
        })
        return

    ctx.add_block("list", {
        "style": style,
        "items": [item.to_dict() for item in items],
    })


def _build_code(node: dict, ctx: _BuildContext) -> None:
    data: dict = {"code": node.get("raw", "")}
    info = (node.get("attrs") or {}).get("info")
    if info and info.split():
        data["language"] = info.split()[0]
    ctx.add_block("code", data)


def _build_blockquote(node: dict, ctx: _BuildContext) -> None:
    lines: list[str] = []
    for child in node.get("children") or []:
        if not isinstance(child, dict):
            continue
        child_type = child.get("type", "")
        if child_type in ("paragraph", "heading"):
            text = ctx.render(child.get("children") or [])
        elif child_type == "list":
            text = "\n".join(
                item.content for item in reconstruct_list(child.get("children") or [], ctx.render)
            )
        elif child_type == "code":
            text = child.get("raw", "")
        else:
            text = extract_text(child.get("children") or [])
        if text.strip():
            lines.append(text.strip())

    text = "\n".join(lines)
    if not text.strip():
        return

    parts = text.split("\n")

    title = _WARNING_TITLE_RE.match(parts[0].strip())
    if title and len(parts) > 1:
        ctx.add_block("warning", {
            "title": title.group(1),
            "message": "\n".join(parts[1:]).strip(),
        })
        return

    data: dict = {"text": text}
    if len(parts) > 1:
        caption = _attribution(parts[-1].strip(), ctx.config.quote_attribution_dash)
        remaining = "\n".join(parts[:-1]).strip()
        if caption and remaining:
            data = {"text": remaining, "caption": caption}
    ctx.add_block("quote", data)


def _attribution(line: str, dash: str) -> str | None:
    """Return the caption of a quote's closing attribution line, if any."""
    match = _ATTRIBUTION_RE.match(line)
    if match:
        return match.group(1).strip()
    dash = dash.strip()
    # Rendered inline markup entity-escapes the dash as well.
    for prefix in (dash, html.escape(dash, quote=False)):
        if line.startswith(prefix) and line[len(prefix):].strip():
            return line[len(prefix):].strip()
    return None


def _build_divider(node: dict, ctx: _BuildContext) -> None:
    ctx.add_block("delimiter", {})


def _build_table(node: dict, ctx: _BuildContext) -> None:
    content = extract_table(node, ctx.render)
    if content:
        ctx.add_block("table", {"content": content})


def _build_image(node: dict, ctx: _BuildContext) -> None:
    attrs = node.get("attrs") or {}
    url = attrs.get("url", "")
    if not url:
        ctx.add_warning("IMAGE_SKIPPED", "Image without a URL was skipped.")
        return
    alt = extract_text(node.get("children") or []).strip()
    data: dict = {"url": url}
    caption = attrs.get("title") or alt
    if caption:
        data["caption"] = caption
    if alt:
        data["alt"] = alt
    ctx.add_block("image", data)


def _build_html(node: dict, ctx: _BuildContext) -> None:
    raw = node.get("raw", "").rstrip("\n")
    if not raw.strip():
        return
    if _MARKER_COMMENT_RE.match(raw.strip()):
        return
    ctx.add_block("raw", {"html": raw})


def _build_other(node: dict, ctx: _BuildContext) -> None:
    """Fallback for node kinds without a dedicated builder."""
    node_type = node.get("type") or "unknown"
    text = extract_text(node.get("children") or [])
    if not text.strip() and isinstance(node.get("raw"), str):
        text = node["raw"]
    if not text.strip():
        ctx.add_warning(
            "UNKNOWN_NODE",
            f"Unknown node type '{node_type}' was skipped.",
            node_type=node_type,
        )
        return
    ctx.add_warning(
        "UNKNOWN_NODE",
        f"Unknown node type '{node_type}' was kept as a paragraph.",
        node_type=node_type,
    )
    ctx.add_block("paragraph", {"text": f"[{node_type}] {text.strip()}"})


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def _merge_checklists(blocks: list[dict], checklist_ids: set[int]) -> list[dict]:
    """Merge runs of paragraph-derived checklist blocks into one block."""
    merged: list[dict] = []
    previous_mergeable = False
    for block in blocks:
        mergeable = id(block) in checklist_ids
        if mergeable and previous_mergeable:
            merged[-1]["data"]["items"].extend(block["data"]["items"])
            continue
        merged.append(block)
        previous_mergeable = mergeable
    return merged


def _attach_captions(blocks: list[dict]) -> list[dict]:
    """Fold an italic paragraph that follows an image or embed into its caption."""
    result: list[dict] = []
    awaiting_caption: dict | None = None
    for block in blocks:
        if awaiting_caption is not None and block["type"] == "paragraph":
            match = _ITALIC_LINE_RE.match(block["data"].get("text", "").strip())
            if match and match.group(1).strip():
                awaiting_caption["data"]["caption"] = match.group(1).strip()
                awaiting_caption = None
                continue
        result.append(block)
        awaiting_caption = block if block["type"] in ("image", "embed") else None
    return result


# ---------------------------------------------------------------------------
# Node handler dispatch table
# ---------------------------------------------------------------------------

_NodeHandler = _Callable[[dict, _BuildContext], None]

_NODE_HANDLERS: dict[str, _NodeHandler] = {
    "heading": _build_heading,
    "paragraph": _build_paragraph,
    "list": _build_list,
    "code": _build_code,
    "blockquote": _build_blockquote,
    "thematic_break": _build_divider,
    "table": _build_table,
    "image": _build_image,
    "html": _build_html,
}
