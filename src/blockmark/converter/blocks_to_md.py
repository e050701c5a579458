"""Block-document to Markdown renderer.

Converts the editor's block-document (``{"time", "version", "blocks"}``)
into a Markdown string.  Every block type of the save format has a
dedicated renderer; unknown types fall back to an HTML comment marker plus
whatever text the block carries.

Usage::

    from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer

    renderer = BlockToMarkdownRenderer()
    md = renderer.render(document)
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable as _Callable
from typing import Any

from blockmark.config import BlockmarkConfig
from blockmark.converter.inline_markup import markup_to_markdown
from blockmark.errors import BlockmarkUnsupportedBlockError
from blockmark.models import ConversionWarning, ListItem
from blockmark.observability import get_logger, log_conversion, resolve_metrics

log = get_logger("blockmark.converter")

# Errors a single malformed block may raise while rendering.
_BLOCK_ERRORS = (KeyError, TypeError, ValueError, AttributeError, IndexError)

_DASH_RUN_RE = re.compile(r"-{2,}")


class BlockToMarkdownRenderer:
    """Renderer that converts block-documents to Markdown.

    The renderer accumulates :class:`ConversionWarning` instances in
    :attr:`warnings` during a :meth:`render` call so that callers can inspect
    non-fatal issues (malformed or unknown blocks) after rendering completes.

    Parameters
    ----------
    config:
        Converter configuration controlling escaping, the unknown-block
        policy and the quote attribution dash.
    """

    def __init__(self, config: BlockmarkConfig | None = None) -> None:
        self._config = config or BlockmarkConfig()
        self._metrics = resolve_metrics(self._config.metrics)
        self.warnings: list[ConversionWarning] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, document: Any) -> str:
        """Render a block-document (or a bare list of blocks) to Markdown.

        Returns
        -------
        str
            Markdown ending in exactly one newline, or ``""`` when no block
            produced any output.
        """
        self.warnings = []
        started = time.perf_counter()

        blocks = _document_blocks(document)
        parts: list[str] = []
        for index, block in enumerate(blocks):
            fragment = self._render_contained(block, index)
            if fragment.strip():
                parts.append(fragment.rstrip())

        result = "\n\n".join(parts).strip("\n").rstrip()
        markdown = f"{result}\n" if result else ""

        elapsed_ms = (time.perf_counter() - started) * 1000
        for warning in self.warnings:
            self._metrics.increment(
                "blockmark.conversion_warnings_total", tags={"code": warning.code},
            )
        self._metrics.timing("blockmark.serialize_duration_ms", elapsed_ms)
        log_conversion(
            log, "serialize",
            blocks=len(blocks), warnings=len(self.warnings), duration_ms=elapsed_ms,
        )
        return markdown

    def render_block(self, block: Any) -> str:
        """Render a single block to a Markdown fragment (no trailing newline)."""
        if not isinstance(block, dict):
            return ""
        block_type = block.get("type")
        data = block.get("data")
        if not isinstance(data, dict):
            data = {}

        renderer = _BLOCK_RENDERERS.get(block_type) if isinstance(block_type, str) else None
        if renderer is not None:
            return renderer(self, data)
        return self._render_unsupported(block_type, data)

    # ------------------------------------------------------------------
    # Internal: per-block containment
    # ------------------------------------------------------------------

    def _render_contained(self, block: Any, index: int) -> str:
        """Render one block, degrading to ``""`` if it is malformed."""
        try:
            fragment = self.render_block(block)
        except _BLOCK_ERRORS as exc:
            block_type = block.get("type") if isinstance(block, dict) else None
            self.warnings.append(ConversionWarning(
                code="BLOCK_RENDER_ERROR",
                message=f"Block {index} ({block_type}) could not be rendered: {exc}",
                context={"block_index": index, "block_type": block_type},
            ))
            log.warning(
                "block could not be rendered",
                extra={"extra_fields": {"block_index": index, "block_type": block_type}},
            )
            return ""
        if fragment and isinstance(block, dict):
            self._metrics.increment(
                "blockmark.blocks_rendered_total", tags={"type": str(block.get("type"))},
            )
        return fragment

    def _md(self, value: Any) -> str:
        """Inline markup -> Markdown, honouring ``escape_markdown``."""
        return markup_to_markdown(value, escape=self._config.escape_markdown)

    # ------------------------------------------------------------------
    # Block type renderers
    # ------------------------------------------------------------------

    def _render_paragraph(self, data: dict) -> str:
        text = self._md(data.get("text"))
        return text if text.strip() else ""

    def _render_header(self, data: dict) -> str:
        text = " ".join(self._md(data.get("text")).split("\n")).strip()
        if not text:
            return ""
        return f"{'#' * clamp_level(data.get('level'))} {text}"

    def _render_list(self, data: dict) -> str:
        raw_items = data.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            return ""
        style = data.get("style") or "unordered"
        items = [ListItem.from_value(raw) for raw in raw_items]

        lines: list[str] = []
        # (iterator over numbered siblings, depth, style of the siblings)
        stack: list[tuple[Any, int, str]] = [(iter(enumerate(items, 1)), 0, style)]
        while stack:
            siblings, depth, level_style = stack[-1]
            entry = next(siblings, None)
            if entry is None:
                stack.pop()
                continue
            number, item = entry

            if level_style == "ordered":
                bullet = f"{number}."
            elif level_style == "checklist":
                bullet = "- [x]" if item.checked else "- [ ]"
            else:
                bullet = "-"

            indent = "  " * depth
            content_lines = self._md(item.content).split("\n")
            lines.append(f"{indent}{bullet} {content_lines[0]}".rstrip())
            continuation = " " * (len(indent) + len(bullet) + 1)
            lines.extend(f"{continuation}{line}" for line in content_lines[1:] if line.strip())

            if item.items:
                stack.append((iter(enumerate(item.items, 1)), depth + 1, item.style or level_style))

        return "\n".join(lines)

    def _render_code(self, data: dict) -> str:
        code = data.get("code")
        if not isinstance(code, str) or not code:
            return ""
        language = data.get("language")
        language = language.strip() if isinstance(language, str) else ""
        fence = "`" * max(3, _longest_backtick_run(code) + 1)
        return f"{fence}{language}\n{code}\n{fence}"

    def _render_quote(self, data: dict) -> str:
        text = self._md(data.get("text"))
        caption = self._md(data.get("caption")).strip()
        lines = [f"> {line}" if line.strip() else ">" for line in text.split("\n")] if text.strip() else []
        if caption:
            if lines:
                lines.append(">")
            lines.append(f"> {self._config.quote_attribution_dash} {caption}")
        return "\n".join(lines)

    def _render_delimiter(self, data: dict) -> str:
        return "---"

    def _render_table(self, data: dict) -> str:
        content = data.get("content")
        if not isinstance(content, list):
            return ""
        rows = [row for row in content if isinstance(row, list) and row]
        if not rows:
            return ""

        # Every row, separator included, needs the same cell count.
        width = max(len(row) for row in rows)
        lines: list[str] = []
        for i, row in enumerate(rows):
            cells = [self._table_cell(cell) for cell in row]
            cells.extend([""] * (width - len(cells)))
            lines.append("| " + " | ".join(cells) + " |")
            # GFM needs the separator row after the header row.
            if i == 0:
                lines.append("| " + " | ".join(["---"] * width) + " |")
        return "\n".join(lines)

    def _table_cell(self, cell: Any) -> str:
        if isinstance(cell, bool) or cell is None:
            return ""
        if isinstance(cell, (int, float)):
            return str(cell)
        text = self._md(cell)
        return text.replace("|", "\\|").replace("\n", "<br>").strip()

    def _render_checklist(self, data: dict) -> str:
        items = data.get("items")
        if not isinstance(items, list):
            return ""
        lines: list[str] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            text = self._md(item.get("text")).strip()
            if not text:
                continue
            mark = "x" if item.get("checked") else " "
            lines.append(f"- [{mark}] " + " ".join(text.split("\n")))
        return "\n".join(lines)

    def _render_image(self, data: dict) -> str:
        file_info = data.get("file")
        url = data.get("url") or (file_info.get("url") if isinstance(file_info, dict) else "")
        if not isinstance(url, str) or not url:
            return ""
        caption = self._md(data.get("caption")).strip()
        alt = self._md(data.get("alt")).strip() or caption or "Image"
        result = f"![{alt}]({url})"
        if caption and caption != alt:
            result += f"\n\n*{caption}*"
        return result

    def _render_embed(self, data: dict) -> str:
        source = data.get("source")
        if not isinstance(source, str) or not source:
            return ""
        caption = self._md(data.get("caption")).strip()
        result = f"[Embedded content]({source})"
        if caption:
            result += f"\n\n*{caption}*"
        return result

    def _render_link_tool(self, data: dict) -> str:
        link = data.get("link")
        if not isinstance(link, str) or not link:
            return ""
        meta = data.get("meta")
        meta = meta if isinstance(meta, dict) else {}
        title = self._md(meta.get("title") or data.get("title")).strip() or link
        description = self._md(meta.get("description") or data.get("description")).strip()
        result = f"[{title}]({link})"
        if description:
            result += f"\n\n{description}"
        return result

    def _render_raw(self, data: dict) -> str:
        html = data.get("html")
        return html if isinstance(html, str) else ""

    def _render_warning(self, data: dict) -> str:
        message = self._md(data.get("message")).strip()
        if not message:
            return ""
        title = self._md(data.get("title")).strip() or "Warning"
        body = "\n".join(f"> {line}" for line in message.split("\n") if line.strip())
        return f"> ⚠️ **{title}**\n>\n{body}"

    # ------------------------------------------------------------------
    # Unknown block fallback
    # ------------------------------------------------------------------

    def _render_unsupported(self, block_type: Any, data: dict) -> str:
        """Handle block types with no dedicated renderer.

        Behaviour is governed by ``config.unsupported_block_policy``:

        * ``"comment"`` -- emit an HTML comment marker plus best-effort text.
        * ``"skip"`` -- silently omit.
        * ``"raise"`` -- raise :class:`BlockmarkUnsupportedBlockError`.
        """
        policy = self._config.unsupported_block_policy
        type_name = _comment_safe(str(block_type) if block_type is not None else "unknown")

        if policy == "skip":
            return ""

        if policy == "raise":
            raise BlockmarkUnsupportedBlockError(
                message=f"Cannot render block type: {type_name}",
                context={"block_type": block_type},
            )

        self.warnings.append(ConversionWarning(
            code="UNKNOWN_BLOCK",
            message=f"Block type '{type_name}' has no Markdown rendering.",
            context={"block_type": block_type},
        ))
        text = _extract_text(data)
        if text:
            return f"<!-- Unknown block type: {type_name} -->\n{self._md(text)}"
        return f"<!-- Unsupported block type: {type_name} -->"


# ------------------------------------------------------------------
# Block renderer dispatch table
# ------------------------------------------------------------------

_BlockRenderer = _Callable[["BlockToMarkdownRenderer", dict], str]

_BLOCK_RENDERERS: dict[str, _BlockRenderer] = {
    "paragraph": BlockToMarkdownRenderer._render_paragraph,
    "header": BlockToMarkdownRenderer._render_header,
    "list": BlockToMarkdownRenderer._render_list,
    "code": BlockToMarkdownRenderer._render_code,
    "quote": BlockToMarkdownRenderer._render_quote,
    "delimiter": BlockToMarkdownRenderer._render_delimiter,
    "table": BlockToMarkdownRenderer._render_table,
    "checklist": BlockToMarkdownRenderer._render_checklist,
    "image": BlockToMarkdownRenderer._render_image,
    "embed": BlockToMarkdownRenderer._render_embed,
    "linkTool": BlockToMarkdownRenderer._render_link_tool,
    "raw": BlockToMarkdownRenderer._render_raw,
    "warning": BlockToMarkdownRenderer._render_warning,
}

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def clamp_level(level: Any) -> int:
    """Parse a header level and clamp it into 1..6 (unparseable -> 1)."""
    try:
        value = int(level)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, min(6, value))


def _document_blocks(document: Any) -> list:
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        blocks = document.get("blocks")
        if isinstance(blocks, list):
            return blocks
    return []


def _longest_backtick_run(text: str) -> int:
    longest = current = 0
    for char in text:
        current = current + 1 if char == "`" else 0
        longest = max(longest, current)
    return longest


def _comment_safe(text: str) -> str:
    """Keep a value from terminating the surrounding HTML comment."""
    text = _DASH_RUN_RE.sub("-", text).replace(">", "").replace("\n", " ")
    return text.strip() or "unknown"


def _extract_text(data: dict) -> str:
    """Best-effort text from an unknown block's ``text``/``content``/``html``."""
    for key in ("text", "content", "html"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""
