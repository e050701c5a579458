"""Markdown parsers producing the normalized AST.

Two interchangeable implementations satisfy the :class:`MarkdownParser`
protocol:

* :class:`MistuneParser` wraps mistune v3's AST renderer and normalizes the
  raw token stream into the canonical node kinds below.
* :class:`LineParser` is a line-based parser with no inline formatting.  It
  recognizes headers, lists (nested by indentation), block quotes, fenced
  code, thematic breaks and paragraphs.

The parser is chosen once, when a converter is constructed, by
:func:`create_parser`.

Canonical block nodes:
    heading, paragraph, list, list_item, task_list_item, code, blockquote,
    thematic_break, table, table_head, table_body, table_row, table_cell,
    html

Canonical inline nodes:
    text, strong, emphasis, inline_code, strikethrough, link, image,
    break, softbreak, html_inline
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

import mistune

from blockmark.config import BlockmarkConfig
from blockmark.errors import BlockmarkParseError


@runtime_checkable
class MarkdownParser(Protocol):
    """Anything that turns Markdown text into a normalized AST."""

    name: str

    def parse(self, markdown: str) -> list[dict]:
        """Return the normalized top-level nodes of *markdown*.

        Raises
        ------
        BlockmarkParseError
            If the input cannot be parsed at all.
        """
        ...


def create_parser(config: BlockmarkConfig) -> MarkdownParser:
    """Build the parser selected by ``config.parser``."""
    if config.parser == "line":
        return LineParser()
    return MistuneParser(max_nested_level=config.max_nested_level)


# ---------------------------------------------------------------------------
# Mistune-backed parser
# ---------------------------------------------------------------------------

_BLOCK_TYPE_MAP: dict[str, str] = {
    "heading": "heading",
    "paragraph": "paragraph",
    "block_quote": "blockquote",
    "list": "list",
    "list_item": "list_item",
    "task_list_item": "task_list_item",
    "block_code": "code",
    "table": "table",
    "thematic_break": "thematic_break",
    "block_html": "html",
    # Tight list items carry their text in block_text.
    "block_text": "paragraph",
}

_INLINE_TYPE_MAP: dict[str, str] = {
    "text": "text",
    "strong": "strong",
    "emphasis": "emphasis",
    "codespan": "inline_code",
    "strikethrough": "strikethrough",
    "link": "link",
    "image": "image",
    "softbreak": "softbreak",
    "linebreak": "break",
    "inline_html": "html_inline",
}

_TABLE_PART_TYPES: frozenset[str] = frozenset({
    "table_head", "table_body", "table_row", "table_cell",
})

# Tokens that carry no content.
_SKIP_TYPES: frozenset[str] = frozenset({
    "blank_line",
})


class MistuneParser:
    """Parse Markdown with mistune and normalize to canonical AST nodes."""

    name = "mistune"

    def __init__(self, max_nested_level: int = 32) -> None:
        self._markdown = mistune.Markdown(
            renderer=None,
            block=mistune.BlockParser(max_nested_level=max_nested_level),
            inline=mistune.InlineParser(),
            plugins=[
                mistune.import_plugin("strikethrough"),
                mistune.import_plugin("table"),
                mistune.import_plugin("task_lists"),
                mistune.import_plugin("url"),
            ],
        )

    def parse(self, markdown: str) -> list[dict]:
        """Parse *markdown* and return the normalized node list."""
        try:
            raw_tokens = self._markdown(nest_list_indentation(markdown))
        except Exception as exc:
            raise BlockmarkParseError(
                message=f"mistune could not parse the input: {exc}",
                context={"parser": self.name, "length": len(markdown)},
                cause=exc,
            ) from exc
        if isinstance(raw_tokens, str):
            return []
        return self._normalize_tokens(raw_tokens)

    def _normalize_tokens(self, tokens: list[dict]) -> list[dict]:
        result: list[dict] = []
        for token in tokens:
            normalized = self._normalize_token(token)
            if normalized is not None:
                result.append(normalized)
        return result

    def _normalize_token(self, token: dict) -> dict | None:
        """Normalize a single token, returning None if it should be skipped."""
        raw_type = token.get("type", "")

        if raw_type in _SKIP_TYPES:
            return None

        if raw_type in _BLOCK_TYPE_MAP:
            return self._normalize_block(token, _BLOCK_TYPE_MAP[raw_type])

        if raw_type in _INLINE_TYPE_MAP:
            return self._normalize_inline(token, _INLINE_TYPE_MAP[raw_type])

        if raw_type in _TABLE_PART_TYPES:
            return self._normalize_container(token, raw_type)

        # Unknown token kinds are kept so the builder can report them.
        return self._normalize_container(token, raw_type or "unknown")

    def _normalize_block(self, token: dict, canonical_type: str) -> dict:
        if canonical_type == "code":
            raw_code = token.get("raw", "")
            # mistune keeps the newline before the closing fence
            if raw_code.endswith("\n"):
                raw_code = raw_code[:-1]
            result: dict = {"type": "code", "raw": raw_code}
            info = (token.get("attrs") or {}).get("info")
            if info:
                result["attrs"] = {"info": info}
            return result

        if canonical_type == "html":
            return {"type": "html", "raw": token.get("raw", "")}

        if canonical_type == "thematic_break":
            return {"type": "thematic_break"}

        return self._normalize_container(token, canonical_type)

    def _normalize_inline(self, token: dict, canonical_type: str) -> dict:
        if canonical_type in ("softbreak", "break"):
            return {"type": canonical_type}

        if canonical_type in ("text", "inline_code", "html_inline"):
            return {"type": canonical_type, "raw": token.get("raw", "")}

        return self._normalize_container(token, canonical_type)

    def _normalize_container(self, token: dict, canonical_type: str) -> dict:
        """Copy attrs and normalize children of a container-like token."""
        result: dict = {"type": canonical_type}

        attrs = token.get("attrs")
        if attrs:
            result["attrs"] = dict(attrs)

        children = token.get("children")
        if children:
            result["children"] = self._normalize_tokens(children)
        elif "raw" in token:
            result["raw"] = token["raw"]

        return result


# ---------------------------------------------------------------------------
# Line-based parser
# ---------------------------------------------------------------------------

_HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})(?:\s+(.*?))?(?:\s+#+)?\s*$")
_LIST_ITEM_RE = re.compile(r"^(\s*)([-*+]|\d+[.)])\s+(.*)$")
_TASK_RE = re.compile(r"^\[([ xX])\]\s+(.*)$")
_QUOTE_RE = re.compile(r"^\s{0,3}>\s?(.*)$")
_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})\s*(.*)$")
_THEMATIC_BREAK_RE = re.compile(r"^\s{0,3}(?:-{3,}|\*{3,}|_{3,})\s*$")
_LIST_MARKER_RE = re.compile(r"^([ \t]*)([-*+]|\d{1,9}[.)])([ \t]+|$)(.*)$")


def _indent_width(prefix: str) -> int:
    return len(prefix.expandtabs(4))


def _is_block_start(body: str) -> bool:
    return bool(
        _HEADING_RE.match(body)
        or _QUOTE_RE.match(body)
        or _FENCE_RE.match(body)
        or _THEMATIC_BREAK_RE.match(body)
    )


def nest_list_indentation(markdown: str) -> str:
    """Re-indent list runs so that nesting follows indentation width.

    An item indented deeper than the item above it becomes that item's child,
    the rule :class:`LineParser` applies.  CommonMark instead requires a child
    to start at its parent's content column, three spaces under ``1. `` where
    the serializer writes two.  Each nested marker is therefore moved to its
    parent's content column and indented continuation lines (fenced code
    included) move with their item.  Lines outside list runs are returned
    unchanged apart from their line endings.
    """
    if not isinstance(markdown, str):
        return markdown

    lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    out: list[str] = []
    # (marker indent, content column, rewritten content column), outermost first
    open_items: list[tuple[int, int, int]] = []
    # (fence marker, columns added to the fenced lines)
    fence: tuple[str, int] | None = None
    after_blank = False

    for line in lines:
        if fence is not None:
            out.append(" " * fence[1] + line if fence[1] and line.strip() else line)
            stripped = line.strip()
            if stripped.startswith(fence[0]) and not stripped.strip(fence[0][0]):
                fence = None
            continue

        if not line.strip():
            out.append(line)
            after_blank = True
            continue

        body = line.lstrip(" \t")
        width = _indent_width(line[: len(line) - len(body)])
        marker = _LIST_MARKER_RE.match(line)
        if marker is not None and _THEMATIC_BREAK_RE.match(body.replace(" ", "").replace("\t", "")):
            marker = None
        if marker is not None and not open_items and width > 3:
            # indented code block
            marker = None

        if marker is None:
            if open_items and width <= open_items[0][0] and (after_blank or _is_block_start(body)):
                open_items.clear()
            shift = 0
            for item_indent, column, new_column in reversed(open_items):
                if width > item_indent:
                    shift = new_column - column
                    break
            opening = _FENCE_RE.match(body)
            if opening:
                fence = (opening.group(1), shift)
            out.append(" " * (width + shift) + body if shift else line)
            after_blank = False
            continue

        while open_items and width <= open_items[-1][0]:
            open_items.pop()
        if open_items:
            _, parent_column, parent_new_column = open_items[-1]
            new_width = parent_new_column + max(0, width - parent_column)
        else:
            new_width = width

        bullet, spacing, text = marker.group(2), marker.group(3), marker.group(4)
        pad = len(spacing.expandtabs(4))
        if not text or pad > 4:
            pad = 1
        open_items.append((width, width + len(bullet) + pad, new_width + len(bullet) + pad))
        out.append(line if new_width == width else " " * new_width + bullet + spacing + text)
        after_blank = False

    return "\n".join(out)


def _text_node(text: str) -> dict:
    return {"type": "text", "raw": text}


def _inline_lines(lines: list[str]) -> list[dict]:
    """Plain text nodes for *lines*, joined by soft breaks."""
    children: list[dict] = []
    for index, line in enumerate(lines):
        if index:
            children.append({"type": "softbreak"})
        children.append(_text_node(line.strip()))
    return children


class LineParser:
    """Line-oriented Markdown parser with no inline formatting support."""

    name = "line"

    def parse(self, markdown: str) -> list[dict]:
        """Parse *markdown* into normalized nodes, one pass over its lines."""
        if not isinstance(markdown, str):
            raise BlockmarkParseError(
                message="LineParser expects text input",
                context={"parser": self.name, "input_type": type(markdown).__name__},
            )

        lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        nodes: list[dict] = []
        paragraph: list[str] = []

        def flush_paragraph() -> None:
            if paragraph:
                nodes.append({"type": "paragraph", "children": _inline_lines(paragraph)})
                paragraph.clear()

        i = 0
        while i < len(lines):
            line = lines[i]

            if not line.strip():
                flush_paragraph()
                i += 1
                continue

            fence = _FENCE_RE.match(line)
            if fence:
                flush_paragraph()
                i = self._consume_fence(lines, i, fence, nodes)
                continue

            heading = _HEADING_RE.match(line)
            if heading:
                flush_paragraph()
                nodes.append({
                    "type": "heading",
                    "attrs": {"level": len(heading.group(1))},
                    "children": [_text_node((heading.group(2) or "").strip())],
                })
                i += 1
                continue

            if _THEMATIC_BREAK_RE.match(line):
                flush_paragraph()
                nodes.append({"type": "thematic_break"})
                i += 1
                continue

            list_item = _LIST_ITEM_RE.match(line)
            if list_item:
                flush_paragraph()
                i = self._consume_list(lines, i, list_item, nodes)
                continue

            if _QUOTE_RE.match(line):
                flush_paragraph()
                i = self._consume_quote(lines, i, nodes)
                continue

            paragraph.append(line)
            i += 1

        flush_paragraph()
        return nodes

    # -- block consumers ---------------------------------------------------

    @staticmethod
    def _consume_fence(lines: list[str], start: int, fence: re.Match[str], nodes: list[dict]) -> int:
        marker = fence.group(1)
        info = fence.group(2).strip()
        body: list[str] = []
        i = start + 1
        while i < len(lines):
            stripped = lines[i].strip()
            if stripped.startswith(marker[0] * len(marker)) and not stripped.strip(marker[0]):
                i += 1
                break
            body.append(lines[i])
            i += 1
        node: dict = {"type": "code", "raw": "\n".join(body)}
        if info:
            node["attrs"] = {"info": info}
        nodes.append(node)
        return i

    @staticmethod
    def _consume_quote(lines: list[str], start: int, nodes: list[dict]) -> int:
        paragraphs: list[list[str]] = [[]]
        i = start
        while i < len(lines):
            match = _QUOTE_RE.match(lines[i])
            if match is None:
                break
            text = match.group(1)
            if text.strip():
                paragraphs[-1].append(text)
            elif paragraphs[-1]:
                paragraphs.append([])
            i += 1
        children = [
            {"type": "paragraph", "children": _inline_lines(para)}
            for para in paragraphs
            if para
        ]
        nodes.append({"type": "blockquote", "children": children})
        return i

    @staticmethod
    def _consume_list(lines: list[str], start: int, first: re.Match[str], nodes: list[dict]) -> int:
        """Collect consecutive list lines and nest them by indentation."""
        root: dict = {
            "type": "list",
            "attrs": {"ordered": first.group(2)[0].isdigit()},
            "children": [],
        }
        # (indent width, list node) from the outermost list inward
        stack: list[tuple[int, dict]] = [(_indent_width(first.group(1)), root)]
        last_paragraph: dict | None = None

        i = start
        while i < len(lines):
            line = lines[i]

            if not line.strip():
                # A blank line only continues the list if another item follows.
                j = i + 1
                while j < len(lines) and not lines[j].strip():
                    j += 1
                if j < len(lines) and _LIST_ITEM_RE.match(lines[j]):
                    i = j
                    continue
                break

            match = _LIST_ITEM_RE.match(line)
            if match is None or _THEMATIC_BREAK_RE.match(line):
                if line[:1].isspace() and last_paragraph is not None:
                    # Indented continuation of the previous item.
                    last_paragraph["children"].append({"type": "softbreak"})
                    last_paragraph["children"].append(_text_node(line.strip()))
                    i += 1
                    continue
                break

            indent = _indent_width(match.group(1))
            ordered = match.group(2)[0].isdigit()

            while len(stack) > 1 and indent < stack[-1][0]:
                stack.pop()
            current_indent, current = stack[-1]
            if indent > current_indent and current["children"]:
                nested: dict = {"type": "list", "attrs": {"ordered": ordered}, "children": []}
                current["children"][-1]["children"].append(nested)
                stack.append((indent, nested))
                current = nested

            text = match.group(3).strip()
            item: dict = {"type": "list_item", "children": []}
            task = _TASK_RE.match(text)
            if task:
                item = {
                    "type": "task_list_item",
                    "attrs": {"checked": task.group(1) != " "},
                    "children": [],
                }
                text = task.group(2).strip()
            last_paragraph = {"type": "paragraph", "children": [_text_node(text)]}
            item["children"].append(last_paragraph)
            current["children"].append(item)
            i += 1

        nodes.append(root)
        return i
