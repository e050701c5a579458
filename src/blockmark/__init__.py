"""blockmark — bidirectional Markdown / block-document converter.

Public re-exports
-----------------

* **Conversion:** :func:`serialize`, :func:`deserialize`,
  :func:`render_markdown`, :func:`convert_markdown`
* **Converters:** :class:`BlockToMarkdownRenderer`,
  :class:`MarkdownToBlocksConverter`
* **Configuration:** :class:`BlockmarkConfig`
* **Errors:** Every :class:`BlockmarkError` subclass and :class:`ErrorCode`
* **Models:** :class:`ListItem`, :class:`ConversionWarning`,
  :class:`ConversionResult`

Usage::

    from blockmark import deserialize, serialize

    document = deserialize("# Hello\\n\\n- one\\n- two")
    markdown = serialize(document)
"""

from __future__ import annotations

# ── Functions ───────────────────────────────────────────────────────────
from blockmark.api import convert_markdown, deserialize, render_markdown, serialize

# ── Configuration ───────────────────────────────────────────────────────
from blockmark.config import DEFAULT_DOCUMENT_VERSION, BlockmarkConfig

# ── Converters ──────────────────────────────────────────────────────────
from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer
from blockmark.converter.md_to_blocks import MarkdownToBlocksConverter

# ── Errors ──────────────────────────────────────────────────────────────
from blockmark.errors import (
    BlockmarkConversionError,
    BlockmarkError,
    BlockmarkParseError,
    BlockmarkUnsupportedBlockError,
    ErrorCode,
)

# ── Models ──────────────────────────────────────────────────────────────
from blockmark.models import ConversionResult, ConversionWarning, ListItem, new_document

__version__ = "0.1.0"

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Functions
    "serialize",
    "deserialize",
    "render_markdown",
    "convert_markdown",
    # Converters
    "BlockToMarkdownRenderer",
    "MarkdownToBlocksConverter",
    # Configuration
    "BlockmarkConfig",
    "DEFAULT_DOCUMENT_VERSION",
    # Error base + code enum
    "BlockmarkError",
    "ErrorCode",
    # Conversion errors
    "BlockmarkConversionError",
    "BlockmarkParseError",
    "BlockmarkUnsupportedBlockError",
    # Models
    "ListItem",
    "ConversionWarning",
    "ConversionResult",
    "new_document",
]
