"""Markdown ↔ block-document conversion pipeline.

Public API:

- :class:`MarkdownToBlocksConverter` — Markdown → block-document.
- :class:`BlockToMarkdownRenderer` — block-document → Markdown.
- :class:`MistuneParser` / :class:`LineParser` — parse Markdown to the
  normalized AST.
- :func:`build_blocks` — convert normalized AST to block dicts.
- :func:`render_inline` — convert inline AST nodes to inline markup.
"""

from blockmark.converter.block_builder import build_blocks
from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer
from blockmark.converter.inline_renderer import render_inline
from blockmark.converter.md_to_blocks import MarkdownToBlocksConverter
from blockmark.converter.parsers import (
    LineParser,
    MarkdownParser,
    MistuneParser,
    create_parser,
)

__all__ = [
    "BlockToMarkdownRenderer",
    "LineParser",
    "MarkdownParser",
    "MarkdownToBlocksConverter",
    "MistuneParser",
    "build_blocks",
    "create_parser",
    "render_inline",
]
