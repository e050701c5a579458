"""Module-level conversion functions.

Each call builds a fresh converter, so the functions are safe to use from
any number of threads.

Usage::

    from blockmark import deserialize, serialize

    md = serialize(document)
    document = deserialize(md)
"""

from __future__ import annotations

from typing import Any

from blockmark.config import BlockmarkConfig
from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer
from blockmark.converter.md_to_blocks import MarkdownToBlocksConverter
from blockmark.models import ConversionResult, ConversionWarning


def render_markdown(
    document: Any,
    config: BlockmarkConfig | None = None,
) -> tuple[str, list[ConversionWarning]]:
    """Render *document* to Markdown and return it with the warnings raised."""
    renderer = BlockToMarkdownRenderer(config)
    markdown = renderer.render(document)
    return markdown, renderer.warnings


def convert_markdown(
    markdown: Any,
    config: BlockmarkConfig | None = None,
) -> ConversionResult:
    """Convert *markdown* to a block-document, keeping the warnings."""
    return MarkdownToBlocksConverter(config).convert(markdown)


def serialize(document: Any, config: BlockmarkConfig | None = None) -> str:
    """Block-document (or list of blocks) -> Markdown text.

    ``None`` and documents without blocks give ``""``.
    """
    markdown, _ = render_markdown(document, config)
    return markdown


def deserialize(markdown: Any, config: BlockmarkConfig | None = None) -> dict[str, Any]:
    """Markdown text -> block-document ``{"time", "version", "blocks"}``."""
    return convert_markdown(markdown, config).document
