"""Converter configuration for blockmark.

:class:`BlockmarkConfig` is a plain dataclass that captures every tuneable
knob of the two converters.  Instances are passed to both
:class:`~blockmark.converter.blocks_to_md.BlockToMarkdownRenderer` and
:class:`~blockmark.converter.md_to_blocks.MarkdownToBlocksConverter`, and to
the module-level :func:`blockmark.serialize` / :func:`blockmark.deserialize`
helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

DEFAULT_DOCUMENT_VERSION = "2.29.0"
"""Editor save-format version stamped on deserialized documents."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class BlockmarkConfig:
    """Complete configuration for the blockmark converters.

    Every parameter has a default, so ``BlockmarkConfig()`` is a valid
    configuration.

    Parameters
    ----------
    parser:
        Which :class:`~blockmark.converter.parsers.MarkdownParser`
        implementation the Markdown-to-blocks converter builds.

        * ``"mistune"`` — mistune v3 AST parser (full inline support).
        * ``"line"`` — line-based parser with no inline formatting.
    escape_markdown:
        Backslash-escape Markdown-significant characters found in the plain
        text of block fields when serializing.  Converted inline markup and
        ``<code>`` spans are never escaped.
    unsupported_block_policy:
        How to serialize block types with no Markdown rendering.

        * ``"comment"`` — emit ``<!-- Unknown block type: <type> -->`` plus
          any text found in the block.
        * ``"skip"`` — silently omit.
        * ``"raise"`` — raise :class:`BlockmarkUnsupportedBlockError`.
    quote_attribution_dash:
        Dash written in front of quote captions; a single line.
        Deserialization accepts this dash as well as em dash, en dash and
        ``--``.
    document_version:
        ``version`` value stamped on documents produced by deserialization.
    max_nested_level:
        Container nesting limit handed to mistune's block parser.  Content
        nested deeper degrades to plain text instead of recursing further.
    merge_checklists:
        Merge adjacent checklist blocks that were recovered from
        ``- [ ]`` paragraph text into a single checklist block.
    metrics:
        Optional :class:`~blockmark.observability.MetricsHook` backend.
    debug_dump_ast:
        Write the normalized Markdown AST to *stderr* on each conversion.
    debug_dump_document:
        Write the produced block-document to *stderr* on each conversion.
    """

    # ── Parsing ─────────────────────────────────────────────────────────
    parser: Literal["mistune", "line"] = "mistune"

    max_nested_level: int = 32

    # ── Serialization ───────────────────────────────────────────────────
    escape_markdown: bool = False

    unsupported_block_policy: Literal["comment", "skip", "raise"] = "comment"

    quote_attribution_dash: str = "—"

    # ── Deserialization ─────────────────────────────────────────────────
    document_version: str = DEFAULT_DOCUMENT_VERSION

    merge_checklists: bool = True

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_ast: bool = False

    debug_dump_document: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.parser not in ("mistune", "line"):
            raise ValueError(f"parser must be 'mistune' or 'line', got {self.parser!r}")
        if self.unsupported_block_policy not in ("comment", "skip", "raise"):
            raise ValueError(
                "unsupported_block_policy must be 'comment', 'skip' or 'raise', "
                f"got {self.unsupported_block_policy!r}"
            )
        # mistune needs at least one level below the document root.
        if self.max_nested_level < 2:
            raise ValueError(f"max_nested_level must be >= 2, got {self.max_nested_level}")
        if not self.quote_attribution_dash.strip():
            raise ValueError("quote_attribution_dash must not be blank")
        if "\n" in self.quote_attribution_dash or "\r" in self.quote_attribution_dash:
            raise ValueError("quote_attribution_dash must be a single line")
