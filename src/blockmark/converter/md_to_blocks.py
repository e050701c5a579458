"""Full Markdown-to-blocks conversion pipeline.

:class:`MarkdownToBlocksConverter` orchestrates three stages:

1. **Parse** — the configured :class:`MarkdownParser` turns raw Markdown
   into the normalized AST.
2. **Build** — :func:`build_blocks` converts the AST into block dicts,
   collecting :class:`ConversionWarning` along the way.
3. **Wrap** — the blocks are stamped into a fresh block-document.

The converter never raises.  If parsing or building fails outright, the
whole input comes back as a single paragraph block and a
``PARSE_FALLBACK`` warning is recorded.
"""

from __future__ import annotations

import json
import sys
import time

from blockmark.config import BlockmarkConfig
from blockmark.converter.block_builder import build_blocks
from blockmark.converter.inline_renderer import RenderInline, render_inline
from blockmark.converter.parsers import MarkdownParser, create_parser
from blockmark.errors import BlockmarkError
from blockmark.models import ConversionResult, ConversionWarning, new_document
from blockmark.observability import get_logger, log_conversion, resolve_metrics

log = get_logger("blockmark.converter")


class MarkdownToBlocksConverter:
    """Convert Markdown text to a block-document.

    Parameters
    ----------
    config:
        Converter configuration; defaults to ``BlockmarkConfig()``.
    parser:
        Parser to use instead of the one selected by ``config.parser``.
    render:
        Inline renderer to use instead of :func:`render_inline`.

    Examples
    --------
    >>> converter = MarkdownToBlocksConverter()
    >>> result = converter.convert("# Hello\\n\\nWorld")
    >>> [block["type"] for block in result.blocks]
    ['header', 'paragraph']
    """

    def __init__(
        self,
        config: BlockmarkConfig | None = None,
        *,
        parser: MarkdownParser | None = None,
        render: RenderInline = render_inline,
    ) -> None:
        self._config = config or BlockmarkConfig()
        self._parser = parser if parser is not None else create_parser(self._config)
        self._render = render
        self._metrics = resolve_metrics(self._config.metrics)

    @property
    def parser(self) -> MarkdownParser:
        return self._parser

    def convert(self, markdown: object) -> ConversionResult:
        """Full pipeline: parse -> build blocks -> wrap in a document.

        Parameters
        ----------
        markdown:
            Markdown text.  ``None`` and blank text yield an empty document;
            bytes are decoded as UTF-8, anything else is passed through
            ``str()``.

        Returns
        -------
        ConversionResult
            The ``document`` and any ``warnings``.
        """
        started = time.perf_counter()
        text = _coerce_text(markdown)
        warnings: list[ConversionWarning] = []

        if not text.strip():
            blocks: list[dict] = []
        else:
            try:
                nodes = self._parser.parse(text)
                self._dump("Normalized AST", nodes, self._config.debug_dump_ast)
                blocks, warnings = build_blocks(nodes, self._config, self._render)
            except (
                BlockmarkError, KeyError, IndexError, TypeError,
                ValueError, AttributeError, RecursionError,
            ) as exc:
                blocks = [{"type": "paragraph", "data": {"text": text}}]
                warnings = [ConversionWarning(
                    code="PARSE_FALLBACK",
                    message=f"Markdown could not be converted; kept as one paragraph: {exc}",
                    context={"parser": self._parser.name, "error": type(exc).__name__},
                )]
                log.warning(
                    "markdown conversion failed, falling back to a single paragraph",
                    exc_info=True,
                    extra={"extra_fields": {"parser": self._parser.name, "length": len(text)}},
                )
                self._metrics.increment(
                    "blockmark.parse_fallback_total", tags={"parser": self._parser.name},
                )

        document = new_document(blocks, self._config.document_version)
        self._dump("Block document", document, self._config.debug_dump_document)

        elapsed_ms = (time.perf_counter() - started) * 1000
        for block in blocks:
            self._metrics.increment("blockmark.blocks_parsed_total", tags={"type": block["type"]})
        for warning in warnings:
            self._metrics.increment(
                "blockmark.conversion_warnings_total", tags={"code": warning.code},
            )
        self._metrics.timing("blockmark.deserialize_duration_ms", elapsed_ms)
        log_conversion(
            log, "deserialize",
            blocks=len(blocks), warnings=len(warnings), duration_ms=elapsed_ms,
            parser=self._parser.name,
        )

        return ConversionResult(document=document, warnings=warnings)

    @staticmethod
    def _dump(label: str, payload: object, enabled: bool) -> None:
        if enabled:
            print(
                f"[blockmark] {label}:",
                json.dumps(payload, indent=2, ensure_ascii=False, default=str),
                file=sys.stderr,
            )


def _coerce_text(markdown: object) -> str:
    if markdown is None:
        return ""
    if isinstance(markdown, str):
        return markdown
    if isinstance(markdown, (bytes, bytearray)):
        return bytes(markdown).decode("utf-8", errors="replace")
    return str(markdown)
