"""Shared test fixtures for the blockmark test suite."""

from __future__ import annotations

from typing import Any

import pytest

from blockmark.config import BlockmarkConfig
from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer
from blockmark.converter.md_to_blocks import MarkdownToBlocksConverter


class RecordingMetricsHook:
    """A metrics backend that records all calls for assertion."""

    def __init__(self) -> None:
        self.increments: list[dict[str, Any]] = []
        self.timings: list[dict[str, Any]] = []

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.increments.append({"name": name, "value": value, "tags": tags})

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.timings.append({"name": name, "ms": ms, "tags": tags})

    def names(self) -> set[str]:
        return {c["name"] for c in self.increments} | {c["name"] for c in self.timings}


@pytest.fixture
def config() -> BlockmarkConfig:
    """Default configuration."""
    return BlockmarkConfig()


@pytest.fixture
def converter(config: BlockmarkConfig) -> MarkdownToBlocksConverter:
    """Markdown-to-blocks converter using the default config."""
    return MarkdownToBlocksConverter(config)


@pytest.fixture
def line_converter() -> MarkdownToBlocksConverter:
    """Markdown-to-blocks converter backed by the line parser."""
    return MarkdownToBlocksConverter(BlockmarkConfig(parser="line"))


@pytest.fixture
def renderer(config: BlockmarkConfig) -> BlockToMarkdownRenderer:
    """Blocks-to-Markdown renderer using the default config."""
    return BlockToMarkdownRenderer(config)


@pytest.fixture
def metrics() -> RecordingMetricsHook:
    return RecordingMetricsHook()
