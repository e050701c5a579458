"""Tests for observability: structured logging and the metrics hook."""
import io
import json
import logging
import sys

import pytest

from blockmark.config import BlockmarkConfig
from blockmark.converter.blocks_to_md import BlockToMarkdownRenderer
from blockmark.converter.md_to_blocks import MarkdownToBlocksConverter
from blockmark.errors import BlockmarkParseError
from blockmark.observability import (
    MetricsHook,
    NoopMetricsHook,
    StructuredFormatter,
    configure_logging,
    get_logger,
    log_conversion,
    resolve_metrics,
)


class TestStructuredFormatter:
    def _get_record(self, msg, level=logging.INFO, exc_info=None, stack_info=None,
                    extra_fields=None):
        record = logging.LogRecord(
            name="blockmark.test",
            level=level,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )
        if extra_fields is not None:
            record.extra_fields = extra_fields
        if stack_info is not None:
            record.stack_info = stack_info
        return record

    def test_basic_format(self):
        result = json.loads(StructuredFormatter().format(self._get_record("hello world")))
        assert result["message"] == "hello world"
        assert result["level"] == "INFO"
        assert result["logger"] == "blockmark.test"
        assert "ts" in result

    def test_single_line(self):
        output = StructuredFormatter().format(self._get_record("a\nb"))
        assert "\n" not in output

    def test_extra_fields_merged(self):
        record = self._get_record("msg", extra_fields={"parser": "line", "blocks": 5})
        result = json.loads(StructuredFormatter().format(record))
        assert result["parser"] == "line"
        assert result["blocks"] == 5

    def test_non_ascii_kept(self):
        output = StructuredFormatter().format(self._get_record("café ⚠️"))
        assert "café ⚠️" in output

    def test_exception_info_included(self):
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()
        result = json.loads(StructuredFormatter().format(self._get_record("x", exc_info=exc_info)))
        assert "ValueError" in result["exception"]

    def test_stack_info_included(self):
        record = self._get_record("msg", stack_info="Stack Trace Here")
        result = json.loads(StructuredFormatter().format(record))
        assert result["stack_info"] == "Stack Trace Here"


class TestLoggers:
    def test_get_logger_prefixes_root(self):
        assert get_logger("converter").name == "blockmark.converter"
        assert get_logger("blockmark.converter").name == "blockmark.converter"
        assert get_logger().name == "blockmark"

    def test_get_logger_attaches_no_handler(self):
        assert get_logger("observability.fresh_unique").handlers == []

    def test_configure_logging_writes_json(self):
        stream = io.StringIO()
        logger = configure_logging("INFO", stream=stream, name="blockmark.test_json_unique")
        logger.info("hello", extra={"extra_fields": {"k": "v"}})
        entry = json.loads(stream.getvalue().strip())
        assert entry["message"] == "hello"
        assert entry["k"] == "v"

    def test_configure_logging_idempotent(self):
        name = "blockmark.test_idempotent_unique"
        first = configure_logging(name=name)
        count = len(first.handlers)
        second = configure_logging(logging.DEBUG, name=name)
        assert len(second.handlers) == count
        assert second.level == logging.DEBUG

    def test_log_conversion_emits_debug_summary(self, caplog):
        logger = get_logger("test_summary")
        with caplog.at_level(logging.DEBUG, logger="blockmark"):
            log_conversion(logger, "serialize", blocks=3, warnings=1, duration_ms=1.23456)
        record = caplog.records[-1]
        assert record.getMessage() == "serialize complete"
        assert record.extra_fields == {
            "op": "serialize", "blocks": 3, "warnings": 1, "duration_ms": 1.235,
        }

    def test_log_conversion_silent_above_debug(self, caplog):
        logger = get_logger("test_silent")
        with caplog.at_level(logging.INFO, logger="blockmark"):
            log_conversion(logger, "serialize", blocks=0, warnings=0, duration_ms=0.0)
        assert caplog.records == []

    def test_converters_log_summaries(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="blockmark"):
            MarkdownToBlocksConverter().convert("# hi")
            BlockToMarkdownRenderer().render({"blocks": []})
        ops = [getattr(r, "extra_fields", {}).get("op") for r in caplog.records]
        assert "deserialize" in ops
        assert "serialize" in ops


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetricsHook:
    def test_noop_conforms(self):
        assert isinstance(NoopMetricsHook(), MetricsHook)

    def test_noop_returns_none(self):
        hook = NoopMetricsHook()
        assert hook.increment("x") is None
        assert hook.timing("x", 1.0, tags={"a": "b"}) is None

    def test_recording_hook_conforms(self, metrics):
        assert isinstance(metrics, MetricsHook)

    def test_resolve_metrics(self, metrics):
        assert resolve_metrics(metrics) is metrics
        assert isinstance(resolve_metrics(None), NoopMetricsHook)
        assert isinstance(resolve_metrics(object()), NoopMetricsHook)

    def test_deserialize_metrics(self, metrics):
        MarkdownToBlocksConverter(BlockmarkConfig(metrics=metrics)).convert("# a\n\nb")
        parsed = [c for c in metrics.increments if c["name"] == "blockmark.blocks_parsed_total"]
        assert [c["tags"]["type"] for c in parsed] == ["header", "paragraph"]
        assert [t["name"] for t in metrics.timings] == ["blockmark.deserialize_duration_ms"]
        assert metrics.timings[0]["ms"] >= 0

    def test_serialize_metrics(self, metrics):
        BlockToMarkdownRenderer(BlockmarkConfig(metrics=metrics)).render({"blocks": [
            {"type": "paragraph", "data": {"text": "a"}},
            {"type": "paragraph", "data": {"text": ""}},
            {"type": "mystery", "data": {}},
        ]})
        rendered = [c for c in metrics.increments if c["name"] == "blockmark.blocks_rendered_total"]
        assert [c["tags"]["type"] for c in rendered] == ["paragraph", "mystery"]
        warnings = [c for c in metrics.increments
                    if c["name"] == "blockmark.conversion_warnings_total"]
        assert warnings[0]["tags"] == {"code": "UNKNOWN_BLOCK"}
        assert "blockmark.serialize_duration_ms" in metrics.names()

    def test_fallback_metric(self, metrics):
        class Failing:
            name = "failing"

            def parse(self, markdown):
                raise BlockmarkParseError(message="no")

        MarkdownToBlocksConverter(BlockmarkConfig(metrics=metrics), parser=Failing()).convert("x")
        assert "blockmark.parse_fallback_total" in metrics.names()
        assert "blockmark.conversion_warnings_total" in metrics.names()


# ---------------------------------------------------------------------------
# Debug dumps
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "flag,label",
    [("debug_dump_ast", "Normalized AST"), ("debug_dump_document", "Block document")],
)
def test_debug_dumps_to_stderr(capsys, flag, label):
    MarkdownToBlocksConverter(BlockmarkConfig(**{flag: True})).convert("# hi")
    err = capsys.readouterr().err
    assert f"[blockmark] {label}:" in err
