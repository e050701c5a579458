"""Observability: structured logging and metrics hooks for blockmark."""

from __future__ import annotations

from .logger import StructuredFormatter, configure_logging, get_logger, log_conversion
from .metrics import MetricsHook, NoopMetricsHook, resolve_metrics

__all__ = [
    "MetricsHook",
    "NoopMetricsHook",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "log_conversion",
    "resolve_metrics",
]
