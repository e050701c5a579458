"""Structured JSON logging for blockmark.

Log records are emitted as single-line JSON objects so that a host
application can ship them to a log pipeline without extra parsing.

Typical structured output::

    {"ts": "2026-03-01T12:00:00.123456+00:00", "level": "DEBUG",
     "logger": "blockmark.converter", "message": "deserialize complete",
     "op": "deserialize", "blocks": 12, "warnings": 0, "duration_ms": 1.8}

Usage::

    from blockmark.observability import get_logger

    log = get_logger("blockmark.converter")
    log.warning("parse failed", extra={"extra_fields": {"parser": "mistune"}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "blockmark"


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts`` (ISO-8601 UTC), ``level``, ``logger`` and
    ``message``.  Fields passed as ``extra={"extra_fields": {...}}`` are
    merged into the top-level object; exception and stack information are
    serialised when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


# One handler per configured root name, so repeated ``configure_logging``
# calls from several modules never stack duplicate handlers.
_configured: set[str] = set()


def configure_logging(
    level: int | str = logging.WARNING,
    *,
    stream: Any | None = None,
    name: str = ROOT_LOGGER,
) -> logging.Logger:
    """Attach a :class:`StructuredFormatter` handler to the *name* logger.

    Library code never calls this; hosts that want blockmark's records as
    JSON call it once at startup.  Repeated calls only update the level.
    """
    logger = logging.getLogger(name)
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    logger.setLevel(resolved)

    if name not in _configured:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        _configured.add(name)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return the logger for *name*, a child of the ``blockmark`` root.

    No handler is attached here: records propagate to the ``blockmark``
    logger (configured by :func:`configure_logging`) or to whatever the host
    application installed.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_conversion(
    logger: logging.Logger,
    op: str,
    *,
    blocks: int,
    warnings: int,
    duration_ms: float,
    **fields: Any,
) -> None:
    """Emit the DEBUG summary record written after every conversion."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    extra_fields = {
        "op": op,
        "blocks": blocks,
        "warnings": warnings,
        "duration_ms": round(duration_ms, 3),
    }
    extra_fields.update(fields)
    logger.debug("%s complete", op, extra={"extra_fields": extra_fields})
