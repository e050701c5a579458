"""Metrics hook protocol and no-op default implementation.

The converters emit counters and timings for every conversion.  By default
a :class:`NoopMetricsHook` swallows them; hosts pass their own backend via
``BlockmarkConfig(metrics=...)``.

Emitted metric names:

* ``blockmark.blocks_rendered_total``      -- counter, tagged by block type
* ``blockmark.blocks_parsed_total``        -- counter, tagged by block type
* ``blockmark.conversion_warnings_total``  -- counter, tagged by warning code
* ``blockmark.parse_fallback_total``       -- counter, tagged by parser
* ``blockmark.serialize_duration_ms``      -- timing
* ``blockmark.deserialize_duration_ms``    -- timing
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

Tags = Optional[dict[str, str]]


@runtime_checkable
class MetricsHook(Protocol):
    """Structural interface of a metrics backend.

    *tags* map onto the backend's own tagging mechanism (Datadog tags,
    Prometheus labels, ...).
    """

    def increment(self, name: str, value: int = 1, tags: Tags = None) -> None:
        """Add *value* to the counter *name*."""
        ...

    def timing(self, name: str, ms: float, tags: Tags = None) -> None:
        """Record a duration of *ms* milliseconds under *name*."""
        ...


class NoopMetricsHook:
    """Backend used when no hook is configured; discards everything."""

    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: Tags = None) -> None:
        return None

    def timing(self, name: str, ms: float, tags: Tags = None) -> None:
        return None


def resolve_metrics(hook: object | None) -> MetricsHook:
    """Return *hook* when it satisfies :class:`MetricsHook`, else a no-op."""
    if isinstance(hook, MetricsHook):
        return hook
    return NoopMetricsHook()
