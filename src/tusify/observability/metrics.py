"""Metrics hook protocol, no-op default and an in-memory collector.

The uploaders and transports emit counters and timings at every protocol
step.  By default a :class:`NoopMetricsHook` discards them.  Any object
satisfying :class:`MetricsHook` can be supplied through
``TusifyConfig(metrics=...)`` to route them to StatsD, Prometheus, etc.

Emitted metric names:

* ``tusify.requests_total``         -- counter (tags: method, status)
* ``tusify.request_duration_ms``    -- timing  (tags: method, status)
* ``tusify.chunks_sent_total``      -- counter
* ``tusify.bytes_sent_total``       -- counter
* ``tusify.upload_progress``        -- gauge   (offset / total_length)
* ``tusify.upload_success_total``   -- counter
* ``tusify.upload_failure_total``   -- counter (tags: code)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    *tags* is an optional ``str -> str`` mapping that implementations map
    onto their own labelling scheme.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        pass

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class CollectingMetricsHook:
    """Keep counters, timings and gauges in memory.

    Handy for tests and for callers that want to print a summary after an
    upload.  Counters are summed per metric name regardless of tags.
    """

    def __init__(self) -> None:
        self.counters: dict[str, int] = {}
        self.timings: dict[str, list[float]] = {}
        self.gauges: dict[str, float] = {}

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        self.timings.setdefault(name, []).append(ms)

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.gauges[name] = value
