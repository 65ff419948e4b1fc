"""
Metrics hooks for Rulegate.

Provides hooks for metrics without requiring external dependencies, so
decisions can be reported to Prometheus, StatsD, OpenTelemetry, etc.

Metrics emitted by the facade:
    - rulegate.decisions (counter; tags: action, resource, allowed)
    - rulegate.circuit_breaker.trips (counter; tags: action, resource)
    - rulegate.evaluation_ms (timing; tags: action, resource)

Example:
    >>> hook = InMemoryMetricHook()
    >>> gate = await create_rulegate(rules, metric_hook=hook)
    >>> await gate.can("read", "post")
    True
    >>> hook.get_counter("rulegate.decisions",
    ...                  {"action": "read", "resource": "post", "allowed": True})
    1.0
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricHook(Protocol):
    """
    Protocol for metric backends.

    Example:
        >>> class StatsdHook:
        ...     def increment(self, name, value=1.0, tags=None):
        ...         statsd.increment(name, value, tags=tags)
        ...
        ...     def gauge(self, name, value, tags=None):
        ...         statsd.gauge(name, value, tags=tags)
        ...
        ...     def histogram(self, name, value, tags=None):
        ...         statsd.histogram(name, value, tags=tags)
        ...
        ...     def timing(self, name, duration_ms, tags=None):
        ...         statsd.timing(name, duration_ms, tags=tags)
    """

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        """Increment a counter metric."""
        ...

    def gauge(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        """Set a gauge metric."""
        ...

    def histogram(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        """Record a value in a histogram."""
        ...

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        """Record a duration in milliseconds."""
        ...


class NoOpMetricHook:
    """Hook that discards every metric. Used when no hook is configured."""

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        pass

    def gauge(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        pass

    def histogram(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        pass

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        pass


class LoggingMetricHook:
    """
    Simple hook that logs metrics (for development and debugging).

    Example:
        >>> import logging
        >>> logging.basicConfig(level=logging.DEBUG)
        >>> hook = LoggingMetricHook()
        >>> hook.increment("rulegate.decisions", 1.0, {"action": "read"})
        DEBUG:rulegate.metrics:COUNTER rulegate.decisions=1.0 tags={'action': 'read'}
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        """
        Initialize the logging hook.

        Args:
            logger: Logger instance to use. Defaults to "rulegate.metrics".
            level: Logging level for metric messages.
        """
        self.logger = logger or logging.getLogger("rulegate.metrics")
        self.level = level

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"COUNTER {name}={value} tags={tags}")

    def gauge(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"GAUGE {name}={value} tags={tags}")

    def histogram(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"HISTOGRAM {name}={value} tags={tags}")

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"TIMING {name}={duration_ms}ms tags={tags}")


class InMemoryMetricHook:
    """
    In-memory metrics for testing and simple use cases.

    Example:
        >>> hook = InMemoryMetricHook()
        >>> hook.increment("requests", tags={"user": "alice"})
        >>> hook.increment("requests", tags={"user": "alice"})
        >>> hook.get_counter("requests", {"user": "alice"})
        2.0
    """

    def __init__(self):
        self.counters: dict[str, float] = defaultdict(float)
        self.gauges: dict[str, float] = {}
        self.histograms: dict[str, list[float]] = defaultdict(list)
        self.timings: dict[str, list[float]] = defaultdict(list)

    def _make_key(self, name: str, tags: dict[str, Any] | None) -> str:
        """Create a unique key from metric name and tags."""
        if not tags:
            return name
        sorted_tags = sorted(tags.items())
        tag_str = ",".join(f"{k}={v}" for k, v in sorted_tags)
        return f"{name}[{tag_str}]"

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        self.counters[self._make_key(name, tags)] += value

    def gauge(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        self.gauges[self._make_key(name, tags)] = value

    def histogram(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        self.histograms[self._make_key(name, tags)].append(value)

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        self.timings[self._make_key(name, tags)].append(duration_ms)

    def get_counter(self, name: str, tags: dict[str, Any] | None = None) -> float:
        """Get the current value of a counter (0.0 if never incremented)."""
        return self.counters.get(self._make_key(name, tags), 0.0)

    def get_timings(self, name: str, tags: dict[str, Any] | None = None) -> list[float]:
        """Get every recorded duration for a timing metric."""
        return list(self.timings.get(self._make_key(name, tags), []))

    def reset(self) -> None:
        """Clear all recorded metrics."""
        self.counters.clear()
        self.gauges.clear()
        self.histograms.clear()
        self.timings.clear()
