"""
Observability components for Rulegate.
"""

from rulegate.observability.hooks import (
    InMemoryMetricHook,
    LoggingMetricHook,
    MetricHook,
    NoOpMetricHook,
)

__all__ = [
    "MetricHook",
    "NoOpMetricHook",
    "LoggingMetricHook",
    "InMemoryMetricHook",
]
