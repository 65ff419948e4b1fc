"""Tests for rulegate.observability.hooks module."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from rulegate import create_rulegate
from rulegate.observability import (
    InMemoryMetricHook,
    LoggingMetricHook,
    MetricHook,
    NoOpMetricHook,
)


class TestMetricHookProtocol:
    """Tests for the MetricHook protocol."""

    def test_builtin_hooks_satisfy_protocol(self):
        assert isinstance(NoOpMetricHook(), MetricHook)
        assert isinstance(LoggingMetricHook(), MetricHook)
        assert isinstance(InMemoryMetricHook(), MetricHook)

    def test_incomplete_hook_rejected(self):
        class CounterOnly:
            def increment(self, name, value=1.0, tags=None):
                pass

        assert not isinstance(CounterOnly(), MetricHook)


class TestLoggingMetricHook:
    """Tests for LoggingMetricHook."""

    def test_default_logger(self):
        """Test hook creates default logger."""
        hook = LoggingMetricHook()
        assert hook.logger.name == "rulegate.metrics"

    def test_custom_level(self):
        hook = LoggingMetricHook(level=logging.INFO)
        assert hook.level == logging.INFO

    def test_increment_logs(self):
        """Test increment logs correctly."""
        hook = LoggingMetricHook()
        with patch.object(hook.logger, "log") as mock_log:
            hook.increment("rulegate.decisions", 1.0, {"action": "read"})
            mock_log.assert_called_once_with(
                logging.DEBUG, "COUNTER rulegate.decisions=1.0 tags={'action': 'read'}"
            )

    def test_timing_logs(self):
        hook = LoggingMetricHook()
        with patch.object(hook.logger, "log") as mock_log:
            hook.timing("rulegate.evaluation_ms", 1.5)
            mock_log.assert_called_once_with(logging.DEBUG, "TIMING rulegate.evaluation_ms=1.5ms tags=None")

    @pytest.mark.asyncio
    async def test_facade_emits_through_logging_hook(self, caplog):
        gate = await create_rulegate(
            lambda allow, deny: allow("read", "post"),
            metric_hook=LoggingMetricHook(),
        )
        with caplog.at_level(logging.DEBUG, logger="rulegate.metrics"):
            await gate.can("read", "post")
        assert any("COUNTER rulegate.decisions" in message for message in caplog.messages)


class TestInMemoryMetricHook:
    """Tests for InMemoryMetricHook."""

    def test_counter_increment(self):
        hook = InMemoryMetricHook()
        hook.increment("checks")
        hook.increment("checks", 2.0)
        assert hook.get_counter("checks") == 3.0

    def test_counter_tag_order_independent(self):
        hook = InMemoryMetricHook()
        hook.increment("checks", tags={"a": 1, "b": 2})
        assert hook.get_counter("checks", {"b": 2, "a": 1}) == 1.0

    def test_counter_nonexistent(self):
        assert InMemoryMetricHook().get_counter("missing") == 0.0

    def test_gauge_and_histogram(self):
        hook = InMemoryMetricHook()
        hook.gauge("rules", 4.0)
        hook.histogram("inspected", 2.0)
        hook.histogram("inspected", 3.0)
        assert hook.gauges["rules"] == 4.0
        assert hook.histograms["inspected"] == [2.0, 3.0]

    def test_timings(self):
        hook = InMemoryMetricHook()
        hook.timing("rulegate.evaluation_ms", 1.0, {"action": "read"})
        assert hook.get_timings("rulegate.evaluation_ms", {"action": "read"}) == [1.0]
        assert hook.get_timings("rulegate.evaluation_ms") == []

    def test_reset(self):
        hook = InMemoryMetricHook()
        hook.increment("checks")
        hook.timing("t", 1.0)
        hook.reset()
        assert hook.get_counter("checks") == 0.0
        assert hook.get_timings("t") == []

    def test_noop_hook_discards(self):
        hook = NoOpMetricHook()
        hook.increment("checks")
        hook.gauge("g", 1.0)
        hook.histogram("h", 1.0)
        hook.timing("t", 1.0)
