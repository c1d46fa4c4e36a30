"""Unit tests for Prometheus metrics collector."""

import pytest
from prometheus_client import CollectorRegistry

from async_function_queue import metrics
from async_function_queue.metrics import QueueMetrics


class TestQueueMetrics:
    """Test QueueMetrics class."""

    def test_collector_has_item_counters(self, queue_metrics):
        assert queue_metrics.items_pushed_total is not None
        assert queue_metrics.items_replaced_total is not None
        assert queue_metrics.items_cancelled_total is not None

    def test_collector_has_execution_metrics(self, queue_metrics):
        assert queue_metrics.executions_total is not None
        assert queue_metrics.execution_duration_seconds is not None
        assert queue_metrics.pending_items is not None

    def test_record_pushed(self, queue_metrics, registry):
        queue_metrics.record_pushed("q")
        queue_metrics.record_pushed("q")
        assert registry.get_sample_value("afq_items_pushed_total", {"queue": "q"}) == 2.0

    def test_record_replaced_counts_cancellation(self, queue_metrics, registry):
        queue_metrics.record_replaced("q")
        assert registry.get_sample_value("afq_items_replaced_total", {"queue": "q"}) == 1.0
        assert registry.get_sample_value(
            "afq_items_cancelled_total", {"queue": "q", "reason": "replaced"}
        ) == 1.0

    def test_record_cancelled_with_count(self, queue_metrics, registry):
        queue_metrics.record_cancelled("q", "cleared", 3)
        assert registry.get_sample_value(
            "afq_items_cancelled_total", {"queue": "q", "reason": "cleared"}
        ) == 3.0

    def test_record_execution(self, queue_metrics, registry):
        queue_metrics.record_execution("q", succeeded=False, duration_seconds=0.02)
        assert registry.get_sample_value(
            "afq_executions_total", {"queue": "q", "outcome": "failure"}
        ) == 1.0
        assert registry.get_sample_value(
            "afq_execution_duration_seconds_sum", {"queue": "q"}
        ) == pytest.approx(0.02)

    def test_set_pending(self, queue_metrics, registry):
        queue_metrics.set_pending("q", 4)
        assert registry.get_sample_value("afq_pending_items", {"queue": "q"}) == 4.0

    def test_labels_keep_queues_apart(self, queue_metrics, registry):
        queue_metrics.record_pushed("a")
        assert registry.get_sample_value("afq_items_pushed_total", {"queue": "b"}) is None

    def test_separate_registries_do_not_collide(self):
        """Test two collectors can coexist on their own registries."""
        QueueMetrics(registry=CollectorRegistry())
        QueueMetrics(registry=CollectorRegistry())


class TestGetMetrics:
    """Test the process-wide collector."""

    def test_get_metrics_singleton(self):
        assert metrics.get_metrics() is metrics.get_metrics()
