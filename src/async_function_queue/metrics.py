"""Prometheus metrics collector."""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class QueueMetrics:
    """Collects and exposes Prometheus metrics for function queues."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics.

        Args:
            registry: Registry to register with (default: the global registry)
        """
        if registry is None:
            registry = REGISTRY
        self.registry = registry

        # Item counters
        self.items_pushed_total = Counter(
            "afq_items_pushed_total",
            "Total functions pushed onto the queue",
            ["queue"],
            registry=registry,
        )

        self.items_replaced_total = Counter(
            "afq_items_replaced_total",
            "Total pending functions superseded by a push with the same id",
            ["queue"],
            registry=registry,
        )

        self.items_cancelled_total = Counter(
            "afq_items_cancelled_total",
            "Total pending functions dropped before execution",
            ["queue", "reason"],
            registry=registry,
        )

        # Execution
        self.executions_total = Counter(
            "afq_executions_total",
            "Total completed executions",
            ["queue", "outcome"],
            registry=registry,
        )

        self.execution_duration_seconds = Histogram(
            "afq_execution_duration_seconds",
            "Time spent awaiting a queued function",
            ["queue"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
            registry=registry,
        )

        # Backlog
        self.pending_items = Gauge(
            "afq_pending_items",
            "Functions queued or waiting out their delay",
            ["queue"],
            registry=registry,
        )

    def record_pushed(self, queue: str) -> None:
        """Record a push."""
        self.items_pushed_total.labels(queue=queue).inc()

    def record_replaced(self, queue: str) -> None:
        """Record a replacement."""
        self.items_replaced_total.labels(queue=queue).inc()
        self.items_cancelled_total.labels(queue=queue, reason="replaced").inc()

    def record_cancelled(self, queue: str, reason: str, count: int = 1) -> None:
        """Record items dropped by removal or clearing."""
        self.items_cancelled_total.labels(queue=queue, reason=reason).inc(count)

    def record_execution(self, queue: str, succeeded: bool, duration_seconds: float) -> None:
        """Record a completed execution."""
        outcome = "success" if succeeded else "failure"
        self.executions_total.labels(queue=queue, outcome=outcome).inc()
        self.execution_duration_seconds.labels(queue=queue).observe(duration_seconds)

    def set_pending(self, queue: str, count: int) -> None:
        """Set the pending item gauge."""
        self.pending_items.labels(queue=queue).set(count)


# Global metrics collector instance
_metrics: Optional[QueueMetrics] = None


def get_metrics() -> QueueMetrics:
    """Get or create global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = QueueMetrics()
    return _metrics
