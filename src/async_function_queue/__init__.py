"""
Async function queue.

FIFO, single-flight execution of async functions with per-item delays and
id-based replacement of pending work.
"""

from .config import QueueConfig
from .metrics import QueueMetrics, get_metrics
from .queue import (
    AsyncFunctionQueue,
    HistoryEntry,
    ItemCancelledError,
    ItemState,
    QueuedItem,
    QueueInvariantError,
    QueueStats,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncFunctionQueue",
    "HistoryEntry",
    "ItemCancelledError",
    "ItemState",
    "QueueConfig",
    "QueueInvariantError",
    "QueueMetrics",
    "QueueStats",
    "QueuedItem",
    "get_metrics",
]
