"""
Function queue for async work.

Provides FIFO, single-flight execution with per-item delays and id-based
replacement of pending functions.
"""

from .chamber import DelayChamber
from .executor import ExecutionSlot
from .history import HistoryLedger
from .manager import AsyncFunctionQueue
from .models import (
    HistoryEntry,
    ItemCancelledError,
    ItemState,
    QueuedItem,
    QueueInvariantError,
    QueueStats,
)

__all__ = [
    "AsyncFunctionQueue",
    "DelayChamber",
    "ExecutionSlot",
    "HistoryEntry",
    "HistoryLedger",
    "ItemCancelledError",
    "ItemState",
    "QueuedItem",
    "QueueInvariantError",
    "QueueStats",
]
