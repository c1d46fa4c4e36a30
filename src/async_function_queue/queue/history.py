"""
Bounded execution history for the function queue.
"""
from collections import deque

from .models import HistoryEntry


class HistoryLedger:
    """
    Append-only record of completed executions.

    Holds at most ``max_history_size`` entries; the oldest are evicted first.
    """

    def __init__(self, max_history_size: int = 100):
        """
        Initialize the ledger.

        Args:
            max_history_size: Maximum number of entries retained
        """
        if max_history_size < 0:
            raise ValueError(f"max_history_size must be >= 0, got {max_history_size}")
        self.max_history_size = max_history_size
        self._entries: deque[HistoryEntry] = deque(maxlen=max_history_size)

    def add_result(self, entry: HistoryEntry) -> None:
        """Append an entry, evicting the oldest if the ledger is full."""
        self._entries.append(entry)

    def get_history(self) -> list[HistoryEntry]:
        """Get a copy of the recorded entries, oldest first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
