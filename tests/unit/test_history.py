"""Unit tests for the execution history ledger."""

import pytest

from async_function_queue.queue.history import HistoryLedger
from async_function_queue.queue.models import HistoryEntry


class TestHistoryLedgerInit:
    """Test HistoryLedger initialization."""

    def test_init_default(self):
        ledger = HistoryLedger()
        assert ledger.max_history_size == 100
        assert ledger.size() == 0
        assert ledger.get_history() == []

    def test_init_negative_size_rejected(self):
        with pytest.raises(ValueError):
            HistoryLedger(max_history_size=-1)


class TestHistoryLedgerRecording:
    """Test adding and reading entries."""

    def test_entries_kept_in_insertion_order(self):
        ledger = HistoryLedger(max_history_size=10)
        for i in range(3):
            ledger.add_result(HistoryEntry(id=str(i), data=i))

        assert [entry.data for entry in ledger.get_history()] == [0, 1, 2]
        assert len(ledger) == 3

    def test_oldest_entries_evicted_first(self):
        """Test the ledger keeps only the most recent entries."""
        ledger = HistoryLedger(max_history_size=3)
        for i in range(7):
            ledger.add_result(HistoryEntry(data=i))

        assert ledger.size() == 3
        assert [entry.data for entry in ledger.get_history()] == [4, 5, 6]

    def test_zero_size_keeps_nothing(self):
        ledger = HistoryLedger(max_history_size=0)
        ledger.add_result(HistoryEntry(data=1))
        assert ledger.get_history() == []

    def test_get_history_returns_copy(self):
        """Test mutating the returned list leaves the ledger untouched."""
        ledger = HistoryLedger()
        ledger.add_result(HistoryEntry(data="a"))

        history = ledger.get_history()
        history.append(HistoryEntry(data="b"))
        history.clear()

        assert ledger.size() == 1
        assert ledger.get_history() is not ledger.get_history()

    def test_clear(self):
        ledger = HistoryLedger()
        ledger.add_result(HistoryEntry(data="a"))
        ledger.clear()
        assert ledger.size() == 0
