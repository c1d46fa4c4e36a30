"""Unit tests for the single-flight execution slot."""

import asyncio
from unittest.mock import Mock

import pytest

from async_function_queue.queue.executor import ExecutionSlot
from async_function_queue.queue.history import HistoryLedger
from async_function_queue.queue.models import ItemState, QueuedItem, QueueInvariantError


def _chambered(action, id=None) -> QueuedItem:
    """Create an item in the state the delay chamber hands over."""
    item = QueuedItem(action=action, id=id)
    item.transition(ItemState.CHAMBERED)
    return item


@pytest.fixture
def history():
    return HistoryLedger(max_history_size=10)


@pytest.fixture
def on_complete():
    return Mock()


@pytest.fixture
def slot(history, on_complete):
    return ExecutionSlot(history, on_complete=on_complete, queue_name="test")


@pytest.mark.asyncio
class TestExecutionSlotFire:
    """Test firing items."""

    async def test_fire_marks_slot_busy_immediately(self, slot):
        """Test the slot is occupied before the action gets to run."""
        async def action():
            return "done"

        item = _chambered(action, id="a")
        slot.fire(item)

        assert slot.is_executing() is True
        assert slot.get_executing() is item
        assert item.state == ItemState.EXECUTING

        await slot._task

    async def test_success_recorded_in_history(self, slot, history, on_complete):
        """Test a successful action produces one history entry."""
        async def action():
            return {"saved": True}

        item = _chambered(action, id="draft")
        slot.fire(item)
        await slot._task

        entries = history.get_history()
        assert len(entries) == 1
        assert entries[0].id == "draft"
        assert entries[0].data == {"saved": True}
        assert entries[0].error is None
        assert item.state == ItemState.COMPLETED
        assert slot.is_executing() is False
        on_complete.assert_called_once_with()

    async def test_failure_recorded_and_slot_freed(self, slot, history, on_complete):
        """Test a failing action is captured and does not block the slot."""
        error = RuntimeError("boom")

        async def action():
            raise error

        slot.fire(_chambered(action, id="bad"))
        await slot._task

        entries = history.get_history()
        assert len(entries) == 1
        assert entries[0].error is error
        assert entries[0].id == "bad"
        assert slot.is_executing() is False
        assert slot.failed_total == 1
        assert slot.executed_total == 1
        on_complete.assert_called_once_with()

    async def test_non_awaitable_action_is_a_failure(self, slot, history):
        """Test a plain function result that can't be awaited is recorded as an error."""
        slot.fire(_chambered(lambda: 42))
        await slot._task

        entries = history.get_history()
        assert len(entries) == 1
        assert isinstance(entries[0].error, TypeError)

    async def test_fire_while_busy_raises(self, slot):
        """Test single-flight is enforced."""
        gate = asyncio.Event()

        async def slow():
            await gate.wait()

        slot.fire(_chambered(slow, id="first"))
        second = _chambered(slow, id="second")

        with pytest.raises(QueueInvariantError):
            slot.fire(second)
        assert second.state == ItemState.CHAMBERED

        gate.set()
        await slot._task

    async def test_on_complete_sees_free_slot(self, history):
        """Test the completion callback runs after the slot is freed."""
        observed = []
        slot = ExecutionSlot(history, on_complete=lambda: observed.append(slot.is_executing()))

        async def action():
            return 1

        slot.fire(_chambered(action))
        await slot._task

        assert observed == [False]


@pytest.mark.asyncio
class TestExecutionSlotCompletion:
    """Test notification of run() callers through the item's completion future."""

    async def test_completion_receives_result(self, slot):
        async def action():
            return "value"

        item = _chambered(action)
        item.completion = asyncio.get_running_loop().create_future()
        slot.fire(item)

        assert await item.completion == "value"

    async def test_completion_receives_exception(self, slot):
        async def action():
            raise ValueError("nope")

        item = _chambered(action)
        item.completion = asyncio.get_running_loop().create_future()
        slot.fire(item)

        with pytest.raises(ValueError, match="nope"):
            await item.completion

    async def test_task_cancellation_frees_slot(self, slot, history, on_complete):
        """Test cancelling the running task frees the slot without recording history."""
        gate = asyncio.Event()

        async def slow():
            await gate.wait()

        item = _chambered(slow)
        item.completion = asyncio.get_running_loop().create_future()
        slot.fire(item)
        await asyncio.sleep(0)

        slot._task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await slot._task

        assert slot.is_executing() is False
        assert history.size() == 0
        assert item.completion.cancelled()
        on_complete.assert_not_called()


@pytest.mark.asyncio
class TestExecutionSlotCancellation:
    """Test the two ways a CancelledError reaches the slot."""

    async def test_action_raising_cancelled_is_a_failure(self, slot, history, on_complete):
        """Test a CancelledError from inside the action is recorded, not propagated."""
        async def action():
            cancelled = asyncio.get_running_loop().create_future()
            cancelled.cancel()
            await cancelled

        item = _chambered(action, id="inner")
        slot.fire(item)
        await slot._task

        entries = history.get_history()
        assert len(entries) == 1
        assert entries[0].id == "inner"
        assert isinstance(entries[0].error, asyncio.CancelledError)
        assert item.state == ItemState.COMPLETED
        assert item.outcome is entries[0]
        assert slot.is_executing() is False
        assert slot.failed_total == 1
        on_complete.assert_called_once_with()

    async def test_action_raising_cancelled_cancels_completion(self, slot):
        async def action():
            raise asyncio.CancelledError()

        item = _chambered(action)
        item.completion = asyncio.get_running_loop().create_future()
        slot.fire(item)
        await slot._task

        assert item.completion.cancelled()

    async def test_external_cancel_skips_history(self, slot, history, on_complete):
        """Test cancelling the execution task propagates and records nothing."""
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        item = _chambered(slow, id="slow")
        slot.fire(item)
        await started.wait()

        slot._task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await slot._task

        assert history.size() == 0
        assert item.outcome is None
        assert item.state == ItemState.EXECUTING
        assert slot.is_executing() is False
        on_complete.assert_not_called()


@pytest.mark.asyncio
class TestExecutionSlotMetrics:
    """Test metrics recording."""

    async def test_execution_metrics(self, history, queue_metrics, registry):
        slot = ExecutionSlot(history, on_complete=Mock(), queue_name="m", metrics=queue_metrics)

        async def ok():
            return 1

        async def bad():
            raise RuntimeError("x")

        slot.fire(_chambered(ok))
        await slot._task
        slot.fire(_chambered(bad))
        await slot._task

        assert registry.get_sample_value(
            "afq_executions_total", {"queue": "m", "outcome": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "afq_executions_total", {"queue": "m", "outcome": "failure"}
        ) == 1.0
        assert registry.get_sample_value(
            "afq_execution_duration_seconds_count", {"queue": "m"}
        ) == 2.0
