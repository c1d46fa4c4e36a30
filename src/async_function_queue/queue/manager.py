"""
Function queue orchestrator: ordered, single-flight, debounced execution of async functions.
"""
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from ..metrics import QueueMetrics
from .chamber import DelayChamber
from .executor import ExecutionSlot
from .history import HistoryLedger
from .models import HistoryEntry, QueuedItem, QueueStats

if TYPE_CHECKING:
    from ..config import QueueConfig

logger = logging.getLogger(__name__)


class AsyncFunctionQueue:
    """
    Queues async functions and runs them one at a time in FIFO order.

    Items pushed with an id replace any not-yet-started item with the same id;
    the replacement goes to the tail of the queue. Items may carry a delay,
    which they wait out in the delay chamber before executing. An item that
    has started executing is never cancelled.

    With ``auto_execute=False`` pushed items wait in the queue until the
    caller drains them with ``execute_next()`` or ``execute_queue()``.

    All methods must be called from the thread running the event loop.
    """

    def __init__(
        self,
        debug: bool = False,
        max_history_size: int = 100,
        default_delay_ms: Optional[float] = None,
        name: str = "default",
        metrics: Optional[QueueMetrics] = None,
        auto_execute: bool = True,
    ):
        """
        Initialize the queue.

        Args:
            debug: Log lifecycle events at INFO instead of DEBUG
            max_history_size: Maximum number of execution results retained
            default_delay_ms: Delay applied to pushes that don't specify one
            name: Queue name used in log records and metric labels
            metrics: Optional metrics collector
            auto_execute: Start queued items as soon as the queue is free
        """
        if default_delay_ms is not None and default_delay_ms < 0:
            raise ValueError(f"default_delay_ms must be >= 0, got {default_delay_ms}")

        self.debug = debug
        self.name = name
        self.default_delay_ms = default_delay_ms
        self.metrics = metrics
        self.auto_execute = auto_execute
        self._trace_level = logging.INFO if debug else logging.DEBUG

        self._queue: deque[QueuedItem] = deque()
        self._history = HistoryLedger(max_history_size)
        self._executor = ExecutionSlot(
            self._history,
            on_complete=self._cycle,
            queue_name=name,
            debug=debug,
            metrics=metrics,
        )
        self._chamber = DelayChamber(
            self._executor,
            queue_name=name,
            debug=debug,
            on_handoff=self._update_pending,
        )
        self._finish_waiters: list[asyncio.Future] = []

        # Statistics
        self._pushed = 0
        self._replaced = 0
        self._removed = 0

    @classmethod
    def from_config(
        cls,
        config: "QueueConfig",
        metrics: Optional[QueueMetrics] = None,
    ) -> "AsyncFunctionQueue":
        """Build a queue from resolved configuration."""
        return cls(
            debug=config.debug,
            max_history_size=config.max_history_size,
            default_delay_ms=config.default_delay_ms,
            name=config.queue_name,
            metrics=metrics,
            auto_execute=config.auto_execute,
        )

    @property
    def max_history_size(self) -> int:
        return self._history.max_history_size

    def push(
        self,
        action: Callable[[], Awaitable[Any]],
        id: Optional[str] = None,
        delay_ms: Optional[float] = None,
    ) -> int:
        """
        Add an async function to the queue.

        If another not-yet-started item has the same id it is cancelled and
        the new item is appended at the tail.

        Args:
            action: Zero-argument callable returning an awaitable
            id: Optional identity used for replacement and lookup
            delay_ms: Optional delay before execution, in milliseconds

        Returns:
            Number of pending items (queued plus chambered)
        """
        self._enqueue(self._make_item(action, id, delay_ms))
        return self.size()

    async def run(
        self,
        action: Callable[[], Awaitable[Any]],
        id: Optional[str] = None,
        delay_ms: Optional[float] = None,
    ) -> Any:
        """
        Push an async function and wait for its own execution.

        Returns:
            The action's result

        Raises:
            ItemCancelledError: If the item was replaced, removed or cleared before it started
            Exception: Whatever the action raised
        """
        item = self._make_item(action, id, delay_ms)
        item.completion = asyncio.get_running_loop().create_future()
        self._enqueue(item)
        return await item.completion

    def _make_item(
        self,
        action: Callable[[], Awaitable[Any]],
        id: Optional[str],
        delay_ms: Optional[float],
    ) -> QueuedItem:
        if not callable(action):
            raise TypeError(f"action must be callable, got {type(action).__name__}")
        if delay_ms is None:
            delay_ms = self.default_delay_ms
        if delay_ms is not None and delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        return QueuedItem(action=action, id=id, delay_ms=delay_ms)

    def _enqueue(self, item: QueuedItem) -> None:
        if item.id is not None and self._drop_pending(item.id, reason="replaced"):
            self._replaced += 1
            if self.metrics:
                self.metrics.record_replaced(self.name)
            logger.log(
                self._trace_level,
                f"Replacing function with ID: {item.id}",
                extra={"queue": self.name, "item_id": item.id},
            )

        self._queue.append(item)
        self._pushed += 1
        if self.metrics:
            self.metrics.record_pushed(self.name)

        logger.log(
            self._trace_level,
            f"Enqueued function{f' with ID: {item.id}' if item.id else ''}"
            f"{f' (delayed by {item.delay_ms}ms)' if item.delay_ms else ''}",
            extra={"queue": self.name, "item_id": item.id},
        )
        self._cycle()

    def _drop_pending(self, id: str, reason: str) -> bool:
        """
        Cancel the not-yet-started item with the given id.

        Queue and chamber never hold two items with the same id, so at most
        one item is dropped.
        """
        for item in self._queue:
            if item.id == id:
                self._queue.remove(item)
                item.cancel(reason)
                return True

        chambered = self._chamber.get_chambered()
        if chambered is not None and chambered.id == id:
            self._chamber.dechamber()
            chambered.cancel(reason)
            return True

        return False

    def _cycle(self) -> None:
        """Make the next automatic scheduling decision after any state change."""
        if not self._queue:
            if not self._chamber.is_occupied() and not self._executor.is_executing():
                self._release_finish_waiters()
        elif self.auto_execute:
            self._advance()
        self._update_pending()

    def _advance(self) -> Optional[QueuedItem]:
        """Chamber the head item if the chamber and the execution slot are free."""
        if self._chamber.is_occupied() or self._executor.is_executing():
            return None

        item = self._queue.popleft()
        logger.log(
            self._trace_level,
            f"Chambering function{f' with ID: {item.id}' if item.id else ''}",
            extra={"queue": self.name, "item_id": item.id},
        )
        if not self._chamber.chamber(item):
            # Unreachable while the checks above hold; keep the item rather than lose it
            self._queue.appendleft(item)
            return None
        return item

    def _update_pending(self) -> None:
        if self.metrics:
            self.metrics.set_pending(self.name, self.size())

    async def execute_next(self) -> Optional[HistoryEntry]:
        """
        Run the head item now, honouring its delay, and wait for it to settle.

        Meant for queues created with ``auto_execute=False``.

        Returns:
            The item's history entry, or None if nothing was started (queue
            empty or busy) or the item was dropped during its delay
        """
        if not self._queue or self._chamber.is_occupied() or self._executor.is_executing():
            return None

        head = self._queue[0]
        if head.completion is None:
            head.completion = asyncio.get_running_loop().create_future()
        completion = head.completion

        item = self._advance()
        if item is None:
            return None
        self._update_pending()

        await asyncio.wait([completion])
        if not completion.cancelled():
            # Mark the exception retrieved; callers read it from the entry
            completion.exception()
        return item.outcome

    async def execute_queue(self) -> list[HistoryEntry]:
        """
        Drain the queue one item at a time.

        Does nothing if an item is already chambered or executing.

        Returns:
            History entries of the items this call executed, in order
        """
        entries: list[HistoryEntry] = []
        while (
            self._queue
            and not self._chamber.is_occupied()
            and not self._executor.is_executing()
        ):
            entry = await self.execute_next()
            if entry is not None:
                entries.append(entry)
        return entries

    def _release_finish_waiters(self) -> None:
        if not self._finish_waiters:
            return
        logger.log(
            self._trace_level,
            f"Queue idle, releasing {len(self._finish_waiters)} waiter(s)",
            extra={"queue": self.name},
        )
        waiters, self._finish_waiters = self._finish_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _is_idle(self) -> bool:
        return (
            not self._queue
            and not self._chamber.is_occupied()
            and not self._executor.is_executing()
        )

    async def wait_for_finish(self) -> None:
        """Wait until nothing is queued, chambered or executing."""
        if self._is_idle():
            return
        waiter = asyncio.get_running_loop().create_future()
        self._finish_waiters.append(waiter)
        await waiter

    def size(self) -> int:
        """Number of pending items (queued plus chambered); excludes the executing item."""
        return len(self._queue) + (1 if self._chamber.is_occupied() else 0)

    def is_empty(self) -> bool:
        """Check if nothing is waiting in the queue proper."""
        return len(self._queue) == 0

    def is_executing(self) -> bool:
        return self._executor.is_executing()

    def get_executing(self) -> Optional[QueuedItem]:
        return self._executor.get_executing()

    def clear(self) -> int:
        """
        Drop every queued and chambered item.

        An in-flight execution is left running.

        Returns:
            Number of items removed
        """
        removed: list[QueuedItem] = []
        chambered = self._chamber.dechamber()
        if chambered is not None:
            removed.append(chambered)
        removed.extend(self._queue)
        self._queue.clear()

        for item in removed:
            item.cancel("cleared")
        self._removed += len(removed)
        if self.metrics and removed:
            self.metrics.record_cancelled(self.name, "cleared", len(removed))

        logger.log(
            self._trace_level,
            f"Cleared {len(removed)} function(s)",
            extra={"queue": self.name},
        )
        self._cycle()
        return len(removed)

    def find_function(self, id: str) -> Optional[QueuedItem]:
        """
        Find a not-yet-started item by id.

        Searches the queue first, then the chamber.
        """
        for item in self._queue:
            if item.id == id:
                return item
        chambered = self._chamber.get_chambered()
        if chambered is not None and chambered.id == id:
            return chambered
        return None

    def has_function(self, id: str) -> bool:
        return self.find_function(id) is not None

    def remove_function(self, id: str) -> bool:
        """
        Remove a not-yet-started item by id.

        Returns:
            True if an item was found and removed
        """
        removed = self._drop_pending(id, reason="removed")
        if removed:
            self._removed += 1
            if self.metrics:
                self.metrics.record_cancelled(self.name, "removed")
            logger.log(
                self._trace_level,
                f"Removed function with ID: {id}",
                extra={"queue": self.name, "item_id": id},
            )
            self._cycle()
        return removed

    def get_execution_history(self) -> list[HistoryEntry]:
        """Get a copy of the execution history, oldest first."""
        return self._history.get_history()

    def clear_history(self) -> None:
        self._history.clear()

    def get_stats(self) -> QueueStats:
        """
        Get current queue statistics.

        Returns:
            Queue statistics
        """
        return QueueStats(
            queue_name=self.name,
            queued=len(self._queue),
            chambered=self._chamber.is_occupied(),
            executing=self._executor.is_executing(),
            history_size=self._history.size(),
            max_history_size=self._history.max_history_size,
            pushed_total=self._pushed,
            replaced_total=self._replaced,
            removed_total=self._removed,
            executed_total=self._executor.executed_total,
            failed_total=self._executor.failed_total,
        )
