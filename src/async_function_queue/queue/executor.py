"""
Single-flight execution slot for queued functions.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from ..metrics import QueueMetrics
from .history import HistoryLedger
from .models import HistoryEntry, ItemState, QueuedItem, QueueInvariantError

logger = logging.getLogger(__name__)


class ExecutionSlot:
    """
    Runs at most one queued function at a time and records its outcome.

    Failures are captured in the history ledger and never stop the queue:
    once the action settles the slot frees itself and calls ``on_complete``.
    A ``CancelledError`` raised by the action counts as a failure; only
    cancelling the execution task itself skips the history.
    """

    def __init__(
        self,
        history: HistoryLedger,
        on_complete: Callable[[], None],
        queue_name: str = "default",
        debug: bool = False,
        metrics: Optional[QueueMetrics] = None,
    ):
        """
        Initialize the execution slot.

        Args:
            history: Ledger receiving one entry per completed execution
            on_complete: Called after every settlement (the orchestrator's cycle)
            queue_name: Queue name used in log records and metric labels
            debug: Log lifecycle events at INFO instead of DEBUG
            metrics: Optional metrics collector
        """
        self.history = history
        self.queue_name = queue_name
        self.metrics = metrics
        self._on_complete = on_complete
        self._trace_level = logging.INFO if debug else logging.DEBUG
        self._current: Optional[QueuedItem] = None
        self._task: Optional[asyncio.Task] = None
        self.executed_total = 0
        self.failed_total = 0

    def is_executing(self) -> bool:
        """Check if an item is currently running."""
        return self._current is not None

    def get_executing(self) -> Optional[QueuedItem]:
        """Get the item currently running, if any."""
        return self._current

    def fire(self, item: QueuedItem) -> None:
        """
        Start executing an item.

        The slot is marked occupied before this returns; the action itself
        runs in a task on the current event loop.

        Args:
            item: Item handed over by the delay chamber

        Raises:
            QueueInvariantError: If another item is already executing
        """
        if self._current is not None:
            raise QueueInvariantError(
                f"Cannot fire {item.id!r}: {self._current.id!r} is already executing"
            )

        item.transition(ItemState.EXECUTING)
        self._current = item
        logger.log(
            self._trace_level,
            f"Executing function{f' with ID: {item.id}' if item.id else ''}",
            extra={"queue": self.queue_name, "item_id": item.id},
        )
        self._task = asyncio.get_running_loop().create_task(self._execute(item))

    async def _execute(self, item: QueuedItem) -> None:
        """Await the item's action and record the outcome."""
        started = time.monotonic()
        try:
            result = await item.action()
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                # The execution task itself is being cancelled (e.g. loop shutdown)
                self._current = None
                if item.completion is not None and not item.completion.done():
                    item.completion.cancel()
                raise
            logger.error(
                f"Function{f' with ID: {item.id}' if item.id else ''} was cancelled from within",
                extra={"queue": self.queue_name, "item_id": item.id},
                exc_info=True,
            )
            entry = HistoryEntry(id=item.id, error=e)
            self.failed_total += 1
        except Exception as e:
            logger.error(
                f"Function{f' with ID: {item.id}' if item.id else ''} failed: {e}",
                extra={"queue": self.queue_name, "item_id": item.id},
                exc_info=True,
            )
            entry = HistoryEntry(id=item.id, error=e)
            self.failed_total += 1
        else:
            logger.log(
                self._trace_level,
                f"Function{f' with ID: {item.id}' if item.id else ''} executed successfully",
                extra={"queue": self.queue_name, "item_id": item.id},
            )
            entry = HistoryEntry(id=item.id, data=result)

        self.executed_total += 1
        self.history.add_result(entry)
        item.outcome = entry
        item.transition(ItemState.COMPLETED)
        self._current = None

        if self.metrics:
            self.metrics.record_execution(
                self.queue_name,
                succeeded=entry.succeeded,
                duration_seconds=time.monotonic() - started,
            )

        completion = item.completion
        if completion is not None and not completion.done():
            if isinstance(entry.error, asyncio.CancelledError):
                completion.cancel()
            elif entry.error is not None:
                completion.set_exception(entry.error)
            else:
                completion.set_result(entry.data)

        self._on_complete()
