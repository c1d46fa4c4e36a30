"""
Delay chamber holding the next item while its delay window runs.
"""
import asyncio
import logging
from typing import Callable, Optional

from .executor import ExecutionSlot
from .models import ItemState, QueuedItem

logger = logging.getLogger(__name__)


class DelayChamber:
    """
    Holds at most one item until its delay expires, then hands it to the
    execution slot.

    The chamber owns the timer handle; every dechamber path cancels it, so a
    cancelled item can never fire.
    """

    def __init__(
        self,
        executor: ExecutionSlot,
        queue_name: str = "default",
        debug: bool = False,
        on_handoff: Optional[Callable[[], None]] = None,
    ):
        self.executor = executor
        self._on_handoff = on_handoff
        self.queue_name = queue_name
        self._trace_level = logging.INFO if debug else logging.DEBUG
        self._item: Optional[QueuedItem] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    def is_occupied(self) -> bool:
        return self._item is not None

    def get_chambered(self) -> Optional[QueuedItem]:
        """Peek at the chambered item without removing it."""
        return self._item

    def chamber(self, item: QueuedItem) -> bool:
        """
        Load an item into the chamber.

        Items without a delay are handed to the execution slot immediately;
        otherwise a timer is armed for ``item.delay_ms``.

        Args:
            item: Item taken from the head of the queue

        Returns:
            True if the item was accepted, False if the chamber or the
            execution slot is busy
        """
        if self._item is not None or self.executor.is_executing():
            return False

        item.transition(ItemState.CHAMBERED)
        self._item = item

        if item.delay_ms is None:
            self._fire()
            return True

        logger.log(
            self._trace_level,
            f"Waiting {item.delay_ms}ms before executing"
            f"{f' function with ID: {item.id}' if item.id else ''}",
            extra={"queue": self.queue_name, "item_id": item.id},
        )
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(item.delay_ms / 1000.0, self._fire)
        return True

    def dechamber(self) -> Optional[QueuedItem]:
        """
        Empty the chamber and cancel any pending timer.

        Returns:
            The item that was chambered, or None
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        item = self._item
        self._item = None
        return item

    def _fire(self) -> None:
        """Hand the chambered item to the execution slot."""
        item = self.dechamber()
        if item is not None:
            self.executor.fire(item)
            if self._on_handoff is not None:
                self._on_handoff()
