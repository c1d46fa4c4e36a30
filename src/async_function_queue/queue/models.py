"""
Data models for the function queue.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class QueueInvariantError(RuntimeError):
    """Raised when the queue's internal bookkeeping is driven into an illegal state."""

    pass


class ItemCancelledError(Exception):
    """Raised to a ``run()`` caller whose item was dropped before it started."""

    def __init__(self, item_id: Optional[str], reason: str):
        self.item_id = item_id
        self.reason = reason
        label = f" '{item_id}'" if item_id is not None else ""
        super().__init__(f"Queued function{label} was {reason} before execution")


class ItemState(str, Enum):
    """Where a queued item currently sits in its lifecycle."""
    QUEUED = "queued"
    CHAMBERED = "chambered"
    EXECUTING = "executing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[ItemState, frozenset[ItemState]] = {
    ItemState.QUEUED: frozenset({ItemState.CHAMBERED, ItemState.CANCELLED}),
    ItemState.CHAMBERED: frozenset({ItemState.EXECUTING, ItemState.CANCELLED}),
    ItemState.EXECUTING: frozenset({ItemState.COMPLETED}),
    ItemState.COMPLETED: frozenset(),
    ItemState.CANCELLED: frozenset(),
}


@dataclass(eq=False)
class QueuedItem:
    """An async function waiting its turn in the queue."""

    action: Callable[[], Awaitable[Any]]
    id: Optional[str] = None
    delay_ms: Optional[float] = None
    enqueued_at: datetime = field(default_factory=utc_now)
    state: ItemState = ItemState.QUEUED
    # Set when a caller awaits this specific item through run() or execute_next()
    completion: Optional[asyncio.Future] = field(default=None, repr=False)
    # Filled in by the execution slot once the action settles
    outcome: Optional["HistoryEntry"] = field(default=None, repr=False)

    def transition(self, new_state: ItemState) -> None:
        """
        Move the item to a new lifecycle state.

        Args:
            new_state: State to move to

        Raises:
            QueueInvariantError: If the transition is not allowed from the current state
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise QueueInvariantError(
                f"Illegal transition for item {self.id!r}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def cancel(self, reason: str) -> None:
        """Mark the item cancelled and notify a run() caller, if any."""
        self.transition(ItemState.CANCELLED)
        if self.completion is not None and not self.completion.done():
            self.completion.set_exception(ItemCancelledError(self.id, reason))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "delay_ms": self.delay_ms,
            "enqueued_at": _isoformat(self.enqueued_at),
            "state": self.state.value,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Outcome of one completed execution."""

    id: Optional[str] = None
    data: Any = None
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "timestamp": _isoformat(self.timestamp),
        }
        if self.error is not None:
            result["error"] = f"{type(self.error).__name__}: {self.error}"
        else:
            result["data"] = self.data
        return result


@dataclass
class QueueStats:
    """Statistics about a function queue."""

    queue_name: str
    queued: int
    chambered: bool
    executing: bool
    history_size: int
    max_history_size: int
    pushed_total: int
    replaced_total: int
    removed_total: int
    executed_total: int
    failed_total: int

    @property
    def pending(self) -> int:
        return self.queued + (1 if self.chambered else 0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "queue_name": self.queue_name,
            "pending": self.pending,
            "queued": self.queued,
            "chambered": self.chambered,
            "executing": self.executing,
            "history_size": self.history_size,
            "max_history_size": self.max_history_size,
            "pushed_total": self.pushed_total,
            "replaced_total": self.replaced_total,
            "removed_total": self.removed_total,
            "executed_total": self.executed_total,
            "failed_total": self.failed_total,
        }
