"""Scripted playback of simulated functions through a queue."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from .queue import AsyncFunctionQueue, HistoryEntry

logger = logging.getLogger(__name__)


class ReplayScriptError(ValueError):
    """Raised when a replay script cannot be parsed."""

    pass


class SimulatedFailure(Exception):
    """Raised by a simulated function whose step asks it to fail."""

    pass


@dataclass
class ReplayStep:
    """One line of a replay script."""

    label: Optional[str] = None
    id: Optional[str] = None
    delay_ms: Optional[float] = None
    duration_ms: float = 0.0
    fail: bool = False
    sleep_ms: float = 0.0
    wait: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int) -> "ReplayStep":
        """
        Build a step from its JSON form.

        Args:
            data: Step mapping from the script
            index: Position in the script, used for the default label

        Raises:
            ReplayScriptError: If the step has unknown keys or bad values
        """
        if not isinstance(data, dict):
            raise ReplayScriptError(f"Step {index} must be an object, got {type(data).__name__}")

        unknown = set(data) - {"label", "id", "delay_ms", "duration_ms", "fail", "sleep_ms", "wait"}
        if unknown:
            raise ReplayScriptError(f"Step {index} has unknown keys: {', '.join(sorted(unknown))}")

        for key in ("fail", "wait"):
            if key in data and not isinstance(data[key], bool):
                raise ReplayScriptError(f"Step {index}: {key} must be true or false, got {data[key]!r}")

        try:
            step = cls(
                label=data.get("label", data.get("id") or f"step-{index}"),
                id=data.get("id"),
                delay_ms=float(data["delay_ms"]) if data.get("delay_ms") is not None else None,
                duration_ms=float(data.get("duration_ms", 0.0)),
                fail=data.get("fail", False),
                sleep_ms=float(data.get("sleep_ms", 0.0)),
                wait=data.get("wait", False),
            )
        except (TypeError, ValueError) as e:
            raise ReplayScriptError(f"Step {index}: {e}") from e

        if step.duration_ms < 0 or step.sleep_ms < 0 or (step.delay_ms or 0) < 0:
            raise ReplayScriptError(f"Step {index}: times must not be negative")
        return step

    def build_action(self) -> Callable[[], Awaitable[Any]]:
        """Create the simulated async function for this step."""
        label, duration, fail = self.label, self.duration_ms, self.fail

        async def action() -> Any:
            if duration:
                await asyncio.sleep(duration / 1000.0)
            if fail:
                raise SimulatedFailure(f"{label} failed")
            return label

        return action


def load_script(source: Union[str, Path, dict[str, Any]]) -> list[ReplayStep]:
    """
    Load replay steps from a JSON file or an already-parsed mapping.

    The script is ``{"steps": [...]}`` or a bare list of steps.

    Raises:
        ReplayScriptError: If the script is malformed
    """
    if isinstance(source, dict):
        data: Any = source
    else:
        try:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ReplayScriptError(f"Invalid JSON in {source}: {e}") from e
        except OSError as e:
            raise ReplayScriptError(f"Cannot read {source}: {e}") from e

    if isinstance(data, dict):
        data = data.get("steps")
    if not isinstance(data, list):
        raise ReplayScriptError("Script must contain a list of steps")

    return [ReplayStep.from_dict(item, index) for index, item in enumerate(data)]


async def _drain(queue: AsyncFunctionQueue) -> None:
    if not queue.auto_execute:
        await queue.execute_queue()
    await queue.wait_for_finish()


async def replay(queue: AsyncFunctionQueue, steps: list[ReplayStep]) -> list[HistoryEntry]:
    """
    Push each step's simulated function onto the queue and wait for it to drain.

    Queues without auto-execution are drained by hand at every ``wait`` step
    and at the end of the script.

    Args:
        queue: Queue to drive
        steps: Parsed script

    Returns:
        The queue's execution history after the final step
    """
    logger.info(f"Replaying {len(steps)} step(s) on queue {queue.name}")

    for step in steps:
        if step.sleep_ms:
            await asyncio.sleep(step.sleep_ms / 1000.0)
        if step.wait:
            await _drain(queue)
            continue
        pending = queue.push(step.build_action(), id=step.id, delay_ms=step.delay_ms)
        logger.debug(f"Pushed {step.label} ({pending} pending)")

    await _drain(queue)
    return queue.get_execution_history()
