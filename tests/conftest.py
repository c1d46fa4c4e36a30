"""Shared pytest fixtures for function queue tests."""

import asyncio
import os
from typing import Any, AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from async_function_queue.config.base import ENV_PREFIX
from async_function_queue.metrics import QueueMetrics
from async_function_queue.queue import AsyncFunctionQueue


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep AFQ_* variables from the outer environment out of tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)


@pytest_asyncio.fixture
async def queue() -> AsyncGenerator[AsyncFunctionQueue, None]:
    """Create an AsyncFunctionQueue and drain it after the test."""
    q = AsyncFunctionQueue(name="test")
    yield q
    q.clear()
    await asyncio.wait_for(q.wait_for_finish(), timeout=2.0)


@pytest.fixture(scope="function")
def registry() -> CollectorRegistry:
    """Create an isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture(scope="function")
def queue_metrics(registry: CollectorRegistry) -> QueueMetrics:
    """Create a metrics collector bound to an isolated registry."""
    return QueueMetrics(registry=registry)


class Recorder:
    """Collects the order in which simulated functions ran."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def action(
        self,
        label: str,
        result: Any = None,
        error: Optional[BaseException] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> Callable[[], Any]:
        """Build an async function that records its label when it runs."""

        async def run() -> Any:
            self.calls.append(label)
            if gate is not None:
                await gate.wait()
            if error is not None:
                raise error
            return label if result is None else result

        return run


@pytest.fixture(scope="function")
def recorder() -> Recorder:
    """Create a call recorder."""
    return Recorder()
