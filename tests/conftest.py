import asyncio
import pytest
from typing import Any, Callable, Optional

from src.message_queue import MessageQueueService, Transport
from src.monitoring import PerformanceMonitor


class RecordingTransport(Transport):
    """
    Scripted transport that records every call.

    outcomes maps a payload to the results of its successive attempts;
    payloads without a script (or with an exhausted one) succeed.
    """

    def __init__(self, outcomes: Optional[dict[Any, list[bool]]] = None, latency: float = 0.0):
        self.outcomes = {key: list(value) for key, value in (outcomes or {}).items()}
        self.latency = latency
        self.calls: list[Any] = []
        self.call_times: dict[Any, list[float]] = {}
        self.events: list[tuple[str, Any]] = []
        self.active = 0
        self.max_active = 0

    async def send(self, payload: Any) -> bool:
        loop = asyncio.get_running_loop()
        self.calls.append(payload)
        self.call_times.setdefault(payload, []).append(loop.time())
        self.events.append(("start", payload))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.latency)
        finally:
            self.active -= 1
        self.events.append(("end", payload))

        script = self.outcomes.get(payload)
        if script:
            return script.pop(0)
        return True

    def get_status(self) -> dict[str, Any]:
        return {"transport": "recording", "calls": len(self.calls)}


@pytest.fixture
def monitor():
    """Fresh monitor, isolated from the process-wide instance."""
    return PerformanceMonitor()


@pytest.fixture
def transport():
    return RecordingTransport(latency=0.01)


@pytest.fixture
def make_transport():
    """Factory for scripted recording transports."""
    return RecordingTransport


@pytest.fixture
async def make_queue(monitor):
    """Factory for unstarted queues with fast retries; all are stopped after the test."""
    created = []

    def _make_queue(transport: Transport, **overrides: Any) -> MessageQueueService:
        options = {
            "monitor": monitor,
            "batch_size": 3,
            "max_attempts": 3,
            "retry_base_delay": 0.01,
            "shutdown_timeout": 1.0,
        }
        options.update(overrides)
        service = MessageQueueService(transport=transport, **options)
        created.append(service)
        return service

    yield _make_queue

    for service in created:
        await service.stop()


@pytest.fixture
async def queue(make_queue, transport):
    """Unstarted queue over the default recording transport."""
    return make_queue(transport)


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it holds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until
