"""
Delivery Transports

The queue only needs one capability from a transport: attempt to deliver a
payload and report success or failure. Concrete wire protocols live outside
this package and plug in through CallbackTransport or a Transport subclass.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional


class Transport(ABC):
    """
    Abstract delivery transport.

    Implementations must provide:
    - send: Attempt one delivery, return True on success
    - get_status: Diagnostics reported through the queue status
    """

    @abstractmethod
    async def send(self, payload: Any) -> bool:
        """
        Attempt to deliver a payload.

        Args:
            payload: Opaque message payload

        Returns:
            True if delivered, False otherwise. Raising is also
            treated as a failed attempt by the queue.
        """
        pass

    @abstractmethod
    def get_status(self) -> dict[str, Any]:
        """
        Get transport diagnostics.

        Returns:
            JSON-serializable status mapping
        """
        pass


class CallbackTransport(Transport):
    """
    Adapts an async callable into a Transport.

    Usage:
        async def push(payload) -> bool:
            ...

        transport = CallbackTransport(push, name="push")
    """

    def __init__(
        self,
        handler: Callable[[Any], Awaitable[Any]],
        name: str = "callback",
    ):
        self._handler = handler
        self.name = name
        self._calls = 0

    async def send(self, payload: Any) -> bool:
        self._calls += 1
        result = await self._handler(payload)
        return bool(result)

    def get_status(self) -> dict[str, Any]:
        return {"transport": self.name, "calls": self._calls}


class SimulatedTransport(Transport):
    """
    Randomized transport for local development and tests.

    Succeeds with probability success_rate after a uniform random latency.
    Never use it to deliver real traffic.
    """

    def __init__(
        self,
        success_rate: float = 0.9,
        min_latency: float = 0.05,
        max_latency: float = 0.15,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize simulated transport.

        Args:
            success_rate: Probability in [0, 1] that a send succeeds
            min_latency: Minimum simulated latency in seconds
            max_latency: Maximum simulated latency in seconds
            rng: Random source (seed one for deterministic tests)
        """
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {success_rate}")
        if min_latency < 0 or max_latency < min_latency:
            raise ValueError(
                f"invalid latency range [{min_latency}, {max_latency}]"
            )

        self._success_rate = success_rate
        self._min_latency = min_latency
        self._max_latency = max_latency
        self._rng = rng or random.Random()
        self._active = 0
        self._sent = 0
        self._failed = 0

    async def send(self, payload: Any) -> bool:
        self._active += 1
        try:
            await asyncio.sleep(self._rng.uniform(self._min_latency, self._max_latency))
            delivered = self._rng.random() < self._success_rate
        finally:
            self._active -= 1

        if delivered:
            self._sent += 1
        else:
            self._failed += 1
        return delivered

    def get_status(self) -> dict[str, Any]:
        return {
            "transport": "simulated",
            "active_sends": self._active,
            "sent": self._sent,
            "failed": self._failed,
            "success_rate": self._success_rate,
        }
