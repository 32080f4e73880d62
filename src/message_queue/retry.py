"""
Retry Scheduler

Holds failed messages until their backoff delay elapses, then hands them
back to the queue. Retries are entries in a single time-ordered heap served
by one background task rather than one timer per message.
"""

import asyncio
import heapq
import itertools
from typing import Callable, Optional
from loguru import logger

from src.message_queue.base import QueuedMessage


def backoff_delay(attempt: int, base_delay: float) -> float:
    """
    Binary exponential backoff.

    Args:
        attempt: Number of attempts already made (1-based)
        base_delay: Base unit in seconds

    Returns:
        Delay in seconds: 2^attempt * base_delay
    """
    return (2 ** attempt) * base_delay


class RetryScheduler:
    """
    Time-ordered holding area for messages awaiting a retry.

    When an entry comes due and its message is still held (not cancelled),
    the message is removed from the holding area and passed to on_ready.

    Usage:
        scheduler = RetryScheduler(on_ready=queue_readmit, base_delay=1.0)
        await scheduler.start()
        scheduler.schedule(message, attempt=1)   # due in ~2s
    """

    def __init__(
        self,
        on_ready: Callable[[QueuedMessage], None],
        base_delay: float = 1.0,
    ):
        """
        Initialize retry scheduler.

        Args:
            on_ready: Called with a message once its delay elapsed
            base_delay: Backoff base unit in seconds
        """
        if base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {base_delay}")

        self._on_ready = on_ready
        self._base_delay = base_delay
        self._heap: list[tuple[float, int, str]] = []
        self._held: dict[str, tuple[int, QueuedMessage]] = {}
        self._counter = itertools.count()
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def base_delay(self) -> float:
        return self._base_delay

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def __len__(self) -> int:
        return len(self._held)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._held

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self._base_delay)

    def schedule(self, message: QueuedMessage, attempt: int) -> float:
        """
        Hold a message until its backoff delay elapses.

        Scheduling an id that is already held is a no-op, so a message is
        re-admitted at most once per schedule.

        Args:
            message: Message that just failed
            attempt: Attempts made so far

        Returns:
            Delay in seconds until the message is re-admitted
        """
        delay = self.delay_for(attempt)

        if message.id in self._held:
            logger.debug(f"Retry already scheduled for {message.id}, ignoring duplicate")
            return delay

        due = asyncio.get_running_loop().time() + delay
        token = next(self._counter)
        self._held[message.id] = (token, message)
        heapq.heappush(self._heap, (due, token, message.id))

        # Wake the runner in case this entry is now the earliest
        self._wakeup.set()
        return delay

    def cancel(self, message_id: str) -> bool:
        """
        Discard a held message so it is never re-admitted.

        Args:
            message_id: Queue id of the message

        Returns:
            True if the message was held
        """
        # The heap entry stays behind and is skipped when it comes due
        return self._held.pop(message_id, None) is not None

    async def start(self) -> None:
        """Start the background runner. Calling twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="retry-scheduler")

    async def stop(self) -> list[QueuedMessage]:
        """
        Stop the runner and clear the holding area.

        Returns:
            Messages that were still waiting for a retry
        """
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        abandoned = [message for _, message in self._held.values()]
        self._held.clear()
        self._heap.clear()
        return abandoned

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()

        while True:
            if not self._heap:
                await self._wakeup.wait()
                self._wakeup.clear()
                continue

            due, token, message_id = self._heap[0]
            remaining = due - loop.time()
            if remaining > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass
                self._wakeup.clear()
                continue

            heapq.heappop(self._heap)
            held = self._held.get(message_id)
            if held is None or held[0] != token:
                # Cancelled, or superseded by a newer schedule
                continue

            del self._held[message_id]
            logger.debug(f"Retry due for {message_id}, re-admitting")
            self._on_ready(held[1])
