"""
Message Queue Service

Accepts outbound messages, orders them by priority and admission time, and
delivers them through a Transport in bounded concurrent batches. Failed
attempts are retried with exponential backoff until max_attempts is reached.
"""

import asyncio
import itertools
import time
import uuid
from typing import Any, Awaitable, Callable, Iterator, Optional
from loguru import logger

from src.config import get_settings
from src.message_queue.base import (
    DeliveryOutcome,
    DispatchInvariantError,
    Priority,
    QueueClosedError,
    QueuedMessage,
    QueueHaltedError,
    QueueStatus,
)
from src.message_queue.retry import RetryScheduler
from src.message_queue.transport import Transport
from src.monitoring.performance import PerformanceMonitor, get_performance_monitor
from src.utils.observability import log_delivery_event

OutcomeCallback = Callable[[QueuedMessage, DeliveryOutcome], Awaitable[None]]


class MessageQueueService:
    """
    In-memory outbound delivery queue.

    Dispatch is single-flight: at most one dispatch cycle runs at a time and
    triggers while it runs are coalesced into it. A cycle sorts the pending
    set (priority descending, then FIFO), splits it into batches of
    batch_size, and sends each batch concurrently, waiting for every
    outcome before the next batch starts.

    All state is mutated on the event loop, so no lock is needed.

    Usage:
        queue = MessageQueueService(transport=CallbackTransport(push))
        await queue.start()
        message_id = await queue.enqueue({"to": "..."}, priority="high")
        ...
        await queue.stop()
    """

    def __init__(
        self,
        transport: Transport,
        monitor: Optional[PerformanceMonitor] = None,
        batch_size: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        shutdown_timeout: Optional[float] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ):
        """
        Initialize queue.

        Args:
            transport: Delivery capability
            monitor: Performance monitor (default: process-wide instance)
            batch_size: Messages sent concurrently per batch
            max_attempts: Attempts before a message is dropped
            retry_base_delay: Backoff base unit in seconds
            shutdown_timeout: Seconds stop() waits for the running batch
            on_outcome: Async callback invoked after every attempt
        """
        settings = get_settings()
        self._transport = transport
        self._monitor = monitor or get_performance_monitor()
        self._batch_size = batch_size if batch_size is not None else settings.dispatch_batch_size
        self._max_attempts = max_attempts if max_attempts is not None else settings.dispatch_max_attempts
        self._shutdown_timeout = (
            shutdown_timeout if shutdown_timeout is not None else settings.shutdown_timeout_seconds
        )
        base_delay = retry_base_delay if retry_base_delay is not None else settings.retry_base_delay_seconds

        if self._batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self._batch_size}")
        if self._max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self._max_attempts}")

        self._on_outcome = on_outcome
        self._retry = RetryScheduler(on_ready=self._readmit, base_delay=base_delay)

        self._pending: dict[str, QueuedMessage] = {}
        self._in_flight: dict[str, QueuedMessage] = {}
        self._sequence = itertools.count()

        self._running = False
        self._closed = False
        self._dispatching = False
        self._dispatch_task: Optional[asyncio.Task] = None
        self._dispatch_cycles = 0
        self._failure: Optional[BaseException] = None

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    @property
    def retry_scheduler(self) -> RetryScheduler:
        return self._retry

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def running(self) -> bool:
        return self._running

    @property
    def dispatch_cycles(self) -> int:
        """Number of dispatch cycles started since creation."""
        return self._dispatch_cycles

    async def start(self) -> None:
        """
        Start the retry scheduler and dispatch anything already admitted.

        Raises:
            QueueClosedError: The queue was stopped; queues are not restartable
            QueueHaltedError: The dispatcher failed fatally
        """
        self._raise_if_unavailable()
        if self._running:
            logger.warning("Message queue already running")
            return

        self._running = True
        await self._retry.start()
        logger.info(
            f"🚀 Message queue started (batch_size={self._batch_size}, "
            f"max_attempts={self._max_attempts}, retry_base_delay={self._retry.base_delay}s)"
        )
        self._trigger_dispatch()

    async def stop(self) -> None:
        """
        Stop the queue.

        Gracefully shuts down:
        1. Stops accepting new messages
        2. Lets the running batch finish (up to shutdown_timeout)
        3. Discards pending and retry-held messages (the queue is volatile)
        """
        if self._closed:
            return

        logger.info("Stopping message queue...")
        self._closed = True
        self._running = False

        task = self._dispatch_task
        if task is not None and not task.done():
            _, still_running = await asyncio.wait({task}, timeout=self._shutdown_timeout)
            if still_running:
                logger.warning("Timeout waiting for dispatch, cancelling in-flight batch")
                task.cancel()
                await asyncio.wait({task})

        abandoned = await self._retry.stop()
        discarded = len(self._pending) + len(self._in_flight) + len(abandoned)
        if discarded:
            logger.warning(f"Discarding {discarded} undelivered messages on shutdown")
        self._pending.clear()
        self._in_flight.clear()

        logger.info("🛑 Message queue stopped")

    async def enqueue(self, payload: Any, priority: Priority | str = Priority.NORMAL) -> str:
        """
        Admit a message for delivery.

        Returns immediately; delivery happens in the background.

        Args:
            payload: Opaque message payload
            priority: "high", "normal" or "low"

        Returns:
            Queue id of the message

        Raises:
            ValueError: Unknown priority
            QueueClosedError: The queue was stopped
            QueueHaltedError: The dispatcher failed fatally
        """
        self._raise_if_unavailable()

        message = QueuedMessage(
            id=str(uuid.uuid4()),
            payload=payload,
            priority=Priority(priority),
            sequence=next(self._sequence),
        )
        self._pending[message.id] = message

        logger.debug(f"Enqueued message {message.id} (priority={message.priority.value})")

        self._trigger_dispatch()
        return message.id

    def cancel(self, message_id: str) -> bool:
        """
        Remove a message that has not been picked into a batch yet.

        Best effort: a message already handed to the transport cannot be
        cancelled. Messages waiting for a retry can.

        Args:
            message_id: Queue id of the message

        Returns:
            True if the message was removed
        """
        if self._pending.pop(message_id, None) is not None:
            logger.info(f"Cancelled pending message {message_id}")
            return True
        if self._retry.cancel(message_id):
            logger.info(f"Cancelled message {message_id} awaiting retry")
            return True
        return False

    def get_status(self) -> QueueStatus:
        """Snapshot of the queue, safe to call while dispatching."""
        return QueueStatus(
            queue_size=len(self._pending) + len(self._in_flight) + len(self._retry),
            dispatching=self._dispatching,
            transport_status=self._transport.get_status(),
            pending=len(self._pending),
            in_flight=len(self._in_flight),
            awaiting_retry=len(self._retry),
            running=self._running,
        )

    def _raise_if_unavailable(self) -> None:
        if self._failure is not None:
            raise QueueHaltedError(
                f"Dispatcher halted after an internal error: {self._failure}"
            ) from self._failure
        if self._closed:
            raise QueueClosedError("Message queue is stopped")

    def _trigger_dispatch(self) -> None:
        if not self._running or self._dispatching or not self._pending:
            return

        self._dispatching = True
        self._dispatch_cycles += 1
        self._dispatch_task = asyncio.create_task(self._dispatch(), name="queue-dispatch")
        self._dispatch_task.add_done_callback(self._on_dispatch_done)

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        self._failure = error
        self._running = False
        logger.opt(exception=error).critical(f"Dispatcher halted: {error}")

    def _readmit(self, message: QueuedMessage) -> None:
        if self._closed:
            return
        self._pending[message.id] = message
        self._trigger_dispatch()

    async def _dispatch(self) -> None:
        try:
            # Messages admitted while a snapshot is processed are picked up
            # by the next snapshot of the same cycle
            while self._running and self._pending:
                for batch in self._batches(self._order_pending()):
                    if not self._running:
                        break
                    await self._dispatch_batch(batch)
        finally:
            self._dispatching = False

    def _order_pending(self) -> list[QueuedMessage]:
        try:
            ordered = sorted(
                self._pending.values(),
                key=lambda m: (-m.priority.rank, m.enqueued_at, m.sequence),
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise DispatchInvariantError(f"Cannot order pending messages: {e}") from e
        return ordered

    def _batches(self, ordered: list[QueuedMessage]) -> Iterator[list[QueuedMessage]]:
        for start in range(0, len(ordered), self._batch_size):
            batch = ordered[start:start + self._batch_size]
            if not batch or len(batch) > self._batch_size:
                raise DispatchInvariantError(
                    f"Batch of {len(batch)} messages at offset {start} violates batch_size={self._batch_size}"
                )
            yield batch

    async def _dispatch_batch(self, batch: list[QueuedMessage]) -> None:
        picked = []
        for message in batch:
            # Cancelled since the snapshot was taken
            if self._pending.pop(message.id, None) is None:
                continue
            if message.id in self._in_flight:
                raise DispatchInvariantError(f"Message {message.id} is already in flight")
            self._in_flight[message.id] = message
            picked.append(message)

        if not picked:
            return

        logger.debug(f"Dispatching batch of {len(picked)}: {[m.id for m in picked]}")
        await asyncio.gather(*(self._deliver(message) for message in picked))

    async def _deliver(self, message: QueuedMessage) -> None:
        message.attempts += 1
        if message.attempts > self._max_attempts:
            raise DispatchInvariantError(
                f"Message {message.id} reached attempt {message.attempts} of {self._max_attempts}"
            )

        started = time.perf_counter()
        try:
            delivered = await self._transport.send(message.payload)
        except Exception as e:
            # Transport errors are delivery failures, not queue failures
            delivered = False
            message.last_error = str(e) or type(e).__name__
            logger.warning(f"Transport raised for {message.id}: {message.last_error}")
        duration_ms = (time.perf_counter() - started) * 1000

        self._monitor.record_response_time(duration_ms)
        self._in_flight.pop(message.id, None)

        if delivered:
            self._retry.cancel(message.id)
            self._monitor.record_sent()
            outcome = DeliveryOutcome.DELIVERED
            log_delivery_event(
                "delivered", message.id, message.attempts, duration_ms,
                priority=message.priority.value,
            )
        elif message.attempts < self._max_attempts:
            delay = self._retry.schedule(message, message.attempts)
            outcome = DeliveryOutcome.RETRY_SCHEDULED
            log_delivery_event(
                "retry_scheduled", message.id, message.attempts, duration_ms,
                priority=message.priority.value, delay_seconds=delay,
            )
        else:
            self._monitor.record_error()
            outcome = DeliveryOutcome.DROPPED
            log_delivery_event(
                "dropped", message.id, message.attempts, duration_ms,
                priority=message.priority.value, error=message.last_error,
            )

        await self._notify(message, outcome)

    async def _notify(self, message: QueuedMessage, outcome: DeliveryOutcome) -> None:
        if self._on_outcome is None:
            return
        try:
            await self._on_outcome(message, outcome)
        except Exception as e:
            logger.exception(f"Outcome callback failed for {message.id}: {e}")
