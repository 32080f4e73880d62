"""
Message Queue System

Provides async outbound delivery with:
- Priority ordering with FIFO within each priority class
- Single-flight dispatch in bounded concurrent batches
- Pluggable transports
- Retry logic with exponential backoff
- Terminal drop after max attempts
"""

from src.message_queue.base import (
    DeliveryOutcome,
    DispatchInvariantError,
    MessageQueueError,
    Priority,
    QueueClosedError,
    QueuedMessage,
    QueueHaltedError,
    QueueStatus,
)
from src.message_queue.retry import RetryScheduler, backoff_delay
from src.message_queue.service import MessageQueueService
from src.message_queue.transport import CallbackTransport, SimulatedTransport, Transport

__all__ = [
    "Priority",
    "QueuedMessage",
    "QueueStatus",
    "DeliveryOutcome",
    "MessageQueueError",
    "QueueClosedError",
    "QueueHaltedError",
    "DispatchInvariantError",
    "RetryScheduler",
    "backoff_delay",
    "MessageQueueService",
    "Transport",
    "CallbackTransport",
    "SimulatedTransport",
]
