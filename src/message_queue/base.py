"""
Queue Data Model

Messages, priorities, delivery outcomes and the errors raised by the
delivery queue.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class Priority(str, Enum):
    """Delivery priority class. Higher rank is dispatched first."""
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.HIGH: 3,
    Priority.NORMAL: 2,
    Priority.LOW: 1,
}


class DeliveryOutcome(str, Enum):
    """Result of a single delivery attempt."""
    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    DROPPED = "dropped"


class QueuedMessage(BaseModel):
    """
    Outbound message held by the queue.

    Attributes:
        id: Unique queue identifier, assigned at enqueue time
        payload: Opaque caller data handed to the transport as-is
        priority: Priority class (high, normal, low)
        enqueued_at: Admission timestamp, used for FIFO ordering
        sequence: Admission counter, breaks enqueued_at ties
        attempts: Delivery attempts made so far
        last_error: Last transport exception text, if any
    """

    id: str
    payload: Any
    priority: Priority = Priority.NORMAL
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sequence: int = 0
    attempts: int = 0
    last_error: Optional[str] = None


class QueueStatus(BaseModel):
    """
    Read-only snapshot of the queue.

    Attributes:
        queue_size: Messages held (pending + in flight + awaiting retry)
        dispatching: Whether a dispatch cycle is active
        transport_status: Transport-reported diagnostics
        pending: Messages eligible for the next batch
        in_flight: Messages with an outstanding transport call
        awaiting_retry: Messages held by the retry scheduler
        running: Whether the queue has been started and not stopped
    """
    queue_size: int = 0
    dispatching: bool = False
    transport_status: dict[str, Any] = Field(default_factory=dict)
    pending: int = 0
    in_flight: int = 0
    awaiting_retry: int = 0
    running: bool = False


class MessageQueueError(Exception):
    """Base class for delivery queue errors."""
    pass


class QueueClosedError(MessageQueueError):
    """Raised when a message is enqueued after the queue was stopped."""
    pass


class QueueHaltedError(MessageQueueError):
    """Raised when a message is enqueued after the dispatcher failed fatally."""
    pass


class DispatchInvariantError(MessageQueueError):
    """Ordering or batching produced an impossible state. Indicates a bug."""
    pass
