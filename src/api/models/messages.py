"""
Pydantic models for the message admission endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any

from src.message_queue import Priority


class EnqueueRequest(BaseModel):
    """Outbound message submitted by an application."""
    payload: Any = Field(..., description="Opaque message payload handed to the transport")
    priority: Priority = Field(default=Priority.NORMAL, description="high, normal or low")


class EnqueueResponse(BaseModel):
    """Acknowledgment returned once the message is admitted."""
    status: str = "queued"
    message_id: str
