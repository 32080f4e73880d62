"""
Message Endpoints

Admission and cancellation of outbound messages. Admission returns as soon
as the message is queued; delivery happens in the background.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from src.api.models.messages import EnqueueRequest, EnqueueResponse
from src.message_queue import MessageQueueError, MessageQueueService

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.post("", status_code=202, response_model=EnqueueResponse)
async def enqueue_message(request: Request, body: EnqueueRequest):
    """
    Queue an outbound message.

    Returns:
        202 with the queue id, or 503 if the queue is not accepting messages
    """
    queue: MessageQueueService = request.app.state.queue

    try:
        message_id = await queue.enqueue(body.payload, body.priority)
    except MessageQueueError as e:
        logger.error(f"Rejected message: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "error": str(e)
            }
        )

    return EnqueueResponse(message_id=message_id)


@router.delete("/{message_id}")
async def cancel_message(request: Request, message_id: str):
    """
    Cancel a message that has not been handed to the transport yet.

    Returns:
        200 if removed, 404 if unknown, delivered, dropped or in flight
    """
    queue: MessageQueueService = request.app.state.queue

    if not queue.cancel(message_id):
        return JSONResponse(
            status_code=404,
            content={
                "status": "error",
                "error": f"Message {message_id} is not cancellable"
            }
        )

    return {"status": "cancelled", "message_id": message_id}
