"""
Metrics Endpoints

Prometheus-compatible metrics, queue status and performance snapshots for
dashboards and health checks.
"""
from fastapi import APIRouter, Request
from fastapi.responses import Response, JSONResponse
from loguru import logger

from src.message_queue import MessageQueueService
from src.monitoring import prometheus


router = APIRouter(tags=["Metrics"])


@router.get("/metrics")
async def prometheus_metrics(request: Request):
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text exposition format for scraping.
    Includes:
    - Sent, received and error counters
    - Response time, throughput and error rate
    - Queue depth by state and dispatch activity

    Content-Type: text/plain; version=0.0.4; charset=utf-8
    """
    try:
        queue: MessageQueueService = request.app.state.queue
        output = prometheus.export(queue.monitor.get_metrics(), queue.get_status())

        return Response(
            content=output,
            media_type=prometheus.CONTENT_TYPE
        )

    except Exception as e:
        logger.error(f"Failed to export metrics: {e}")
        return Response(
            content=f"# Error exporting metrics: {e}\n",
            media_type="text/plain",
            status_code=500
        )


@router.get("/metrics/queue")
async def queue_status(request: Request):
    """
    Get message queue status.

    Returns:
        Queue size, dispatch state and transport diagnostics as JSON
    """
    try:
        queue: MessageQueueService = request.app.state.queue

        return {
            "status": "ok",
            "queue": queue.get_status().model_dump()
        }

    except Exception as e:
        logger.error(f"Failed to get queue status: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": str(e)
            }
        )


@router.get("/metrics/performance")
async def performance_metrics(request: Request):
    """
    Get delivery performance metrics.

    Returns:
        Counters, uptime, throughput and error rate as JSON
    """
    try:
        queue: MessageQueueService = request.app.state.queue

        return {
            "status": "ok",
            "metrics": queue.monitor.get_metrics().model_dump()
        }

    except Exception as e:
        logger.error(f"Failed to get performance metrics: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": str(e)
            }
        )
