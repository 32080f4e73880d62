"""
Health and Readiness Endpoints

Kubernetes-compatible health probes for load balancers and orchestration.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

router = APIRouter(tags=["Health"])

# API version - single source of truth
API_VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if service is running.
    Used by load balancers and monitoring systems.
    """
    return {
        "status": "healthy",
        "service": "delivery-queue",
        "version": API_VERSION
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness probe - checks if the queue accepts messages.

    Returns 200 if ready, 503 if not ready.
    """
    try:
        queue = request.app.state.queue
        status = queue.get_status()
        if not status.running:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "not_ready",
                    "reason": "Message queue not running"
                }
            )

        return {
            "status": "ready",
            "queue": "running",
            "queue_size": status.queue_size
        }

    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "reason": str(e)
            }
        )


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Delivery Queue API",
        "version": API_VERSION,
        "endpoints": {
            "health": "/health",
            "ready": "/ready",
            "metrics": "/metrics",
            "enqueue": "/messages (POST)",
            "cancel": "/messages/{message_id} (DELETE)",
            "queue_status": "/metrics/queue",
            "performance": "/metrics/performance"
        }
    }
