"""
FastAPI Application

Main entry point for the delivery queue API.
Handles application lifecycle and router mounting.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from loguru import logger

from src.config import settings
from src.message_queue import MessageQueueService, SimulatedTransport, Transport
from src.monitoring import get_performance_monitor
from src.utils.observability import configure_logging
from src.api.routes import health_router, messages_router, metrics_router


def build_transport() -> Transport:
    """
    Build the transport used by the API process.

    Deployments that deliver real traffic replace this with their own
    Transport (see src.message_queue.transport).
    """
    return SimulatedTransport(
        success_rate=settings.simulated_success_rate,
        min_latency=settings.simulated_min_latency_seconds,
        max_latency=settings.simulated_max_latency_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle: startup and shutdown events.

    Startup:
    - Configure logging
    - Create and start the message queue

    Shutdown:
    - Stop the queue, letting the running batch finish
    """
    configure_logging()
    logger.info("Starting delivery queue API server...")

    queue = MessageQueueService(
        transport=build_transport(),
        monitor=get_performance_monitor(),
    )
    await queue.start()

    # Store in app state for access in routes
    app.state.queue = queue

    logger.info("API server ready to accept messages")

    yield

    logger.info("Shutting down API server...")
    await queue.stop()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Delivery Queue API",
    description="Outbound message delivery queue with priority batching and retry",
    version="1.0.0",
    lifespan=lifespan
)

# Mount routers
app.include_router(health_router)
app.include_router(messages_router)
app.include_router(metrics_router)
