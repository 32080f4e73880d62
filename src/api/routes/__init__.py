"""
API Routes

Modular route definitions for the delivery queue API.
"""
from src.api.routes.health import router as health_router
from src.api.routes.messages import router as messages_router
from src.api.routes.metrics import router as metrics_router

__all__ = [
    "health_router",
    "messages_router",
    "metrics_router",
]
