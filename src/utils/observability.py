"""
Structured Logging & Observability
Delivery logging that's both human-readable and machine-parseable.
"""
import sys
from loguru import logger
from typing import Any
from src.config import get_settings


def configure_logging():
    """
    Configure loguru for production observability.

    In development: Human-readable colorized output
    In production: Structured JSON logs for ingestion (ELK, Datadog, etc.)
    """
    settings = get_settings()

    # Remove default handler
    logger.remove()

    if not settings.enable_structured_logging:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            level=settings.log_level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=settings.log_level,
            serialize=True,  # Output as JSON
        )

    logger.info(f"Logging configured: level={settings.log_level}, structured={settings.enable_structured_logging}")


def log_delivery_event(
    event: str,
    message_id: str,
    attempt: int,
    duration_ms: float | None = None,
    **context: Any
):
    """
    Structured logging for a single delivery attempt outcome.

    Args:
        event: Outcome name (e.g., "delivered", "retry_scheduled", "dropped")
        message_id: Queue id of the message
        attempt: Attempt number that produced this outcome (1-based)
        duration_ms: Transport latency in milliseconds
        **context: Additional context (priority, delay, error, etc.)

    Example:
        >>> log_delivery_event(
        ...     event="retry_scheduled",
        ...     message_id="3f1c...",
        ...     attempt=1,
        ...     duration_ms=87.2,
        ...     delay_seconds=2.0
        ... )
    """
    log_data = {
        "event_type": "delivery",
        "event": event,
        "message_id": message_id,
        "attempt": attempt,
    }

    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)

    log_data.update(context)

    level = "ERROR" if event == "dropped" else "INFO"
    if event == "retry_scheduled":
        level = "WARNING"

    logger.bind(**log_data).log(level, f"Delivery {event} | {message_id} | attempt {attempt}")
