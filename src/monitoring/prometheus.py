"""
Prometheus Exposition

Renders monitor and queue snapshots in Prometheus text exposition format
(text/plain; version=0.0.4) without a client library.
"""
from typing import Dict, List, Optional, Tuple

from src.message_queue.base import QueueStatus
from src.monitoring.performance import PerformanceMetrics

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# (name, type, description, value)
Sample = Tuple[str, str, str, float]


def collect_samples(
    performance: PerformanceMetrics,
    status: Optional[QueueStatus] = None,
) -> List[Sample]:
    """Flatten snapshots into named samples."""
    samples: List[Sample] = [
        ("dq_messages_sent_total", "counter", "Messages delivered successfully", performance.messages_sent),
        ("dq_messages_received_total", "counter", "Inbound messages recorded", performance.messages_received),
        ("dq_delivery_errors_total", "counter", "Messages dropped after exhausting attempts", performance.errors),
        ("dq_response_time_ms", "gauge", "Recency-weighted transport response time", performance.average_response_time_ms),
        ("dq_uptime_ms", "gauge", "Milliseconds since the monitor started", performance.uptime_ms),
        ("dq_messages_per_minute", "gauge", "Delivered messages per minute of uptime", performance.messages_per_minute),
        ("dq_error_rate", "gauge", "Errors over sent plus received", performance.error_rate),
    ]

    if status is not None:
        samples.extend([
            ("dq_queue_size", "gauge", "Messages held by the queue", status.queue_size),
            ("dq_queue_pending", "gauge", "Messages waiting for the next batch", status.pending),
            ("dq_queue_in_flight", "gauge", "Messages with an outstanding transport call", status.in_flight),
            ("dq_queue_awaiting_retry", "gauge", "Messages waiting for a retry delay", status.awaiting_retry),
            ("dq_queue_dispatching", "gauge", "1 while a dispatch cycle is running", int(status.dispatching)),
        ])

    return samples


def export(
    performance: PerformanceMetrics,
    status: Optional[QueueStatus] = None,
    labels: Optional[Dict[str, str]] = None,
) -> str:
    """
    Export snapshots in Prometheus text exposition format.

    Format specification:
    https://prometheus.io/docs/instrumenting/exposition_formats/
    """
    lines = []
    label_str = _format_labels(labels or {})

    for name, metric_type, description, value in collect_samples(performance, status):
        lines.append(f"# HELP {name} {description}")
        lines.append(f"# TYPE {name} {metric_type}")
        lines.append(f"{name}{label_str} {value}")
        lines.append("")  # Empty line between metrics

    return "\n".join(lines)


def _format_labels(labels: Dict[str, str]) -> str:
    """Format labels as Prometheus label string."""
    if not labels:
        return ""

    parts = [f'{k}="{v}"' for k, v in sorted(labels.items())]
    return "{" + ",".join(parts) + "}"
