"""
Performance Monitor

Process-wide delivery counters polled by dashboards and health checks.
"""
import threading
import time
from functools import lru_cache
from typing import Callable
from pydantic import BaseModel


class PerformanceMetrics(BaseModel):
    """
    Snapshot of delivery performance.

    Attributes:
        messages_sent: Successful deliveries
        messages_received: Inbound messages recorded by callers
        errors: Terminal delivery failures
        average_response_time_ms: Recency-weighted transport latency
        uptime_ms: Milliseconds since the monitor started
        messages_per_minute: Sent messages per minute of uptime
        error_rate: errors / (sent + received)
    """
    messages_sent: int = 0
    messages_received: int = 0
    errors: int = 0
    average_response_time_ms: float = 0.0
    uptime_ms: float = 0.0
    messages_per_minute: float = 0.0
    error_rate: float = 0.0


class PerformanceMonitor:
    """
    Thread-safe delivery counters.

    The response time average is updated as avg = (avg + sample) / 2, which
    weights recent samples heavily. Dashboards depend on this behaviour, so
    it is not a true mean.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize monitor.

        Args:
            clock: Monotonic time source in seconds
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._start_time = clock()
        self._sent = 0
        self._received = 0
        self._errors = 0
        self._average_response_time_ms = 0.0

    def record_sent(self) -> None:
        with self._lock:
            self._sent += 1

    def record_received(self) -> None:
        with self._lock:
            self._received += 1

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1

    def record_response_time(self, duration_ms: float) -> None:
        with self._lock:
            self._average_response_time_ms = (self._average_response_time_ms + duration_ms) / 2

    def get_metrics(self) -> PerformanceMetrics:
        """
        Get a consistent snapshot with derived rates.

        Rates are reported as 0.0 when their denominator is zero.
        """
        with self._lock:
            uptime_seconds = max(self._clock() - self._start_time, 0.0)
            uptime_minutes = uptime_seconds / 60
            handled = self._sent + self._received

            return PerformanceMetrics(
                messages_sent=self._sent,
                messages_received=self._received,
                errors=self._errors,
                average_response_time_ms=self._average_response_time_ms,
                uptime_ms=uptime_seconds * 1000,
                messages_per_minute=(
                    self._sent / uptime_minutes if uptime_minutes > 0 else 0.0
                ),
                error_rate=self._errors / handled if handled > 0 else 0.0,
            )

    def reset(self) -> None:
        """Reset all counters and uptime. Useful for testing."""
        with self._lock:
            self._start_time = self._clock()
            self._sent = 0
            self._received = 0
            self._errors = 0
            self._average_response_time_ms = 0.0


@lru_cache()
def get_performance_monitor() -> PerformanceMonitor:
    """Process-wide monitor shared by every queue that is not given its own."""
    return PerformanceMonitor()
