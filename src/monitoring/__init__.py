"""
Delivery Monitoring

Process-wide performance counters and their Prometheus exposition.
"""
from src.monitoring.performance import (
    PerformanceMetrics,
    PerformanceMonitor,
    get_performance_monitor,
)

__all__ = [
    "PerformanceMetrics",
    "PerformanceMonitor",
    "get_performance_monitor",
]
