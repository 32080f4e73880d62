"""
Tests for metrics endpoints.
"""
import asyncio
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from src.api.main import app
from src.message_queue import CallbackTransport, MessageQueueService
from src.monitoring import PerformanceMonitor


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def queue_with_metrics():
    """Unstarted queue whose monitor already saw some traffic."""
    async def send(payload):
        return True

    monitor = PerformanceMonitor()
    for _ in range(5):
        monitor.record_sent()
    monitor.record_error()
    monitor.record_response_time(120)

    queue = MessageQueueService(transport=CallbackTransport(send, name="push"), monitor=monitor)
    app.state.queue = queue
    return queue


class TestPrometheusMetricsEndpoint:
    """Tests for /metrics Prometheus endpoint."""

    def test_returns_prometheus_format(self, client, queue_with_metrics):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text
        assert "# TYPE" in response.text

    def test_includes_monitor_and_queue_values(self, client, queue_with_metrics):
        response = client.get("/metrics")

        content = response.text
        assert "dq_messages_sent_total 5" in content
        assert "dq_delivery_errors_total 1" in content
        assert "dq_response_time_ms 60.0" in content
        assert "dq_queue_size 0" in content

    def test_export_failure_returns_500(self, client):
        queue = MagicMock()
        queue.get_status.side_effect = RuntimeError("boom")
        app.state.queue = queue

        response = client.get("/metrics")

        assert response.status_code == 500
        assert "# Error exporting metrics" in response.text


class TestQueueStatusEndpoint:
    """Tests for /metrics/queue."""

    def test_returns_queue_status(self, client, queue_with_metrics):
        asyncio.run(queue_with_metrics.enqueue("ping"))

        response = client.get("/metrics/queue")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["queue"]["queue_size"] == 1
        assert data["queue"]["pending"] == 1
        assert data["queue"]["dispatching"] is False
        assert data["queue"]["transport_status"] == {"transport": "push", "calls": 0}


class TestPerformanceEndpoint:
    """Tests for /metrics/performance."""

    def test_returns_performance_metrics(self, client, queue_with_metrics):
        response = client.get("/metrics/performance")

        assert response.status_code == 200
        metrics = response.json()["metrics"]
        assert metrics["messages_sent"] == 5
        assert metrics["errors"] == 1
        assert metrics["error_rate"] == pytest.approx(0.2)
