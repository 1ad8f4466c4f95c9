"""Tests for Prometheus metrics middleware."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from src.monitoring.middleware import PrometheusMiddleware, mount_metrics


@pytest.fixture
def app():
    """Create a minimal FastAPI app with Prometheus middleware."""
    test_app = FastAPI()
    test_app.add_middleware(PrometheusMiddleware)
    mount_metrics(test_app)

    @test_app.get("/api/v1/health")
    def health():
        return {"status": "ok"}

    @test_app.get("/api/v1/items/{item_id}")
    def item(item_id: str):
        return {"id": item_id}

    @test_app.get("/api/v1/error")
    def error():
        raise HTTPException(status_code=500, detail="test error")

    return test_app


@pytest.fixture
def client(app):
    """TestClient for the middleware test app."""
    return TestClient(app)


class TestMetricsEndpoint:
    """Tests for the /metrics Prometheus endpoint."""

    @staticmethod
    def test_metrics_returns_200(client) -> None:
        """GET /metrics returns HTTP 200."""
        response = client.get("/metrics")
        assert response.status_code == 200

    @staticmethod
    def test_metrics_content_type(client) -> None:
        """GET /metrics returns Prometheus text format."""
        response = client.get("/metrics")
        assert "text/plain" in response.headers["content-type"]

    @staticmethod
    def test_metrics_contains_http_metrics(client) -> None:
        client.get("/api/v1/health")
        body = client.get("/metrics").text
        assert "compilo_http_requests_total" in body
        assert "compilo_http_request_duration_seconds_count" in body


class TestPrometheusMiddleware:
    """Tests for HTTP request metrics recording."""

    @staticmethod
    def test_successful_request_recorded(client) -> None:
        """A 200 response is recorded with correct labels."""
        client.get("/api/v1/health")
        body = client.get("/metrics").text
        assert 'method="GET"' in body
        assert 'path="/api/v1/health"' in body
        assert 'status="200"' in body

    @staticmethod
    def test_error_request_recorded(client) -> None:
        """A 500 response is recorded with correct status label."""
        client.get("/api/v1/error")
        assert 'status="500"' in client.get("/metrics").text

    @staticmethod
    def test_path_parameters_use_route_template(client) -> None:
        """Ids are folded into the route template label."""
        client.get("/api/v1/items/3f1c9a")
        body = client.get("/metrics").text
        assert 'path="/api/v1/items/{item_id}"' in body
        assert "3f1c9a" not in body

    @staticmethod
    def test_metrics_endpoint_not_recorded(client) -> None:
        """Requests to /metrics are not recorded in HTTP metrics."""
        client.get("/metrics")
        response = client.get("/metrics")
        lines = [
            line
            for line in response.text.splitlines()
            if line.startswith("compilo_http_requests_total{")
        ]
        for line in lines:
            assert 'path="/metrics"' not in line
