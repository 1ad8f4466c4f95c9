"""Prometheus metrics middleware for FastAPI.

Exposes HTTP request metrics and a /metrics endpoint
for Prometheus scraping.
"""

import time

from fastapi import FastAPI
from prometheus_client import make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.monitoring.metrics import HTTP_REQUEST_DURATION, HTTP_REQUESTS_TOTAL

# =============================================================================
# MIDDLEWARE
# =============================================================================


def _route_template(request: Request) -> str:
    """Matched route path (``/recipients/{recipient_id}``) or the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records HTTP request metrics for Prometheus.

    Measures request duration and counts requests by method, route
    template and status, so recipient ids do not become label values.
    Skips recording for the /metrics endpoint itself.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and record metrics.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in the chain.

        Returns:
            HTTP response from downstream handler.
        """
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        method = request.method
        start = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start
        path = _route_template(request)
        status = str(response.status_code)

        HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=status).inc()
        HTTP_REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


# =============================================================================
# MOUNT HELPER
# =============================================================================


def mount_metrics(app: FastAPI) -> None:
    """Mount the /metrics Prometheus endpoint on a FastAPI app.

    The mounted ASGI sub-app bypasses FastAPI's dependencies, so no
    JWT authentication is required to scrape it.

    Args:
        app: FastAPI application instance.
    """
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)
