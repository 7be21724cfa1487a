"""Prometheus metrics: HTTP instrumentation and a /metrics endpoint."""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

# Probe and scrape traffic is not instrumented
UNINSTRUMENTED_PATHS = frozenset({"/metrics", "/health", "/ready"})

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def create_counter(
    name: str,
    description: str,
    labels: list[str] | None = None,
) -> Counter:
    """Create a Prometheus counter metric.

    Args:
        name: Metric name (e.g., 'cloud_storage_uploads_started_total')
        description: Human-readable description
        labels: List of label names for the metric
    """
    return Counter(name, description, labels or [])


HTTP_REQUESTS = create_counter(
    "http_requests_total",
    "HTTP requests by route template and status",
    ["method", "route", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=LATENCY_BUCKETS,
)


def _route_template(request: Request) -> str:
    # Route templates keep path parameters out of label values
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and observes latency per route template.

    Requests that raise are recorded with status 500 before the error
    propagates.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request and record metrics."""
        if request.url.path in UNINSTRUMENTED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = _route_template(request)
            HTTP_REQUESTS.labels(
                method=request.method,
                route=route,
                status_code=status_code,
            ).inc()
            HTTP_REQUEST_DURATION.labels(method=request.method, route=route).observe(
                time.perf_counter() - start_time
            )


async def metrics_endpoint(request: Request) -> StarletteResponse:
    """Endpoint to expose Prometheus metrics."""
    return StarletteResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
