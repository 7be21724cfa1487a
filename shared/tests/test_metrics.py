"""Tests for HTTP metrics middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from shared.utils.metrics import MetricsMiddleware, metrics_endpoint


def _requests(method: str, route: str, status_code: str) -> float:
    value = REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": method, "route": route, "status_code": status_code},
    )
    return value or 0.0


@pytest.fixture
async def client():
    """Small app instrumented with MetricsMiddleware."""
    app = FastAPI()
    app.add_middleware(MetricsMiddleware)

    @app.get("/items/{item_id}")
    async def get_item(item_id: int):
        return {"item_id": item_id}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_route("/metrics", metrics_endpoint)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class TestMetricsMiddleware:
    """Tests for MetricsMiddleware."""

    @pytest.mark.asyncio
    async def test_counts_by_route_template(self, client):
        """Path parameters are collapsed into the route template."""
        before = _requests("GET", "/items/{item_id}", "200")

        await client.get("/items/1")
        await client.get("/items/2")

        assert _requests("GET", "/items/{item_id}", "200") == before + 2

    @pytest.mark.asyncio
    async def test_probes_not_counted(self, client):
        """Health checks do not show up in request metrics."""
        before = _requests("GET", "/health", "200")

        await client.get("/health")

        assert _requests("GET", "/health", "200") == before

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client):
        """The exposition format is served."""
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
