"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from aigateway.config import settings
from main import app, build_services

BLOG_POST = {
    "title": "Getting Started with FastAPI",
    "content": "FastAPI is a modern web framework for building APIs with Python.",
    "keywords_used": ["fastapi", "python"],
    "word_count": 11,
    "seo_score": 82.5,
    "metadata": {"model_used": "gpt-4", "tokens_used": 350},
}


class FakeUpstream:
    """Stand-in for every provider host, served through ``httpx.MockTransport``.

    Health endpoints answer ``{"status": "healthy"}``; known API paths answer
    canned bodies. ``responses`` overrides a path with ``(status, json)`` and
    ``down_hosts`` makes a host refuse connections.
    """

    def __init__(self):
        self.requests = []
        self.responses = {}
        self.down_hosts = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.down_hosts:
            raise httpx.ConnectError("Connection refused", request=request)

        path = request.url.path
        if path in self.responses:
            status_code, body = self.responses[path]
            return httpx.Response(status_code, json=body)
        if path.endswith("/health"):
            return httpx.Response(200, json={"status": "healthy", "version": "1.0.0"})
        if path == "/api/v1/generate":
            return httpx.Response(200, json=BLOG_POST)
        if path == "/api/v1/analyze":
            return httpx.Response(200, json={"readability_score": 71.2, "seo_score": 64.0})
        if path == "/api/v1/keywords/analyze":
            return httpx.Response(200, json={"keywords": [{"keyword": "fastapi", "volume": 1200}]})
        if path == "/" and request.method == "POST":
            return httpx.Response(200, json={"content": "Routed blog draft"})
        return httpx.Response(404, json={"message": "Not found"})

    def paths(self, method: str = None):
        return [r.url.path for r in self.requests if method is None or r.method == method]


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def client(upstream):
    """Test client with every service on app.state, talking to the fake upstream."""
    build_services(app, transport=httpx.MockTransport(upstream))

    # ASGITransport does not run the lifespan, so no background tasks start
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await app.state.health_monitor.stop()
    await app.state.api_manager.stop()
    await app.state.rate_limit_service.stop()
    for http_client in app.state.http_clients:
        await http_client.close()


@pytest_asyncio.fixture
async def healthy_providers(client):
    """Run one health pass so the built-in provider environments become routable."""
    await app.state.api_manager.perform_all_health_checks()
    return app.state.api_manager


def make_token(**claims) -> str:
    payload = {"exp": datetime.now(timezone.utc) + timedelta(hours=1), **claims}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def sample_jwt_token():
    """Token of a regular user."""
    return make_token(user_id="test-user-123", tenant_id="test-tenant-456", roles=["user"])


@pytest.fixture
def auth_headers(sample_jwt_token):
    return {"Authorization": f"Bearer {sample_jwt_token}"}


@pytest.fixture
def admin_headers():
    token = make_token(user_id="admin-user-1", tenant_id="test-tenant-456", roles=["admin"])
    return {"Authorization": f"Bearer {token}"}
