"""
Tests for request logging middleware (api/middleware.py).

Covers:
  - Request ID generation and propagation
  - X-Request-ID header on responses
  - GitHub delivery id binding for webhook requests
  - Error handling
"""

import pytest
import structlog
from starlette.testclient import TestClient
from fastapi import FastAPI

from workflow_plugin_github.api.middleware import RequestLoggingMiddleware
from workflow_plugin_github.utils.logging import clear_contextvars


@pytest.fixture(autouse=True)
def _reset_context():
    """Clear context vars between tests."""
    clear_contextvars()
    yield
    clear_contextvars()


@pytest.fixture
def test_app():
    """Create a minimal FastAPI app with the logging middleware."""
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/webhooks/github")
    async def probe():
        return structlog.contextvars.get_contextvars()

    @app.get("/api/error")
    async def api_error():
        raise ValueError("test error")

    return app


@pytest.fixture
def client(test_app):
    """Create a test client for the middleware test app."""
    return TestClient(test_app, raise_server_exceptions=False)


class TestRequestIdPropagation:
    """Tests for X-Request-ID handling."""

    def test_generates_request_id(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"].startswith("req-")

    def test_passes_through_existing_request_id(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-from-proxy"})
        assert response.headers["X-Request-ID"] == "req-from-proxy"

    def test_request_context_bound(self, client):
        context = client.post("/webhooks/github", headers={"X-Request-ID": "req-1"}).json()

        assert context["request_id"] == "req-1"
        assert context["method"] == "POST"
        assert context["path"] == "/webhooks/github"


class TestDeliveryContext:
    """Tests for GitHub delivery binding."""

    def test_delivery_id_bound(self, client):
        context = client.post(
            "/webhooks/github",
            headers={"X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958", "X-GitHub-Event": "push"},
        ).json()

        assert context["delivery_id"] == "72d3162e-cc78-11e3-81ab-4c9367dc0958"
        assert context["github_event"] == "push"

    def test_no_delivery_header(self, client):
        context = client.post("/webhooks/github").json()
        assert "delivery_id" not in context

    def test_context_cleared_after_request(self, client):
        client.post("/webhooks/github", headers={"X-GitHub-Delivery": "d-1"})
        assert structlog.contextvars.get_contextvars() == {}


class TestErrorHandling:
    """Unhandled errors are logged and re-raised."""

    def test_error_returns_500(self, client):
        response = client.get("/api/error")
        assert response.status_code == 500
