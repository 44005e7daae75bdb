"""Tests for API key authentication middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from wattsense.app import create_app
from wattsense.config import Settings
from wattsense.context import build_context


def _make_app(api_key: str | None):
    """Create a minimal app with ApiKeyMiddleware."""
    from wattsense.middleware import ApiKeyMiddleware

    app = FastAPI()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/usage")
    def api_usage():
        return {"total": 42}

    app.add_middleware(ApiKeyMiddleware, api_key=api_key)
    return app


class TestApiKeyAuth:
    """Test API key authentication middleware."""

    def test_no_auth_when_key_not_set(self):
        """Without API key, all endpoints are accessible."""
        client = TestClient(_make_app(api_key=""), raise_server_exceptions=False)
        assert client.get("/health").status_code == 200
        assert client.get("/api/usage").status_code == 200

    def test_health_exempt_with_auth(self):
        client = TestClient(_make_app(api_key="test-key-123"), raise_server_exceptions=False)
        assert client.get("/health").status_code == 200

    def test_api_requires_key(self):
        client = TestClient(_make_app(api_key="test-key-123"), raise_server_exceptions=False)
        resp = client.get("/api/usage")
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_api_key"

    def test_api_with_valid_key(self):
        client = TestClient(_make_app(api_key="test-key-123"), raise_server_exceptions=False)
        resp = client.get("/api/usage", headers={"Authorization": "Bearer test-key-123"})
        assert resp.status_code == 200
        assert resp.json()["total"] == 42

    def test_api_with_wrong_key(self):
        client = TestClient(_make_app(api_key="test-key-123"), raise_server_exceptions=False)
        resp = client.get("/api/usage", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 401


def test_app_wires_key_from_settings(engine, notifier):
    ctx = build_context(
        settings=Settings(api_key="s3cret", scheduler_enabled=False, _env_file=None),
        engine=engine,
        notifier=notifier,
    )
    client = TestClient(create_app(ctx))

    assert client.get("/api/usage").status_code == 401
    assert client.get("/health").status_code == 200
    resp = client.get("/api/usage", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200
    assert resp.json()["total"] == 0.0
