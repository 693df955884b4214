"""Tests for API routes."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from pwapi.app import create_app
from pwapi.config.settings import Settings
from pwapi.core.capabilities import BinaryPayload
from pwapi.core.errors import ExecutionError
from pwapi.runtime.scripts import InMemoryScriptStore, ScriptDocument

TOKEN = "secret-token"
AUTH = {"x-api-token": TOKEN}


class TestAPIRoutes:
    """Test suite for API routes."""

    @pytest.fixture
    def app(self, fake_browser):
        app = create_app(Settings(api_token=TOKEN, script_backend="none"))
        app.state.browser = fake_browser
        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_index_lists_endpoints(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "POST /api/actions" in response.text
        assert "x-api-token" in response.text

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["auth"] == "enabled"
        assert "uptime" in data and "timestamp" in data

    def test_missing_token(self, client):
        response = client.post("/api/html", json={"url": "https://example.com"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or missing x-api-token"}

    def test_wrong_token(self, client):
        response = client.post("/api/html", json={"url": "https://example.com"}, headers={"x-api-token": "nope"})
        assert response.status_code == 401

    def test_non_ascii_token_is_rejected(self, client):
        # Header values arrive decoded as latin-1
        response = client.post(
            "/api/html",
            json={"url": "https://example.com"},
            headers={"x-api-token": "sécret-token".encode("latin-1")},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or missing x-api-token"}

    def test_non_ascii_server_token(self, fake_browser):
        app = create_app(Settings(api_token="sécret", script_backend="none"))
        app.state.browser = fake_browser
        client = TestClient(app)
        with patch("pwapi.api.routes.invoke", AsyncMock(return_value={"ok": True})):
            ok = client.post(
                "/api/html",
                json={"url": "https://example.com"},
                headers={"x-api-token": "sécret".encode("latin-1")},
            )
            denied = client.post("/api/html", json={"url": "https://example.com"}, headers={"x-api-token": "secret"})
        assert ok.status_code == 200
        assert denied.status_code == 401

    def test_auth_disabled_rejects_protected_routes(self):
        client = TestClient(create_app(Settings(api_token=None, script_backend="none")))
        response = client.post("/api/html", json={"url": "https://example.com"}, headers=AUTH)
        assert response.status_code == 401
        assert "Auth disabled" in response.json()["error"]
        assert client.get("/health").json()["auth"] == "disabled"

    def test_missing_url(self, client):
        response = client.post("/api/screenshot", json={"width": 800}, headers=AUTH)
        assert response.status_code == 400
        assert response.json()["error"] == 'Missing "url"'

    def test_screenshot_binary(self, client):
        payload = BinaryPayload(b"\x89PNG", "image/png", "screenshot.png")
        with patch("pwapi.api.routes.invoke", AsyncMock(return_value=payload)) as mock_invoke:
            response = client.post("/api/screenshot", json={"url": "https://example.com"}, headers=AUTH)

        assert response.status_code == 200
        assert response.content == b"\x89PNG"
        assert response.headers["content-type"] == "image/png"
        assert 'filename="screenshot.png"' in response.headers["content-disposition"]
        name, req, _browser = mock_invoke.await_args.args
        assert name == "screenshot"
        assert req.asBase64 is False

    def test_query_as_base64(self, client):
        with patch("pwapi.api.routes.invoke", AsyncMock(return_value={"ok": True})) as mock_invoke:
            response = client.post("/api/pdf?asBase64=true", json={"url": "https://example.com"}, headers=AUTH)

        assert response.json() == {"ok": True}
        assert mock_invoke.await_args.args[1].asBase64 is True

    def test_body_as_base64_wins_over_query(self, client):
        with patch("pwapi.api.routes.invoke", AsyncMock(return_value={"ok": True})) as mock_invoke:
            client.post(
                "/api/html?asBase64=true",
                json={"url": "https://example.com", "asBase64": "false"},
                headers=AUTH,
            )
        assert mock_invoke.await_args.args[1].asBase64 is False

    def test_execution_error_body(self, client):
        failure = ExecutionError("Failed to scrape page", details="net::ERR_NAME_NOT_RESOLVED")
        with patch("pwapi.api.routes.invoke", AsyncMock(side_effect=failure)):
            response = client.post("/api/scrape", json={"url": "https://nowhere.invalid"}, headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to scrape page", "details": "net::ERR_NAME_NOT_RESOLVED"}

    def test_actions_unknown_step_is_rejected_before_browsing(self, client, fake_browser):
        response = client.post(
            "/api/actions",
            json={"url": "https://example.com", "actions": [{"type": "click", "selector": "#a"}, {"type": "hover"}]},
            headers=AUTH,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported action type: hover at actions[1]"
        assert fake_browser.sessions == []

    def test_actions_must_be_an_array(self, client, fake_browser):
        response = client.post(
            "/api/actions",
            json={"url": "https://example.com", "actions": {"type": "click"}},
            headers=AUTH,
        )
        assert response.status_code == 400
        assert response.json()["error"] == '"actions" must be an array'
        assert fake_browser.sessions == []

    def test_actions_run(self, client, fake_browser):
        response = client.post(
            "/api/actions",
            json={
                "url": "https://example.com",
                "actions": [{"type": "click", "selector": "#go"}, {"type": "wait", "ms": 10}],
            },
            headers=AUTH,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert [r["type"] for r in data["results"]] == ["click", "wait"]
        assert fake_browser.closed == 1

    def test_element_exists(self, client, fake_browser):
        fake_browser.page.query_selector.return_value = object()
        response = client.post(
            "/api/element-exists",
            json={"url": "https://example.com", "selector": "#login"},
            headers=AUTH,
        )
        assert response.json() == {"exists": True}


class TestExecRoute:
    @pytest.fixture
    def client(self, fake_browser):
        app = create_app(Settings(api_token=TOKEN, script_backend="none"))
        app.state.browser = fake_browser
        app.state.script_store = InMemoryScriptStore(
            {
                "home": ScriptDocument(type="screenshot", dsl={"url": "https://{{host}}/"}),
                "off": ScriptDocument(type="scrape", enabled=False),
            }
        )
        return TestClient(app)

    def test_not_found(self, client):
        response = client.post("/api/exec", json={"key": "ghost"}, headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"error": "Script not found"}

    def test_disabled(self, client):
        response = client.post("/api/exec", json={"key": "off"}, headers=AUTH)
        assert response.status_code == 403

    def test_missing_key(self, client):
        response = client.post("/api/exec", json={"params": {}}, headers=AUTH)
        assert response.status_code == 400
        assert response.json()["error"] == 'Missing "key"'

    def test_runs_stored_script(self, client):
        payload = BinaryPayload(b"img", "image/png", "screenshot.png")
        with patch("pwapi.core.executor.runner.dispatch", AsyncMock(return_value=payload)) as mock_dispatch:
            response = client.post("/api/exec", json={"key": "home", "params": {"host": "a.test"}}, headers=AUTH)

        assert response.status_code == 200
        assert response.content == b"img"
        assert mock_dispatch.await_args.args[:2] == ("screenshot", {"url": "https://a.test/"})

    def test_without_store(self):
        client = TestClient(create_app(Settings(api_token=TOKEN, script_backend="none")))
        response = client.post("/api/exec", json={"key": "home"}, headers=AUTH)
        assert response.status_code == 500
        assert response.json() == {"error": "Script store not configured"}
