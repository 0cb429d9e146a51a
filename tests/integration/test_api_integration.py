# tests/integration/test_api_integration.py
"""
Integration tests for the HTTP API.

The full application runs in-process with fake browser contexts and a
virtual clock; every request goes through routing, validation, the
session registry and the sequence executor.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from playwright.async_api import Error as PlaywrightError

from playwright_server.api.server import CORRELATION_HEADER, create_app
from playwright_server.core.exceptions import ProxyValidationException
from playwright_server.core.proxy import INCOMPLETE_AUTH_MESSAGE

pytestmark = pytest.mark.integration

TTL_MS = 120_000


@pytest.fixture
def app(settings, automation, clock):
    return create_app(settings, automation=automation, clock=clock, environ={})


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def create_session(client, **body):
    body.setdefault("ttl", TTL_MS)
    response = client.post("/sessions", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def last_page(automation):
    return automation.contexts[-1].pages[0]


class TestHealthAndLifecycle:
    """Startup, health and shutdown."""

    def test_health(self, client, automation):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "activeSessions": 0}
        assert automation.started

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={CORRELATION_HEADER: "req-42"})

        assert response.headers[CORRELATION_HEADER] == "req-42"

    def test_correlation_id_generated(self, client):
        response = client.get("/health")

        assert response.headers[CORRELATION_HEADER]

    def test_shutdown_terminates_sessions(self, app, automation):
        with TestClient(app) as client:
            create_session(client)
            create_session(client)

        assert len(automation.closed_contexts) == 2
        assert automation.stopped

    def test_invalid_global_proxy_aborts_startup(self, settings, automation, clock):
        app = create_app(settings, automation=automation, clock=clock, environ={"HTTP_PROXY": "http://user@host:8080"})

        with pytest.raises(ProxyValidationException):
            with TestClient(app):
                pass

        assert not automation.started


class TestSessionEndpoints:
    """Create, list and terminate."""

    def test_create(self, client, settings):
        body = create_session(client)

        session_id = body["sessionId"]
        assert body["sessionUrl"] == f"{settings.public_base_url}/sessions/{session_id}/command"
        assert body["stopUrl"] == f"{settings.public_base_url}/sessions/{session_id}"
        assert body["createdAt"] == "2024-01-15T10:30:00.000Z"
        assert body["expiresAt"] == "2024-01-15T10:32:00.000Z"
        assert "playbackUrl" not in body

    def test_create_with_recording(self, client, settings):
        body = create_session(client, recording=True, videoSize={"width": 800, "height": 600})

        assert body["playbackUrl"] == settings.playback_url(body["sessionId"])

    @pytest.mark.parametrize("body,message", [
        ({}, "TTL is required and must be a number"),
        ({"ttl": "soon"}, "TTL is required and must be a number"),
        ({"ttl": 1000}, "TTL must be between 60000ms and 14400000ms"),
    ])
    def test_invalid_ttl(self, client, automation, body, message):
        response = client.post("/sessions", json=body)

        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"
        assert response.json()["message"] == message
        assert automation.open_calls == []

    def test_malformed_body(self, client):
        response = client.post("/sessions", json={"ttl": TTL_MS, "recording": "maybe"})

        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"
        assert response.json()["details"]

    def test_capacity(self, client):
        for _ in range(3):
            create_session(client)

        response = client.post("/sessions", json={"ttl": TTL_MS})

        assert response.status_code == 503
        assert response.json()["type"] == "CapacityExceeded"

    def test_list(self, client, clock):
        body = create_session(client)
        clock.advance(30)

        sessions = client.get("/sessions").json()["sessions"]

        assert sessions == [{
            "sessionId": body["sessionId"],
            "createdAt": body["createdAt"],
            "expiresAt": body["expiresAt"],
            "ttl": TTL_MS,
            "remainingTTL": 90_000,
        }]

    def test_terminate(self, client, automation):
        session_id = create_session(client)["sessionId"]

        response = client.delete(f"/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json() == {"message": "Session terminated successfully"}
        assert client.get("/sessions").json()["sessions"] == []
        assert automation.contexts[0].closed

    def test_terminate_twice(self, client):
        session_id = create_session(client)["sessionId"]
        client.delete(f"/sessions/{session_id}")

        response = client.delete(f"/sessions/{session_id}")

        assert response.status_code == 404
        assert response.json() == {
            "type": "SessionNotFound",
            "message": "Session not found or has expired",
            "details": None,
        }

    def test_recording_served_after_termination(self, client):
        session_id = create_session(client, recording=True)["sessionId"]
        client.delete(f"/sessions/{session_id}")

        response = client.get(f"/recordings/{session_id}/video.webm")

        assert response.status_code == 200
        assert response.content == b"webm"


class TestProxyEndpoints:
    """Proxy configuration at session creation."""

    def test_incomplete_credentials_rejected(self, client, automation):
        response = client.post("/sessions", json={
            "ttl": TTL_MS,
            "proxy": {"server": "http://user@host:8080"},
        })

        assert response.status_code == 400
        assert response.json()["type"] == "ProxyValidationError"
        assert INCOMPLETE_AUTH_MESSAGE in response.json()["details"]
        assert automation.open_calls == []
        assert client.get("/sessions").json()["sessions"] == []

    def test_session_proxy_applied(self, client, automation):
        create_session(client, proxy={
            "server": "socks5://proxy.corp:1080",
            "username": "alice",
            "password": "s3cret",
        })

        proxy = automation.open_calls[0]["proxy"]
        assert proxy.server == "socks5://proxy.corp:1080"
        assert proxy.has_auth

    def test_global_proxy_inherited_and_overridden(self, settings, automation, clock):
        app = create_app(
            settings,
            automation=automation,
            clock=clock,
            environ={"HTTP_PROXY": "http://global.corp:8080"}
        )

        with TestClient(app) as client:
            create_session(client)
            create_session(client, proxy={"server": "http://session.corp:9090"})

        assert automation.open_calls[0]["proxy"].hostname == "global.corp"
        assert automation.open_calls[1]["proxy"].hostname == "session.corp"


class TestCommandEndpoint:
    """Single commands and sequences."""

    def test_single_command(self, client, automation):
        session_id = create_session(client)["sessionId"]

        response = client.post(f"/sessions/{session_id}/command", json={
            "command": "navigate",
            "options": {"url": "https://example.com"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["result"] is None
        assert body["executedAt"] == "2024-01-15T10:30:00.000Z"
        assert body["durationMs"] >= 0
        last_page(automation).goto.assert_awaited_once_with("https://example.com", wait_until="load")

    def test_single_command_value(self, client):
        session_id = create_session(client)["sessionId"]

        response = client.post(f"/sessions/{session_id}/command", json={"command": "textContent", "selector": "h1"})

        assert response.json()["result"] == "Example Domain"

    def test_sequence_halts(self, client, automation):
        session_id = create_session(client)["sessionId"]
        last_page(automation).locator.return_value.click = AsyncMock(
            side_effect=PlaywrightError("No node found for selector: #missing")
        )

        response = client.post(f"/sessions/{session_id}/command", json=[
            {"command": "navigate", "options": {"url": "https://example.com"}},
            {"command": "click", "selector": "#missing"},
            {"command": "textContent", "selector": "h1"},
        ])

        assert response.status_code == 207
        body = response.json()
        assert body["completedCount"] == 1
        assert body["totalCount"] == 3
        assert body["halted"] is True
        assert len(body["results"]) == 2
        assert body["results"][1]["status"] == "error"
        assert body["results"][1]["errorType"] == "ElementNotFound"
        assert body["results"][1]["selector"] == "#missing"

    def test_single_command_failure(self, client, automation):
        session_id = create_session(client)["sessionId"]
        last_page(automation).locator.return_value.click = AsyncMock(
            side_effect=PlaywrightError("No node found for selector: #missing")
        )

        response = client.post(f"/sessions/{session_id}/command", json={"command": "click", "selector": "#missing"})

        assert response.status_code == 404
        assert response.json()["type"] == "ElementNotFound"

    def test_execution_error_ends_session(self, client, automation):
        session_id = create_session(client)["sessionId"]
        last_page(automation).title = AsyncMock(side_effect=RuntimeError("renderer exploded"))

        response = client.post(f"/sessions/{session_id}/command", json={"command": "title"})

        assert response.status_code == 500
        assert response.json()["type"] == "ExecutionError"
        assert client.get("/sessions").json()["sessions"] == []

    def test_unknown_command(self, client, automation):
        session_id = create_session(client)["sessionId"]

        response = client.post(f"/sessions/{session_id}/command", json=[
            {"command": "navigate", "options": {"url": "https://example.com"}},
            {"command": "teleport"},
        ])

        assert response.status_code == 400
        assert response.json()["type"] == "CommandNotFound"
        last_page(automation).goto.assert_not_awaited()

    @pytest.mark.parametrize("payload,message", [
        ([], "Command array cannot be empty"),
        ({"selector": "h1"}, "Command is required and must be a string"),
        ([{"command": "title"}, {"command": 5}], "Command at index 1 is missing or invalid"),
    ])
    def test_malformed_commands(self, client, payload, message):
        session_id = create_session(client)["sessionId"]

        response = client.post(f"/sessions/{session_id}/command", json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == message

    def test_unknown_session(self, client):
        response = client.post("/sessions/does-not-exist/command", json={"command": "title"})

        assert response.status_code == 404
        assert response.json()["type"] == "SessionNotFound"
