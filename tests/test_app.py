"""Tests for the FastAPI webhook app.

WHY: The HTTP layer is what SeaTalk actually sees: status codes and
bodies must match what the platform expects, especially the challenge
echo that enables the callback URL.

HOW: FastAPI TestClient without the lifespan (no ``with`` block), so no
real clients are built. Each test puts its own dispatcher and runner on
app.state: either a real WebhookDispatcher over FakeSeatalk or a
MagicMock whose dispatch() is an AsyncMock.

RULES:
- SeaTalk and Telegram are never called
- app.state is reset after every test
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSeatalk, group_mention_event, subscriber_event, verification_event
from seatalk_stickers import __version__
from seatalk_stickers.server.app import app
from seatalk_stickers.server.dispatch import WebhookDispatcher, WebhookError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_app_state():
    """Remove dispatcher/runner stored by a test."""
    yield
    for name in ("dispatcher", "runner"):
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def runner():
    runner = MagicMock()
    runner.submit.side_effect = lambda key, coro: coro.close()
    runner.active_jobs.return_value = 0
    return runner


@pytest.fixture
def seatalk():
    return FakeSeatalk()


@pytest.fixture
def client(seatalk, runner):
    app.state.runner = runner
    app.state.dispatcher = WebhookDispatcher(
        seatalk, MagicMock(), runner, frozenset({"group-1"}), "aW52aXRl"
    )
    return TestClient(app)


# ---------------------------------------------------------------------------
# POST /
# ---------------------------------------------------------------------------


class TestWebhook:
    def test_verification_echoes_challenge(self, client):
        resp = client.post("/", json=verification_event("abc-123"))
        assert resp.status_code == 200
        assert resp.json() == {"seatalk_challenge": "abc-123"}

    def test_subscriber_message_returns_empty_200(self, client, seatalk):
        resp = client.post("/", json=subscriber_event())
        assert resp.status_code == 200
        assert resp.content == b""
        assert len(seatalk.requests) == 2

    def test_group_command_starts_job_and_returns_at_once(self, client, runner, seatalk):
        resp = client.post("/", json=group_mention_event(message_id="msg-42"))
        assert resp.status_code == 200
        runner.submit.assert_called_once()
        assert runner.submit.call_args[0][0] == "msg-42"
        assert seatalk.requests == []

    def test_unknown_event_type_is_422(self, client):
        payload = verification_event()
        payload["event_type"] = "user_enter_chatroom_with_bot"
        assert client.post("/", json=payload).status_code == 422

    def test_malformed_body_is_422(self, client):
        assert client.post("/", content=b"not json").status_code == 422

    def test_webhook_error_is_empty_500(self):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(side_effect=WebhookError("seatalk unreachable"))
        app.state.dispatcher = dispatcher
        resp = TestClient(app).post("/", json=subscriber_event())
        assert resp.status_code == 500
        assert resp.content == b""


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_reports_active_jobs(self, client, runner):
        runner.active_jobs.return_value = 2
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__, "active_jobs": 2}

    def test_health_without_runner(self):
        resp = TestClient(app).get("/health")
        assert resp.json()["active_jobs"] == 0
