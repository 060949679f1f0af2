"""
Tests for the HTTP gateway
==========================
POST /api/contact validation and persistence, admin relay, /health,
/qr and /wake.
"""

import pytest
from fastapi.testclient import TestClient

from contact_bot.core.command_router import CommandRouter
from contact_bot.core.supervisor import Phase
from contact_bot.interfaces.web import create_app
from contact_bot.interfaces.web.app import format_contact_notification, missing_fields

from .conftest import ADMIN_JID, FakeSession

VALID_BODY = {"name": "A", "email": "a@x.com", "subject": "S", "message": "M"}


@pytest.fixture
def client(supervisor, store):
    return TestClient(create_app(supervisor, store))


def _connect(supervisor) -> FakeSession:
    session = FakeSession()
    supervisor._session = session
    supervisor.state.phase = Phase.CONNECTED
    return session


@pytest.mark.unit
class TestHelpers:

    def test_missing_fields(self):
        assert missing_fields(VALID_BODY) == []
        assert missing_fields({"name": "A", "email": " ", "message": "M"}) == ["email", "subject"]

    def test_notification_text(self, store):
        contact = store.add({**VALID_BODY, "subject": None})
        text = format_contact_notification(contact)
        assert text.startswith("📩 *New Contact*")
        assert f"ID: {contact.id}" in text
        assert "Subject: N/A" in text


@pytest.mark.integration
class TestContactEndpoint:

    def test_valid_contact_while_disconnected(self, client, store, supervisor):
        resp = client.post("/api/contact", json=VALID_BODY)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True

        router = CommandRouter(store, supervisor)
        reply = router.handle(f"/contact search {body['id']}")
        assert reply.startswith("🔍 *Contact Found*")
        assert "a@x.com" in reply

    def test_missing_email_rejected(self, client, store):
        resp = client.post("/api/contact", json={"name": "A", "subject": "S", "message": "M"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required fields"}
        assert len(store) == 0

    def test_blank_field_rejected(self, client, store):
        resp = client.post("/api/contact", json={**VALID_BODY, "name": "   "})
        assert resp.status_code == 400
        assert len(store) == 0

    def test_invalid_json_rejected(self, client, store):
        resp = client.post(
            "/api/contact",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert len(store) == 0

    def test_non_object_body_rejected(self, client, store):
        resp = client.post("/api/contact", json=["A", "a@x.com"])
        assert resp.status_code == 400
        assert len(store) == 0

    def test_admin_notified_when_connected(self, client, supervisor):
        session = _connect(supervisor)
        resp = client.post("/api/contact", json=VALID_BODY)
        assert resp.status_code == 200

        assert len(session.sent) == 1
        recipient, text = session.sent[0]
        assert recipient == ADMIN_JID
        assert "📩 *New Contact*" in text
        assert resp.json()["id"] in text

    def test_failed_notification_still_succeeds(self, client, supervisor, store):
        session = _connect(supervisor)
        session.fail_send = True
        resp = client.post("/api/contact", json=VALID_BODY)
        assert resp.status_code == 200
        assert len(store) == 1

    def test_store_failure_returns_500(self, client, store, monkeypatch):
        def broken(fields):
            raise ValueError("corrupted")

        monkeypatch.setattr(store, "add", broken)
        resp = client.post("/api/contact", json=VALID_BODY)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


@pytest.mark.integration
class TestStatusEndpoints:

    def test_health_disconnected(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["whatsapp"] == "disconnected"
        assert body["uptime"] >= 0
        assert "lastActivity" in body
        assert "timestamp" in body

    def test_health_connected(self, client, supervisor):
        _connect(supervisor)
        assert client.get("/health").json()["whatsapp"] == "connected"

    def test_qr_without_code(self, client):
        resp = client.get("/qr")
        assert resp.status_code == 200
        assert "No QR code available" in resp.json()["message"]

    def test_qr_redirects_to_image(self, client, supervisor):
        supervisor.state.pending_pairing_code = "2@abc"
        resp = client.get("/qr", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == (
            "https://api.qrserver.com/v1/create-qr-code/?size=400x400&data=2%40abc"
        )

    def test_wake(self, client):
        body = client.get("/wake").json()
        assert body["message"] == "Bot is awake!"
        assert body["connected"] is False
        assert "timestamp" in body
