"""
Chat webhook endpoint tests.

Tests override the Drive, summarizer and transport dependencies with test
doubles. No real Drive, Anthropic or chat provider calls.

Coverage:
  - Telegram and WhatsApp payloads through POST /api/chat/inbound
  - Ignored payloads (no user message)
  - Unknown provider -> 400, missing provider credentials -> 503
  - Reply delivery failure still returns 200
  - Health endpoints
"""

import os
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routers.chat import get_chat_summarizer, get_store, get_transport
from app.services.chat_transport import TransportError, build_transport
from conftest import FakeDriveStore, FakeSummarizer


@pytest.fixture
def fake_store():
    return FakeDriveStore()


@pytest.fixture
def fake_transport():
    transport = Mock()
    transport.fetch_media.return_value = b"%PDF-upload"
    return transport


@pytest.fixture
def client(fake_store, fake_transport):
    """Return a TestClient with every external collaborator replaced."""
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_chat_summarizer] = lambda: FakeSummarizer()
    app.dependency_overrides[get_transport] = lambda: fake_transport
    yield TestClient(app)
    app.dependency_overrides.clear()


def _telegram_update(text: str, **message_fields) -> dict:
    return {
        "update_id": 1,
        "message": {"message_id": 7, "chat": {"id": 4242}, "text": text, **message_fields},
    }


# ===========================================================================
# POST /api/chat/inbound
# ===========================================================================

class TestInboundTelegram:

    def test_list_command_replies_to_sender(self, client, fake_store, fake_transport):
        folder = fake_store.add_folder("Work")
        fake_store.add_file(folder, "plan.txt")

        response = client.post("/api/chat/inbound", json=_telegram_update("LIST /Work"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["command"] == "LIST"
        assert data["outcome"] == "success"
        assert data["reply"] == "Files in 'Work' (1):\n- plan.txt"
        fake_transport.send_reply.assert_called_once_with("4242", data["reply"])

    def test_invalid_command_gets_usage_reply(self, client, fake_transport):
        response = client.post("/api/chat/inbound", json=_telegram_update("hi bot"))

        data = response.json()
        assert data["command"] == "INVALID"
        assert data["outcome"] == "parse_failure"
        fake_transport.send_reply.assert_called_once()

    def test_upload_with_document(self, client, fake_store, fake_transport):
        folder = fake_store.add_folder("Receipts")
        update = {
            "update_id": 2,
            "message": {
                "message_id": 8,
                "chat": {"id": 4242},
                "caption": "UPLOAD /Receipts/march.pdf",
                "document": {"file_id": "BQAC", "file_name": "scan.pdf", "mime_type": "application/pdf"},
            },
        }

        response = client.post("/api/chat/inbound", json=update)

        assert response.json()["outcome"] == "success"
        created = fake_store.children_of(folder)
        assert [e.name for e in created] == ["march.pdf"]
        assert fake_store.contents[created[0].id] == b"%PDF-upload"

    def test_non_message_update_is_ignored(self, client, fake_store, fake_transport):
        response = client.post("/api/chat/inbound", json={"update_id": 3, "edited_message": {}})

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"
        fake_transport.send_reply.assert_not_called()
        assert fake_store.calls == []

    def test_reply_failure_still_returns_200(self, client, fake_store, fake_transport):
        fake_store.add_folder("Work")
        fake_transport.send_reply.side_effect = TransportError("chat not found")

        response = client.post("/api/chat/inbound", json=_telegram_update("LIST /Work"))

        assert response.status_code == 200
        assert response.json()["status"] == "reply_failed"


class TestInboundWhatsApp:

    def test_provider_query_param_selects_whatsapp(self, client, fake_store, fake_transport):
        fake_store.add_folder("Reports")
        payload = {
            "entry": [{"changes": [{"value": {"messages": [{
                "from": "15551234567",
                "type": "text",
                "text": {"body": "SUMMARY /Reports"},
            }]}}]}],
        }

        response = client.post("/api/chat/inbound?provider=whatsapp", json=payload)

        data = response.json()
        assert data["command"] == "SUMMARY"
        assert data["reply"] == "No documents to summarize in folder 'Reports'."
        fake_transport.send_reply.assert_called_once_with("15551234567", data["reply"])

    def test_env_var_selects_whatsapp(self, client, fake_transport):
        payload = {"entry": [{"changes": [{"value": {"statuses": [{"status": "read"}]}}]}]}
        with patch.dict(os.environ, {"CHAT_PROVIDER": "whatsapp"}):
            response = client.post("/api/chat/inbound", json=payload)
        assert response.json()["status"] == "ignored"


class TestUnknownProvider:

    def test_unknown_provider_is_400(self, client):
        response = client.post("/api/chat/inbound?provider=fax", json={})
        assert response.status_code == 400
        assert "Unknown chat provider" in response.json()["detail"]


class TestTransportMisconfigured:

    @pytest.fixture
    def real_transport_client(self, fake_store):
        """Replace Drive and the summarizer only; the transport is built from env."""
        app.dependency_overrides[get_store] = lambda: fake_store
        app.dependency_overrides[get_chat_summarizer] = lambda: FakeSummarizer()
        build_transport.cache_clear()
        yield TestClient(app)
        app.dependency_overrides.clear()
        build_transport.cache_clear()

    def test_missing_bot_token_is_503(self, real_transport_client, fake_store, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "")

        response = real_transport_client.post(
            "/api/chat/inbound?provider=telegram", json=_telegram_update("LIST /Work")
        )

        assert response.status_code == 503
        assert "TELEGRAM_BOT_TOKEN" in response.json()["detail"]
        assert fake_store.calls == []

    def test_unknown_provider_is_still_400(self, real_transport_client):
        response = real_transport_client.post("/api/chat/inbound?provider=fax", json={})
        assert response.status_code == 400


# ===========================================================================
# Health
# ===========================================================================

class TestHealth:

    def test_root(self):
        assert TestClient(app).get("/").json()["message"] == "Drivebot API"

    def test_health(self):
        assert TestClient(app).get("/health").json() == {"status": "ok"}

    def test_drive_health_reports_missing_credentials(self):
        with patch("app.main.get_drive_store", side_effect=ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must be set")):
            response = TestClient(app).get("/health/drive")
        assert response.status_code == 503

    def test_drive_health_ok(self):
        with patch("app.main.get_drive_store", return_value=FakeDriveStore()):
            response = TestClient(app).get("/health/drive")
        assert response.json() == {"status": "ok", "drive": "reachable", "root": "root"}
