import pytest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from attendancr.config.config import settings


def start_payload(text, chat_id=555):
    return {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "from": {"id": chat_id, "first_name": "Mary"},
            "chat": {"id": chat_id, "type": "private"},
            "text": text,
        },
    }


@pytest.mark.asyncio
class TestGenerateLink:

    async def test_generate_link(self, http_client, admin_headers, store):
        parent_id = await store.upsert_parent("Mary", "91234567")

        response = await http_client.post(
            "/api/v1/telegram/generate-link", json={"parent_id": str(parent_id)}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["link"].endswith(f"?start={data['code']}")
        assert await store.get_unused_link_code(data["code"]) is not None

    async def test_unknown_parent_is_404(self, http_client, admin_headers):
        response = await http_client.post(
            "/api/v1/telegram/generate-link", json={"parent_id": str(uuid.uuid4())}, headers=admin_headers
        )
        assert response.status_code == 404


@pytest.mark.asyncio
class TestWebhook:

    async def test_link_round_trip(self, http_client, admin_headers, store, gateway):
        parent_id = await store.upsert_parent("Mary", "91234567")
        issued = await http_client.post(
            "/api/v1/telegram/generate-link", json={"parent_id": str(parent_id)}, headers=admin_headers
        )
        code = issued.json()["code"]

        response = await http_client.post("/api/v1/telegram/webhook", json=start_payload(f"/start {code}"))

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert store.parents[parent_id].telegram_chat_id == "555"
        chat_id, reply = gateway.send_message.call_args[0]
        assert chat_id == "555"
        assert reply.startswith("✅ Successfully linked!")

    async def test_internal_error_still_acknowledged(self, http_client, store):
        store.get_unused_link_code = AsyncMock(side_effect=RuntimeError("db down"))
        response = await http_client.post("/api/v1/telegram/webhook", json=start_payload("/start ABC234"))
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    async def test_malformed_body_still_acknowledged(self, http_client):
        response = await http_client.post("/api/v1/telegram/webhook", content=b"not json")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    async def test_wrong_secret_is_ignored(self, http_client, store, gateway, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "expected")
        parent_id = await store.upsert_parent("Mary", "91234567")
        await store.add_link_code("ABC234", parent_id, datetime.now(timezone.utc) + timedelta(hours=1))

        response = await http_client.post(
            "/api/v1/telegram/webhook", json=start_payload("/start ABC234"),
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )

        assert response.json() == {"ok": True}
        assert store.parents[parent_id].telegram_chat_id is None
        gateway.send_message.assert_not_awaited()
