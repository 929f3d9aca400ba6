# tests/api/conftest.py
import uuid
from datetime import timedelta
from typing import AsyncIterator, Dict, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock

from attendancr.main import app
from attendancr.config.config import settings
from attendancr.api import dependencies
from attendancr.api.auth import create_access_token
from attendancr.api.utilities.limiter import limiter
from attendancr.models.db_models import Admin
from attendancr.models.redis_models import Session
from attendancr.modules.telegram import DeliveryResult
from attendancr.tools.security import hash_secret


class InMemorySessions:
    """Stand-in for RedisClient keyed the same way (kind, subject id)."""

    def __init__(self):
        self.sessions: Dict[Tuple[str, uuid.UUID], Session] = {}

    async def save_session(self, session: Session):
        self.sessions[(session.kind, session.subject_id)] = session

    async def get_session(self, kind, subject_id):
        session = self.sessions.get((kind, subject_id))
        return session if session and session.is_valid() else None

    async def delete_session(self, kind, subject_id):
        return 1 if self.sessions.pop((kind, subject_id), None) else 0

    async def ping(self):
        return True


@pytest.fixture(autouse=True)
def api_settings(monkeypatch):
    monkeypatch.setattr(settings, "SECRET_KEY", "test-secret-key")
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", None)
    monkeypatch.setattr(limiter, "enabled", False)


@pytest.fixture
def sessions() -> InMemorySessions:
    return InMemorySessions()


@pytest.fixture
def gateway() -> AsyncMock:
    mock = AsyncMock()
    mock.send_message.return_value = DeliveryResult(success=True)
    return mock


@pytest_asyncio.fixture
async def http_client(store, sessions, gateway) -> AsyncIterator[AsyncClient]:
    """ASGI client with the store, session store and Telegram gateway swapped for fakes."""
    app.dependency_overrides[dependencies.get_db_client] = lambda: store
    app.dependency_overrides[dependencies.get_redis_client] = lambda: sessions
    app.dependency_overrides[dependencies.get_telegram_client] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_headers(store, sessions) -> Dict[str, str]:
    """Bearer header for an admin with a live session."""
    admin = Admin(id=uuid.uuid4(), email="owner@centre.sg", password_hash=hash_secret("s3cret"))
    store.admins[admin.id] = admin
    await sessions.save_session(Session.create("admin", admin.id, timedelta(hours=1), subject_name=admin.email))
    token = create_access_token({"admin_id": str(admin.id)}, timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}
