import os
import uuid
from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
import redis.asyncio as redis

from attendancr.db.redis_client import RedisClient
from attendancr.models.redis_models import Session

TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL")


@pytest_asyncio.fixture
async def redis_client():
    pool = redis.ConnectionPool.from_url(TEST_REDIS_URL, decode_responses=True)
    client = RedisClient(pool=pool)
    await client._redis.flushdb()
    yield client
    await pool.disconnect()


def test_session_validity_is_a_clock_comparison():
    now = datetime(2024, 1, 15, tzinfo=timezone.utc)
    session = Session.create("staff", uuid.uuid4(), timedelta(hours=8), now=now)

    assert session.expires_at == now + timedelta(hours=8)
    assert session.is_valid(now + timedelta(hours=7, minutes=59))
    assert not session.is_valid(now + timedelta(hours=8))
    assert session.ttl_seconds(now) == 8 * 3600


@pytest.mark.skipif(not TEST_REDIS_URL, reason="TEST_REDIS_URL not set")
@pytest.mark.asyncio
async def test_save_get_delete(redis_client):
    session = Session.create("admin", uuid.uuid4(), timedelta(minutes=5), subject_name="owner@centre.sg")

    await redis_client.save_session(session)
    stored = await redis_client.get_session("admin", session.subject_id)

    assert stored == session
    assert await redis_client.ping() is True
    assert await redis_client.get_session("staff", session.subject_id) is None
    assert await redis_client.delete_session("admin", session.subject_id) == 1
    assert await redis_client.get_session("admin", session.subject_id) is None


@pytest.mark.skipif(not TEST_REDIS_URL, reason="TEST_REDIS_URL not set")
@pytest.mark.asyncio
async def test_expired_session_is_not_stored(redis_client):
    session = Session.create("staff", uuid.uuid4(), timedelta(seconds=-1))
    await redis_client.save_session(session)
    assert await redis_client.get_session("staff", session.subject_id) is None
