import logging
from typing import Optional
from uuid import UUID
import redis.asyncio as redis

from ..models.redis_models import Session, SessionKind

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis client for login sessions. Each session lives under one key whose
    TTL matches the session's own expiry.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)

    @staticmethod
    def _session_key(kind: SessionKind, subject_id: UUID) -> str:
        return f"sessions:{kind}:{subject_id}"

    async def save_session(self, session: Session):
        """Stores the session; an already-expired session is not written at all."""
        ttl = session.ttl_seconds()
        if ttl <= 0:
            logger.warning(f"Refusing to store an expired {session.kind} session for {session.subject_id}.")
            return
        key = self._session_key(session.kind, session.subject_id)
        await self._redis.set(key, session.model_dump_json(), ex=ttl)

    async def get_session(self, kind: SessionKind, subject_id: UUID) -> Optional[Session]:
        key = self._session_key(kind, subject_id)
        session_json = await self._redis.get(key)
        if not session_json:
            return None
        session = Session.model_validate_json(session_json)
        # TTL normally removes it first.
        return session if session.is_valid() else None

    async def delete_session(self, kind: SessionKind, subject_id: UUID) -> int:
        key = self._session_key(kind, subject_id)
        return await self._redis.delete(key)

    async def ping(self) -> bool:
        return await self._redis.ping()
