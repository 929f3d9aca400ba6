# attendancr/api/dependencies.py
from fastapi import Request, Depends
import redis.asyncio as redis
import asyncpg
import httpx

from ..db.redis_client import RedisClient
from ..db.db_client import AsyncPostgresClient
from ..modules.sheets import RosterSourceClient
from ..modules.telegram import TelegramClient
from ..services.auth_service import AuthService
from ..services.checkin_service import CheckInService
from ..services.link_service import LinkCodeService
from ..services.sync_service import ReconciliationService


def get_redis_pool(request: Request) -> redis.ConnectionPool:
    return request.app.state.redis_pool


def get_postgres_pool(request: Request) -> asyncpg.Pool:
    return request.app.state.postgres_pool


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The shared outbound HTTP client created in the lifespan."""
    return request.app.state.http_client


def get_db_client(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> AsyncPostgresClient:
    return AsyncPostgresClient(pool=postgres_pool)


def get_redis_client(redis_pool: redis.ConnectionPool = Depends(get_redis_pool)) -> RedisClient:
    return RedisClient(pool=redis_pool)


def get_telegram_client(http_client: httpx.AsyncClient = Depends(get_http_client)) -> TelegramClient:
    return TelegramClient(http_client=http_client)


def get_auth_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> AuthService:
    return AuthService(db_client=db_client)


def get_checkin_service(
    db_client: AsyncPostgresClient = Depends(get_db_client),
    telegram_client: TelegramClient = Depends(get_telegram_client)
) -> CheckInService:
    """
    Builds a CheckInService per request from the shared pools. The Telegram
    client reuses the application's HTTP client.
    """
    return CheckInService(db_client=db_client, gateway=telegram_client)


def get_link_service(
    db_client: AsyncPostgresClient = Depends(get_db_client),
    telegram_client: TelegramClient = Depends(get_telegram_client)
) -> LinkCodeService:
    return LinkCodeService(db_client=db_client, gateway=telegram_client)


def get_sync_service(
    db_client: AsyncPostgresClient = Depends(get_db_client),
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> ReconciliationService:
    return ReconciliationService(db_client=db_client, roster_source=RosterSourceClient(http_client=http_client))
