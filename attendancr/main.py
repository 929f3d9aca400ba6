# attendancr/main.py
from fastapi import Depends, FastAPI
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import redis.asyncio as redis
import asyncpg
import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler as Scheduler
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from fastapi.middleware.cors import CORSMiddleware

from .config.config import settings
from .logging.logging_config import setup_logging
from .api import admin, attendance, auth, sheets, telegram

from .db.bootstrap import apply_schema
from .db.db_client import AsyncPostgresClient
from .db.redis_client import RedisClient
from .api.dependencies import get_redis_client
from .modules.sheets import RosterSourceClient
from .modules.telegram import TelegramClient
from .services.sync_service import ReconciliationService
from .tasks.cron import scheduled_roster_sync

from .api.utilities.limiter import limiter

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the shared PostgreSQL/Redis pools and outbound HTTP client,
    optionally bootstraps the schema and Telegram webhook, and starts the
    roster sync schedule.
    """
    setup_logging()
    logger.info("Application starting...")

    app.state.postgres_pool = None
    app.state.redis_pool = None
    app.state.http_client = None
    app.state.scheduler = None

    try:
        postgres_pool = await asyncpg.create_pool(
            dsn=settings.DATABASE_URL, min_size=2, max_size=10
        )
        redis_pool = redis.ConnectionPool.from_url(
            settings.APPLICATION_REDIS_URL, decode_responses=True
        )
        http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

        app.state.postgres_pool = postgres_pool
        app.state.redis_pool = redis_pool
        app.state.http_client = http_client
        logger.info("PostgreSQL and Redis pools created.")

        if settings.DB_BOOTSTRAP:
            await apply_schema(postgres_pool)

        if settings.TELEGRAM_BOT_TOKEN and settings.TELEGRAM_WEBHOOK_URL:
            registered = await TelegramClient(http_client=http_client).set_webhook(
                settings.TELEGRAM_WEBHOOK_URL, secret_token=settings.TELEGRAM_WEBHOOK_SECRET
            )
            logger.info(f"Telegram webhook registration {'succeeded' if registered else 'failed'}.")

        if settings.ROSTER_SYNC_INTERVAL_MINUTES > 0:
            sync_service = ReconciliationService(
                db_client=AsyncPostgresClient(pool=postgres_pool),
                roster_source=RosterSourceClient(http_client=http_client),
            )
            scheduler = Scheduler()
            scheduler.add_job(
                scheduled_roster_sync, "interval", minutes=settings.ROSTER_SYNC_INTERVAL_MINUTES,
                args=[sync_service], id="roster_sync", max_instances=1, coalesce=True
            )
            scheduler.start()
            app.state.scheduler = scheduler
            logger.info(f"Roster sync scheduled every {settings.ROSTER_SYNC_INTERVAL_MINUTES} minutes.")

    except Exception as e:
        logger.error(f"Startup failed: {e}", exc_info=True)

    yield

    logger.info("Application shutting down...")
    if app.state.scheduler:
        app.state.scheduler.shutdown()
        logger.info("Scheduler stopped.")
    if app.state.http_client:
        await app.state.http_client.aclose()
    if app.state.postgres_pool:
        await app.state.postgres_pool.close()
        logger.info("PostgreSQL pool closed.")
    if app.state.redis_pool:
        await app.state.redis_pool.disconnect()
        logger.info("Redis pool closed.")


app = FastAPI(
    title="Attendancr API",
    description="Tuition centre check-in, roster sync and guardian notification API",
    version=API_VERSION,
    lifespan=lifespan
)
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(attendance.router, prefix="/api/v1")
app.include_router(sheets.router, prefix="/api/v1")
app.include_router(telegram.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.api_route("/api/v1/health", methods=["GET", "HEAD"], tags=["System"])
async def health_check(redis_client: RedisClient = Depends(get_redis_client)):
    """Liveness plus a session-store ping; a failed ping reports 'degraded'."""
    try:
        redis_ok = bool(await redis_client.ping())
    except Exception:
        logger.warning("Health check: Redis ping failed.", exc_info=True)
        redis_ok = False
    return {"status": "ok" if redis_ok else "degraded", "timestamp": datetime.now(timezone.utc).isoformat(), "version": API_VERSION}
