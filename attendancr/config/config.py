import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Holds the service settings read straight from environment variables.
    """
    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    DB_BOOTSTRAP: bool = _as_bool(os.environ.get("DB_BOOTSTRAP", "false"))

    # Redis: sessions and rate limiter use separate databases
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")
    RATE_LIMITER_REDIS_URL: str = os.environ.get("RATE_LIMITER_REDIS_URL")

    # Admin tokens and sessions
    SECRET_KEY: str = os.environ.get("SECRET_KEY")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")
    ADMIN_SESSION_TTL_SECONDS: int = int(os.environ.get("ADMIN_SESSION_TTL_SECONDS", 24 * 60 * 60))
    STAFF_SESSION_TTL_SECONDS: int = int(os.environ.get("STAFF_SESSION_TTL_SECONDS", 8 * 60 * 60))

    # Roster source (Google Sheets)
    GOOGLE_SHEETS_API_KEY: str = os.environ.get("GOOGLE_SHEETS_API_KEY")
    GOOGLE_SHEET_ID: str = os.environ.get("GOOGLE_SHEET_ID")
    GOOGLE_SHEET_RANGE: str = os.environ.get("GOOGLE_SHEET_RANGE", "Sheet1")
    GOOGLE_SHEETS_API_BASE: str = os.environ.get("GOOGLE_SHEETS_API_BASE", "https://sheets.googleapis.com/v4/spreadsheets")
    ROSTER_SYNC_INTERVAL_MINUTES: int = int(os.environ.get("ROSTER_SYNC_INTERVAL_MINUTES", 0))

    # Telegram bot
    TELEGRAM_BOT_TOKEN: str = os.environ.get("TELEGRAM_BOT_TOKEN")
    TELEGRAM_BOT_USERNAME: str = os.environ.get("TELEGRAM_BOT_USERNAME", "attendancr_bot")
    TELEGRAM_API_BASE: str = os.environ.get("TELEGRAM_API_BASE", "https://api.telegram.org")
    TELEGRAM_WEBHOOK_URL: str = os.environ.get("TELEGRAM_WEBHOOK_URL")
    TELEGRAM_WEBHOOK_SECRET: str = os.environ.get("TELEGRAM_WEBHOOK_SECRET")
    TELEGRAM_RATE_LIMIT_BACKOFF_SECONDS: float = float(os.environ.get("TELEGRAM_RATE_LIMIT_BACKOFF_SECONDS", 1.0))

    # Centre
    CENTRE_NAME: str = os.environ.get("CENTRE_NAME", "ABC Centre")
    CENTRE_UTC_OFFSET_HOURS: int = int(os.environ.get("CENTRE_UTC_OFFSET_HOURS", 8))

    HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("HTTP_TIMEOUT_SECONDS", 15.0))


# Single importable settings instance
settings = Config()
