# attendancr/modules/telegram.py

import asyncio
import httpx
import logging
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.config import settings

logger = logging.getLogger(__name__)

DEFAULT_CENTRE_NAME = "ABC Centre"
_START_COMMAND = re.compile(r"^/start\s+(\w+)$", re.ASCII)


class TelegramConfigError(Exception):
    """Raised when the bot token is missing."""
    pass


class DeliveryResult(BaseModel):
    success: bool
    error: Optional[str] = None


# --- Inbound update models (only the fields the bot reads) ---

class TelegramUser(BaseModel):
    id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    from_user: Optional[TelegramUser] = Field(None, alias="from")
    chat: TelegramChat
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None


def format_check_in_notification(student_name: str, centre_name: Optional[str] = None, time: str = "") -> str:
    """'<student> checked in at <centre> at <time>'."""
    return f"{student_name} checked in at {centre_name or DEFAULT_CENTRE_NAME} at {time}"


def extract_start_code(text: str) -> Optional[str]:
    """Returns the token of a '/start <token>' command, or None for anything else."""
    match = _START_COMMAND.match(text or "")
    return match.group(1) if match else None


class TelegramClient:
    """
    Minimal Telegram Bot API client used as the notification gateway.
    Uses an injected HTTP client; the caller owns its lifecycle.
    """

    def __init__(self, http_client: httpx.AsyncClient, bot_token: Optional[str] = None,
                 api_base: Optional[str] = None, rate_limit_backoff: Optional[float] = None):
        self._client = http_client
        self._bot_token = bot_token if bot_token is not None else settings.TELEGRAM_BOT_TOKEN
        self._api_base = (api_base or settings.TELEGRAM_API_BASE).rstrip("/")
        self._backoff = settings.TELEGRAM_RATE_LIMIT_BACKOFF_SECONDS if rate_limit_backoff is None else rate_limit_backoff

    def _method_url(self, method: str) -> str:
        if not self._bot_token:
            raise TelegramConfigError("Telegram bot not configured")
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._client.post(self._method_url(method), json=payload)
        data = response.json()
        if not isinstance(data, dict):
            logger.warning(f"Telegram {method} answered with a non-object body: {data!r}")
            return {}
        return data

    async def send_message(self, chat_id: str, text: str) -> DeliveryResult:
        """
        Sends a text message. When Telegram answers 429 the call is retried
        exactly once after a fixed backoff. Never raises.
        """
        payload = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        try:
            data = await self._call("sendMessage", payload)
            if data.get("ok"):
                return DeliveryResult(success=True)

            if data.get("error_code") == 429:
                logger.warning(f"Telegram rate limit hit for chat {chat_id}; retrying in {self._backoff}s.")
                await asyncio.sleep(self._backoff)
                retry_data = await self._call("sendMessage", payload)
                if retry_data.get("ok"):
                    return DeliveryResult(success=True)
                return DeliveryResult(success=False, error=retry_data.get("description") or "Rate limit exceeded")

            return DeliveryResult(success=False, error=data.get("description") or "Telegram API error")
        except TelegramConfigError as e:
            return DeliveryResult(success=False, error=str(e))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram sendMessage to chat {chat_id} failed: {e}", exc_info=True)
            return DeliveryResult(success=False, error=str(e) or "Network error")

    async def set_webhook(self, webhook_url: str, secret_token: Optional[str] = None) -> bool:
        """Registers the bot webhook for message updates."""
        payload: Dict[str, Any] = {"url": webhook_url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        try:
            data = await self._call("setWebhook", payload)
            return bool(data.get("ok"))
        except (TelegramConfigError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram setWebhook failed: {e}", exc_info=True)
            return False
