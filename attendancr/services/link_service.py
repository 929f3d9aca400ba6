import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ..config.config import settings
from ..db.db_client import AsyncPostgresClient
from ..modules.telegram import TelegramClient, TelegramUpdate, extract_start_code
from ..tools.link_codes import build_deep_link, generate_link_code
from .errors import NotFoundError, ServiceError

logger = logging.getLogger(__name__)

LINK_CODE_TTL = timedelta(hours=24)
MAX_CODE_ATTEMPTS = 10

INVALID_CODE_REPLY = "Sorry, this link is invalid or has expired. Please request a new link from your tuition centre."
EXPIRED_CODE_REPLY = "Sorry, this link has expired. Please request a new link from your tuition centre."
LINK_FAILED_REPLY = "Sorry, something went wrong. Please try again later."
HELP_REPLY = "I can only process check-in notifications. If you need help, please contact your tuition centre."


class LinkCodeError(ServiceError):
    """No unused code could be drawn within the attempt budget."""
    pass


class LinkIssue(BaseModel):
    code: str
    link: str
    expires_at: datetime


class LinkResult(BaseModel):
    linked: bool
    reply: str


class LinkCodeService:
    """
    Issues one-time Telegram link codes for guardians and consumes them when
    the guardian opens the bot with '/start <code>'.
    """

    def __init__(self, db_client: AsyncPostgresClient, gateway: TelegramClient,
                 bot_username: Optional[str] = None):
        self.db_client = db_client
        self.gateway = gateway
        self.bot_username = bot_username or settings.TELEGRAM_BOT_USERNAME

    async def issue_link(self, parent_id: UUID, now: Optional[datetime] = None) -> LinkIssue:
        parent = await self.db_client.get_parent(parent_id)
        if not parent:
            raise NotFoundError("Parent not found")

        code = await self._draw_unused_code()
        expires_at = (now or datetime.now(timezone.utc)) + LINK_CODE_TTL
        try:
            await self.db_client.add_link_code(code, parent_id, expires_at)
        except Exception as e:
            logger.error(f"Could not store link code for parent {parent_id}.", exc_info=True)
            raise ServiceError("Failed to create link code") from e

        logger.info(f"Issued link code for parent {parent_id}, valid until {expires_at.isoformat()}.")
        return LinkIssue(code=code, link=build_deep_link(self.bot_username, code), expires_at=expires_at)

    async def _draw_unused_code(self) -> str:
        for attempt in range(MAX_CODE_ATTEMPTS):
            code = generate_link_code()
            if not await self.db_client.get_unused_link_code(code):
                return code
            logger.warning(f"Link code collision on attempt {attempt + 1}.")
        raise LinkCodeError("Failed to generate unique code")

    async def consume_code(self, code: str, chat_id: str, fallback_name: str = "",
                           now: Optional[datetime] = None) -> LinkResult:
        """
        Binds the chat to the code's guardian. Unknown, used or expired codes
        leave the store untouched.
        """
        link_code = await self.db_client.get_unused_link_code(code)
        if not link_code:
            logger.warning(f"Rejected unknown or used link code from chat {chat_id}.")
            return LinkResult(linked=False, reply=INVALID_CODE_REPLY)

        if link_code.is_expired(now or datetime.now(timezone.utc)):
            logger.warning(f"Rejected expired link code {link_code.id} from chat {chat_id}.")
            return LinkResult(linked=False, reply=EXPIRED_CODE_REPLY)

        # Claim the code first; only the request that flips 'used' may link.
        try:
            claimed = await self.db_client.mark_link_code_used(link_code.id)
        except Exception:
            logger.error(f"Could not claim link code {link_code.id}.", exc_info=True)
            return LinkResult(linked=False, reply=LINK_FAILED_REPLY)
        if not claimed:
            logger.warning(f"Link code {link_code.id} was consumed by a concurrent request; chat {chat_id} rejected.")
            return LinkResult(linked=False, reply=INVALID_CODE_REPLY)

        try:
            await self.db_client.set_parent_chat_id(link_code.parent_id, chat_id)
        except Exception:
            logger.error(f"Linking chat {chat_id} to parent {link_code.parent_id} failed.", exc_info=True)
            return LinkResult(linked=False, reply=LINK_FAILED_REPLY)
        logger.info(f"Parent {link_code.parent_id} linked to Telegram chat {chat_id}.")

        greeting_name = fallback_name
        student_names = "your child"
        try:
            parent = await self.db_client.get_parent(link_code.parent_id)
            students = await self.db_client.get_active_students_for_parent(link_code.parent_id)
            greeting_name = (parent.name if parent else None) or fallback_name
            student_names = ", ".join(s.name for s in students) or student_names
        except Exception:
            logger.error(f"Could not load details of parent {link_code.parent_id} for the confirmation.", exc_info=True)

        reply = (
            f"✅ Successfully linked!\n\nHi {greeting_name}! You will now receive notifications "
            f"when {student_names} checks in at the tuition centre."
        )
        return LinkResult(linked=True, reply=reply)

    async def handle_update(self, update: TelegramUpdate) -> Optional[LinkResult]:
        """
        Reacts to one inbound bot update. Updates without text are ignored;
        '/start' is the only command understood.
        """
        message = update.message
        if not message or not message.text:
            return None

        chat_id = str(message.chat.id)
        first_name = message.from_user.first_name if message.from_user else ""
        text = message.text

        if text.startswith("/start"):
            code = extract_start_code(text)
            if not code:
                result = LinkResult(
                    linked=False,
                    reply=f"Hi {first_name}! 👋\n\nTo receive check-in notifications for your child, "
                          f"please use the link provided by your tuition centre.",
                )
            else:
                result = await self.consume_code(code, chat_id, fallback_name=first_name)
        else:
            result = LinkResult(linked=False, reply=HELP_REPLY)

        delivery = await self.gateway.send_message(chat_id, result.reply)
        if not delivery.success:
            logger.warning(f"Reply to chat {chat_id} was not delivered: {delivery.error}")
        return result
