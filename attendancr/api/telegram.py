import hmac
import logging
from fastapi import APIRouter, Depends, HTTPException, Header, Request, status
from typing import Optional
from pydantic import ValidationError

from ..config.config import settings
from ..models.db_models import Admin
from ..modules.telegram import TelegramUpdate
from ..services.errors import NotFoundError, ServiceError
from ..services.link_service import LinkCodeService
from .schemas.telegram import GenerateLinkRequest, GenerateLinkResponse
from .auth import get_current_admin
from .dependencies import get_link_service
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["Telegram"])


@router.post("/generate-link", response_model=GenerateLinkResponse, summary="Issue a guardian link code")
@limiter.limit("30/minute")
async def generate_link(
    request: Request,
    body: GenerateLinkRequest,
    admin: Admin = Depends(get_current_admin),
    service: LinkCodeService = Depends(get_link_service)
):
    try:
        issue = await service.issue_link(body.parent_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return GenerateLinkResponse(link=issue.link, code=issue.code, expires_at=issue.expires_at)


@router.post("/webhook", summary="Inbound Telegram bot updates")
@limiter.limit("300/minute")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    service: LinkCodeService = Depends(get_link_service)
):
    """
    Always answers {"ok": true}: Telegram retries any other response, so
    failures are only logged.
    """
    expected = settings.TELEGRAM_WEBHOOK_SECRET
    if expected and not hmac.compare_digest(expected, x_telegram_bot_api_secret_token or ""):
        logger.warning("Webhook call with a missing or wrong secret token ignored.")
        return {"ok": True}

    try:
        payload = await request.json()
        update = TelegramUpdate.model_validate(payload)
        await service.handle_update(update)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Unparseable Telegram update ignored: {e}")
    except Exception:
        logger.error("Telegram webhook processing failed.", exc_info=True)

    return {"ok": True}
