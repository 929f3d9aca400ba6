import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import List, Optional

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Admin
from ..services.auth_service import AuthService
from ..services.errors import NotFoundError, ServiceError
from ..tools.formatting import format_date, format_time, mask_phone
from .schemas.admin import (
    FailedNotificationEntry, ParentSummary, StaffCreateRequest, StaffSummary, StaffUpdateRequest,
)
from .schemas.attendance import AttendanceLogEntry
from .auth import get_current_admin
from .dependencies import get_auth_service, get_db_client
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Console"])


# --- Staff ---

@router.get("/staff", response_model=List[StaffSummary])
@limiter.limit("60/minute")
async def list_staff(request: Request, admin: Admin = Depends(get_current_admin), service: AuthService = Depends(get_auth_service)):
    try:
        return await service.list_staff()
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/staff", response_model=StaffSummary, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_staff(request: Request, body: StaffCreateRequest, admin: Admin = Depends(get_current_admin), service: AuthService = Depends(get_auth_service)):
    try:
        return await service.create_staff(body.name, body.pin)
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.patch("/staff", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def update_staff(request: Request, body: StaffUpdateRequest, admin: Admin = Depends(get_current_admin), service: AuthService = Depends(get_auth_service)):
    try:
        await service.set_staff_active(body.id, body.is_active)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# --- Reports ---

@router.get("/attendance", response_model=List[AttendanceLogEntry])
@limiter.limit("60/minute")
async def attendance_log(
    request: Request,
    since: Optional[datetime] = None,
    limit: int = 100,
    admin: Admin = Depends(get_current_admin),
    db_client: AsyncPostgresClient = Depends(get_db_client)
):
    try:
        entries = await db_client.get_attendance_log(since=since, limit=max(1, min(limit, 500)))
    except Exception:
        logger.error("Could not load attendance log.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load attendance")

    return [
        AttendanceLogEntry(
            **entry.model_dump(include=set(AttendanceLogEntry.model_fields)),
            check_in_display=f"{format_date(entry.check_in_time)} {format_time(entry.check_in_time)}",
        )
        for entry in entries
    ]


@router.get("/parents", response_model=List[ParentSummary])
@limiter.limit("60/minute")
async def list_parents(request: Request, admin: Admin = Depends(get_current_admin), db_client: AsyncPostgresClient = Depends(get_db_client)):
    try:
        parents = await db_client.list_parents()
    except Exception:
        logger.error("Could not load parents.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load parents")

    return [
        ParentSummary(id=p.id, name=p.name, phone=mask_phone(p.phone), telegram_linked=bool(p.telegram_chat_id))
        for p in parents
    ]


@router.get("/failed-notifications", response_model=List[FailedNotificationEntry])
@limiter.limit("60/minute")
async def failed_notifications(
    request: Request,
    limit: int = 100,
    admin: Admin = Depends(get_current_admin),
    db_client: AsyncPostgresClient = Depends(get_db_client)
):
    try:
        return await db_client.get_failed_notifications(limit=max(1, min(limit, 500)))
    except Exception:
        logger.error("Could not load failed notifications.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load failed notifications")
