import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from typing import List

from ..db.db_client import AsyncPostgresClient
from ..services.checkin_service import CheckInService, CheckInError
from .schemas.attendance import CheckInRequest, CheckInResponse, StudentSearchResult
from .dependencies import get_checkin_service, get_db_client
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Kiosk"])


@router.post("/attendance/check-in", response_model=CheckInResponse, response_model_exclude_none=True, summary="Record a student check-in")
@limiter.limit("120/minute")
async def check_in(request: Request, body: CheckInRequest, service: CheckInService = Depends(get_checkin_service)):
    if body.student_id is None or body.staff_id is None or body.check_in_time is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=CheckInResponse(success=False, error="Missing required fields").model_dump(exclude_none=True),
        )

    try:
        outcome = await service.check_in(body.student_id, body.staff_id, body.check_in_time)
    except CheckInError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=CheckInResponse(success=False, error=str(e)).model_dump(exclude_none=True),
        )

    return CheckInResponse(
        success=outcome.success,
        attendance_id=outcome.attendance_id,
        notification_sent=outcome.notification_sent,
        notification_errors=outcome.notification_errors,
    )


@router.get("/students/search", response_model=List[StudentSearchResult], summary="Search active students by name")
@limiter.limit("120/minute")
async def search_students(
    request: Request,
    q: str = Query("", max_length=100),
    db_client: AsyncPostgresClient = Depends(get_db_client)
):
    term = q.strip()
    if not term:
        return []
    try:
        return await db_client.search_active_students(term)
    except Exception:
        logger.error(f"Student search for '{term}' failed.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to search students")
