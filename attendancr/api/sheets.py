import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import List

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Admin, SyncLog
from ..services.sync_service import ReconciliationService, SyncOutcome
from .auth import get_current_admin
from .dependencies import get_db_client, get_sync_service
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sheets", tags=["Roster Sync"])


@router.post("/sync", response_model=SyncOutcome, summary="Reconcile the directory with the roster sheet")
@limiter.limit("5/minute")
async def sync_roster(
    request: Request,
    admin: Admin = Depends(get_current_admin),
    service: ReconciliationService = Depends(get_sync_service)
):
    logger.info(f"Roster sync triggered by admin '{admin.email}'.")
    outcome = await service.synchronize()
    if not outcome.success:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=outcome.model_dump())
    return outcome


@router.get("/sync/logs", response_model=List[SyncLog], summary="Recent roster sync runs")
@limiter.limit("60/minute")
async def sync_logs(
    request: Request,
    limit: int = 20,
    admin: Admin = Depends(get_current_admin),
    db_client: AsyncPostgresClient = Depends(get_db_client)
):
    try:
        return await db_client.get_sync_logs(limit=max(1, min(limit, 100)))
    except Exception:
        logger.error("Could not load sync logs.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load sync logs")
