import logging

from ..services.sync_service import ReconciliationService

logger = logging.getLogger(__name__)


async def scheduled_roster_sync(service: ReconciliationService):
    """
    Interval job: runs one roster reconciliation. The outcome is recorded in
    the sync log by the service itself; this only reports it.
    """
    logger.info("Running scheduled_roster_sync...")
    try:
        outcome = await service.synchronize()
    except Exception:
        logger.error("Scheduled roster sync crashed.", exc_info=True)
        return None

    if outcome.success:
        logger.info(
            f"Scheduled roster sync done: {outcome.students_added} added, "
            f"{outcome.students_updated} updated, {outcome.students_deleted} deactivated."
        )
    else:
        logger.warning(f"Scheduled roster sync failed: {outcome.errors}")
    return outcome
