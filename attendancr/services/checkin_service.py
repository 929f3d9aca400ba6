import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from ..config.config import settings
from ..db.db_client import AsyncPostgresClient
from ..modules.telegram import DeliveryResult, TelegramClient, format_check_in_notification
from ..tools.formatting import format_time
from .errors import ServiceError

logger = logging.getLogger(__name__)

UNLINKED_PARENT_REASON = "Parent has not linked Telegram account"


class CheckInError(ServiceError):
    """The attendance row could not be written; no notification was attempted."""
    pass


class CheckInOutcome(BaseModel):
    success: bool = True
    attendance_id: UUID
    notification_sent: bool = False
    notification_errors: Optional[List[str]] = None


class CheckInService:
    """
    Records a kiosk check-in and tells the student's guardians about it.
    Notification problems never undo or fail the check-in itself.
    """

    def __init__(self, db_client: AsyncPostgresClient, gateway: TelegramClient, centre_name: Optional[str] = None):
        self.db_client = db_client
        self.gateway = gateway
        self.centre_name = centre_name or settings.CENTRE_NAME

    async def check_in(self, student_id: UUID, staff_id: UUID, check_in_time: datetime) -> CheckInOutcome:
        attendance_id = await self._record_attendance(student_id, staff_id, check_in_time)

        try:
            student = await self.db_client.get_student(student_id)
        except Exception:
            logger.error(f"Could not load student {student_id} after check-in.", exc_info=True)
            student = None
        if not student:
            return self._without_notification(attendance_id, "Student not found for notification")

        parent_ids = student.parent_ids
        if not parent_ids:
            return self._without_notification(attendance_id, "No parents linked to student")

        try:
            parents = await self.db_client.get_parents(parent_ids)
        except Exception:
            logger.error(f"Could not load parents of student {student_id}.", exc_info=True)
            parents = []
        if not parents:
            return self._without_notification(attendance_id, "No parent records found")

        message = format_check_in_notification(student.name, self.centre_name, format_time(check_in_time))
        notification_sent = False
        notification_errors: List[str] = []

        for parent in parents:
            if not parent.telegram_chat_id:
                await self._log_failed_notification(student_id, parent.id, UNLINKED_PARENT_REASON)
                continue

            try:
                result = await self.gateway.send_message(parent.telegram_chat_id, message)
            except Exception as e:
                logger.error(f"Notification to parent {parent.id} crashed.", exc_info=True)
                result = DeliveryResult(success=False, error=str(e) or "Notification error")
            if result.success:
                notification_sent = True
            else:
                error = result.error or "Unknown error"
                notification_errors.append(error)
                await self._log_failed_notification(student_id, parent.id, error)

        logger.info(f"Check-in {attendance_id}: notification_sent={notification_sent}, {len(notification_errors)} delivery errors.")
        return CheckInOutcome(
            attendance_id=attendance_id,
            notification_sent=notification_sent,
            notification_errors=notification_errors or None,
        )

    async def _record_attendance(self, student_id: UUID, staff_id: UUID, check_in_time: datetime) -> UUID:
        """Closes the student's open session, if any, then opens a new one."""
        try:
            open_session = await self.db_client.get_open_attendance(student_id)
            if open_session:
                await self.db_client.close_attendance(open_session.id, check_in_time)
                logger.info(f"Auto-checked-out session {open_session.id} of student {student_id}.")

            attendance_id = await self.db_client.add_attendance(student_id, staff_id, check_in_time)
        except Exception as e:
            logger.error(f"Attendance write failed for student {student_id}.", exc_info=True)
            raise CheckInError("Failed to record attendance") from e

        if not attendance_id:
            raise CheckInError("Failed to record attendance")
        logger.info(f"Student {student_id} checked in by staff {staff_id} (attendance {attendance_id}).")
        return attendance_id

    async def _log_failed_notification(self, student_id: UUID, parent_id: UUID, reason: str):
        try:
            await self.db_client.add_failed_notification(student_id, parent_id, reason)
        except Exception:
            logger.error(f"Could not record failed notification for parent {parent_id}: {reason}", exc_info=True)

    @staticmethod
    def _without_notification(attendance_id: UUID, reason: str) -> CheckInOutcome:
        logger.warning(f"Check-in {attendance_id} recorded without notification: {reason}")
        return CheckInOutcome(attendance_id=attendance_id, notification_sent=False, notification_errors=[reason])
