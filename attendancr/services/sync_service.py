import logging
from typing import Dict, List, Optional, Set
from uuid import UUID

from pydantic import BaseModel

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Student, StudentWrite
from ..models.roster_models import RosterRow
from ..modules.sheets import RosterSourceClient

logger = logging.getLogger(__name__)


class SyncOutcome(BaseModel):
    """Result of one reconciliation run, as returned to the admin console."""
    success: bool
    students_added: int = 0
    students_updated: int = 0
    students_deleted: int = 0
    errors: Optional[List[str]] = None


class ReconciliationService:
    """
    Makes the directory store match the roster sheet.

    Guardians are matched by phone, students by their roster Student ID.
    Students missing from the sheet are deactivated, never deleted. The run
    is not atomic: a crash part-way leaves earlier writes in place and the
    sync log in 'in_progress'.
    """

    def __init__(self, db_client: AsyncPostgresClient, roster_source: RosterSourceClient):
        self.db_client = db_client
        self.roster_source = roster_source

    async def synchronize(self) -> SyncOutcome:
        try:
            sync_id = await self.db_client.create_sync_log()
        except Exception:
            logger.error("Could not create the sync log row; aborting roster sync.", exc_info=True)
            return SyncOutcome(success=False, errors=["Failed to create sync log"])

        logger.info(f"Roster sync {sync_id} started.")
        errors: List[str] = []
        added = updated = deleted = 0

        try:
            snapshot = await self.roster_source.fetch_snapshot()
            errors.extend(snapshot.errors)

            baseline: Dict[str, Student] = {s.student_id: s for s in await self.db_client.get_students()}
            seen: Set[str] = set()

            for row in snapshot.rows:
                if row.student_id in seen:
                    errors.append(f"Row {row.row_number}: Duplicate Student ID {row.student_id}")
                    continue
                seen.add(row.student_id)

                result = await self._reconcile_row(row, baseline.get(row.student_id), errors)
                if result == "added":
                    added += 1
                elif result == "updated":
                    updated += 1

            for student_id, student in baseline.items():
                if student_id in seen or not student.is_active:
                    continue
                try:
                    await self.db_client.deactivate_student(student.id)
                except Exception:
                    logger.error(f"Failed to deactivate student '{student_id}'.", exc_info=True)
                    errors.append(f"Student {student_id}: Failed to deactivate")
                    continue
                deleted += 1
                logger.info(f"Student '{student_id}' is no longer on the roster; marked inactive.")

        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Roster sync {sync_id} failed: {message}", exc_info=True)
            await self._complete(sync_id, "failed", added, updated, deleted, message)
            return SyncOutcome(
                success=False, students_added=added, students_updated=updated,
                students_deleted=deleted, errors=[message, *errors]
            )

        await self._complete(sync_id, "success", added, updated, deleted, "; ".join(errors) if errors else None)
        logger.info(f"Roster sync {sync_id} finished: {added} added, {updated} updated, {deleted} deactivated, {len(errors)} row errors.")
        return SyncOutcome(
            success=True, students_added=added, students_updated=updated,
            students_deleted=deleted, errors=errors or None
        )

    async def _reconcile_row(self, row: RosterRow, existing: Optional[Student], errors: List[str]) -> Optional[str]:
        """Writes one roster row. Returns 'added', 'updated' or None when nothing was counted."""
        primary_parent_id = await self._resolve_parent(row.primary_parent_name, row.primary_parent_phone)
        if primary_parent_id is None:
            errors.append(f"Student {row.student_id}: Failed to create primary parent")
            return None

        secondary_parent_id = None
        if row.has_secondary_parent:
            secondary_parent_id = await self._resolve_parent(row.secondary_parent_name, row.secondary_parent_phone)
            if secondary_parent_id is None:
                errors.append(f"Student {row.student_id}: Failed to link secondary parent")

        incoming = StudentWrite(
            student_id=row.student_id,
            name=row.student_name,
            school=row.school,
            date_of_birth=row.date_of_birth,
            emergency_contact=row.emergency_contact,
            notes=row.notes,
            primary_parent_id=primary_parent_id,
            secondary_parent_id=secondary_parent_id,
            is_active=True,
        )

        try:
            if existing is None:
                await self.db_client.insert_student(incoming)
                return "added"
            if existing.differs_from(incoming):
                await self.db_client.update_student(existing.id, incoming)
                return "updated"
            return None
        except Exception:
            logger.error(f"Failed to write student '{row.student_id}'.", exc_info=True)
            errors.append(f"Student {row.student_id}: Processing error")
            return None

    async def _resolve_parent(self, name: str, phone: str) -> Optional[UUID]:
        """Upserts a guardian by phone, falling back to a plain lookup if the upsert fails."""
        try:
            parent_id = await self.db_client.upsert_parent(name=name, phone=phone)
            if parent_id:
                return parent_id
        except Exception:
            logger.warning(f"Upsert of parent with phone ending {phone[-4:]} failed; trying lookup.", exc_info=True)

        try:
            parent = await self.db_client.get_parent_by_phone(phone)
        except Exception:
            logger.error(f"Lookup of parent with phone ending {phone[-4:]} failed.", exc_info=True)
            return None
        return parent.id if parent else None

    async def _complete(self, sync_id: UUID, status: str, added: int, updated: int, deleted: int,
                        error_message: Optional[str]):
        try:
            await self.db_client.complete_sync_log(
                sync_id, status, students_added=added, students_updated=updated,
                students_deleted=deleted, error_message=error_message
            )
        except Exception:
            # The row stays 'in_progress', which the admin console shows as a stuck run.
            logger.error(f"Could not finalise sync log {sync_id} as '{status}'.", exc_info=True)
