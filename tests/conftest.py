# tests/conftest.py
import asyncio
import sys
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from attendancr.models.db_models import (
    Admin, Attendance, AttendanceWithDetails, FailedNotification, LinkCode,
    Parent, Staff, Student, StudentWrite, SyncLog,
)

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


class InMemoryStore:
    """
    Dict-backed stand-in for AsyncPostgresClient, used by the service tests.
    Mirrors the client's method names, arguments and return values.
    """

    def __init__(self):
        self.sync_logs: Dict[uuid.UUID, SyncLog] = {}
        self.parents: Dict[uuid.UUID, Parent] = {}
        self.students: Dict[uuid.UUID, Student] = {}
        self.attendance: Dict[uuid.UUID, Attendance] = {}
        self.failed_notifications: List[FailedNotification] = []
        self.staff: Dict[uuid.UUID, Staff] = {}
        self.admins: Dict[uuid.UUID, Admin] = {}
        self.link_codes: Dict[uuid.UUID, LinkCode] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ----- sync log -----
    async def create_sync_log(self) -> uuid.UUID:
        log = SyncLog(id=uuid.uuid4(), sync_started_at=self._now(), status="in_progress")
        self.sync_logs[log.id] = log
        return log.id

    async def complete_sync_log(self, sync_id, status, students_added, students_updated, students_deleted, error_message):
        self.sync_logs[sync_id] = self.sync_logs[sync_id].model_copy(update={
            "status": status, "sync_completed_at": self._now(), "students_added": students_added,
            "students_updated": students_updated, "students_deleted": students_deleted,
            "error_message": error_message,
        })

    async def get_sync_logs(self, limit: int = 20) -> List[SyncLog]:
        return sorted(self.sync_logs.values(), key=lambda s: s.sync_started_at, reverse=True)[:limit]

    # ----- parents -----
    async def upsert_parent(self, name: str, phone: str) -> uuid.UUID:
        existing = await self.get_parent_by_phone(phone)
        if existing:
            self.parents[existing.id] = existing.model_copy(update={"name": name})
            return existing.id
        parent = Parent(id=uuid.uuid4(), name=name, phone=phone, created_at=self._now())
        self.parents[parent.id] = parent
        return parent.id

    async def get_parent_by_phone(self, phone: str) -> Optional[Parent]:
        return next((p for p in self.parents.values() if p.phone == phone), None)

    async def get_parent(self, parent_id) -> Optional[Parent]:
        return self.parents.get(parent_id)

    async def get_parents(self, parent_ids) -> List[Parent]:
        return [self.parents[pid] for pid in parent_ids if pid in self.parents]

    async def list_parents(self) -> List[Parent]:
        return sorted(self.parents.values(), key=lambda p: p.name)

    async def set_parent_chat_id(self, parent_id, chat_id: str):
        self.parents[parent_id] = self.parents[parent_id].model_copy(update={"telegram_chat_id": chat_id})

    # ----- students -----
    async def get_students(self) -> List[Student]:
        return list(self.students.values())

    async def get_student(self, student_pk) -> Optional[Student]:
        return self.students.get(student_pk)

    async def insert_student(self, student: StudentWrite) -> uuid.UUID:
        row = Student(id=uuid.uuid4(), created_at=self._now(), updated_at=self._now(), **student.model_dump())
        self.students[row.id] = row
        return row.id

    async def update_student(self, student_pk, student: StudentWrite):
        self.students[student_pk] = self.students[student_pk].model_copy(
            update={**student.model_dump(), "updated_at": self._now()}
        )

    async def deactivate_student(self, student_pk):
        self.students[student_pk] = self.students[student_pk].model_copy(
            update={"is_active": False, "updated_at": self._now()}
        )

    async def get_active_students_for_parent(self, parent_id) -> List[Student]:
        return [s for s in self.students.values() if s.is_active and parent_id in s.parent_ids]

    async def search_active_students(self, term: str, limit: int = 20) -> List[Student]:
        matches = [s for s in self.students.values() if s.is_active and term.lower() in s.name.lower()]
        return sorted(matches, key=lambda s: s.name)[:limit]

    # ----- attendance -----
    async def get_open_attendance(self, student_pk) -> Optional[Attendance]:
        open_rows = [a for a in self.attendance.values() if a.student_id == student_pk and a.check_out_time is None]
        return max(open_rows, key=lambda a: a.check_in_time, default=None)

    async def close_attendance(self, attendance_id, check_out_time: datetime):
        self.attendance[attendance_id] = self.attendance[attendance_id].model_copy(
            update={"check_out_time": check_out_time}
        )

    async def add_attendance(self, student_pk, staff_id, check_in_time: datetime) -> uuid.UUID:
        row = Attendance(id=uuid.uuid4(), student_id=student_pk, check_in_time=check_in_time,
                         checked_in_by=staff_id, created_at=self._now())
        self.attendance[row.id] = row
        return row.id

    async def get_attendance_log(self, since=None, limit: int = 100) -> List[AttendanceWithDetails]:
        rows = [a for a in self.attendance.values() if since is None or a.check_in_time >= since]
        rows.sort(key=lambda a: a.check_in_time, reverse=True)
        result = []
        for a in rows[:limit]:
            staff = self.staff.get(a.checked_in_by)
            result.append(AttendanceWithDetails(
                **a.model_dump(), student_name=self.students[a.student_id].name,
                checked_in_by_name=staff.name if staff else None,
            ))
        return result

    # ----- failed notifications -----
    async def add_failed_notification(self, student_pk, parent_id, error_message):
        self.failed_notifications.append(FailedNotification(
            id=uuid.uuid4(), student_id=student_pk, parent_id=parent_id,
            error_message=error_message, attempted_at=self._now(),
        ))

    async def get_failed_notifications(self, limit: int = 100) -> List[FailedNotification]:
        return list(reversed(self.failed_notifications))[:limit]

    # ----- staff & admins -----
    async def get_active_staff(self) -> List[Staff]:
        return [s for s in self.staff.values() if s.is_active]

    async def list_staff(self) -> List[Staff]:
        return sorted(self.staff.values(), key=lambda s: s.name)

    async def add_staff(self, name: str, pin_hash: str) -> Staff:
        staff = Staff(id=uuid.uuid4(), name=name, pin_hash=pin_hash, is_active=True, created_at=self._now())
        self.staff[staff.id] = staff
        return staff

    async def set_staff_active(self, staff_id, is_active: bool) -> int:
        if staff_id not in self.staff:
            return 0
        self.staff[staff_id] = self.staff[staff_id].model_copy(update={"is_active": is_active})
        return 1

    async def get_admin_by_email(self, email: str) -> Optional[Admin]:
        return next((a for a in self.admins.values() if a.email == email), None)

    async def get_admin(self, admin_id) -> Optional[Admin]:
        return self.admins.get(admin_id)

    # ----- link codes -----
    async def get_unused_link_code(self, code: str) -> Optional[LinkCode]:
        return next((c for c in self.link_codes.values() if c.code == code and not c.used), None)

    async def add_link_code(self, code: str, parent_id, expires_at: datetime) -> uuid.UUID:
        row = LinkCode(id=uuid.uuid4(), code=code, parent_id=parent_id, expires_at=expires_at, created_at=self._now())
        self.link_codes[row.id] = row
        return row.id

    async def mark_link_code_used(self, link_code_id) -> int:
        row = self.link_codes.get(link_code_id)
        if not row or row.used:
            return 0
        self.link_codes[link_code_id] = row.model_copy(update={"used": True})
        return 1


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
