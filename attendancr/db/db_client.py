import logging
from typing import List, Optional
from uuid import UUID
import asyncpg
from datetime import datetime, timezone
from ..models.db_models import (
    Admin, Attendance, AttendanceWithDetails, FailedNotification, LinkCode,
    Parent, Staff, Student, StudentWrite, SyncLog,
)

logger = logging.getLogger(__name__)


class AsyncPostgresClient:
    """
    PostgreSQL client for every directory-store operation.
    Each method runs a single statement on its own pooled connection; no
    transaction spans two calls.
    """
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    # ===== Sync log =====

    async def create_sync_log(self) -> UUID:
        """Opens a reconciliation run in 'in_progress' state and returns its id."""
        query = """
            INSERT INTO google_sheets_sync_log (status, students_added, students_updated, students_deleted)
            VALUES ('in_progress', 0, 0, 0)
            RETURNING id;
        """
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query)

    async def complete_sync_log(self, sync_id: UUID, status: str, students_added: int, students_updated: int,
                                students_deleted: int, error_message: Optional[str]):
        query = """
            UPDATE google_sheets_sync_log
            SET status = $2, sync_completed_at = $3, students_added = $4,
                students_updated = $5, students_deleted = $6, error_message = $7
            WHERE id = $1;
        """
        async with self._pool.acquire() as connection:
            return await connection.execute(
                query, sync_id, status, datetime.now(timezone.utc),
                students_added, students_updated, students_deleted, error_message
            )

    async def get_sync_logs(self, limit: int = 20) -> List[SyncLog]:
        query = "SELECT * FROM google_sheets_sync_log ORDER BY sync_started_at DESC LIMIT $1;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, limit)
            return [SyncLog(**record) for record in records]

    # ===== Parents =====

    async def upsert_parent(self, name: str, phone: str) -> UUID:
        """Inserts a guardian or renames the one already holding this phone (last write wins)."""
        query = """
            INSERT INTO parents (name, phone)
            VALUES ($1, $2)
            ON CONFLICT (phone) DO UPDATE SET name = EXCLUDED.name
            RETURNING id;
        """
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query, name, phone)

    async def get_parent_by_phone(self, phone: str) -> Optional[Parent]:
        query = "SELECT * FROM parents WHERE phone = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, phone)
            return Parent(**record) if record else None

    async def get_parent(self, parent_id: UUID) -> Optional[Parent]:
        query = "SELECT * FROM parents WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, parent_id)
            return Parent(**record) if record else None

    async def get_parents(self, parent_ids: List[UUID]) -> List[Parent]:
        if not parent_ids:
            return []
        query = "SELECT * FROM parents WHERE id = ANY($1::uuid[]);"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, parent_ids)
            return [Parent(**record) for record in records]

    async def list_parents(self) -> List[Parent]:
        query = "SELECT * FROM parents ORDER BY name;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query)
            return [Parent(**record) for record in records]

    async def set_parent_chat_id(self, parent_id: UUID, chat_id: str):
        query = "UPDATE parents SET telegram_chat_id = $2 WHERE id = $1;"
        async with self._pool.acquire() as connection:
            return await connection.execute(query, parent_id, chat_id)

    # ===== Students =====

    async def get_students(self) -> List[Student]:
        """Every student, active or not: the baseline for roster reconciliation."""
        query = "SELECT * FROM students;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query)
            return [Student(**record) for record in records]

    async def get_student(self, student_pk: UUID) -> Optional[Student]:
        query = "SELECT * FROM students WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, student_pk)
            return Student(**record) if record else None

    async def insert_student(self, student: StudentWrite) -> UUID:
        query = """
            INSERT INTO students (student_id, name, school, date_of_birth, emergency_contact, notes,
                                  primary_parent_id, secondary_parent_id, is_active, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING id;
        """
        async with self._pool.acquire() as connection:
            return await connection.fetchval(
                query, student.student_id, student.name, student.school, student.date_of_birth,
                student.emergency_contact, student.notes, student.primary_parent_id,
                student.secondary_parent_id, student.is_active, datetime.now(timezone.utc)
            )

    async def update_student(self, student_pk: UUID, student: StudentWrite):
        query = """
            UPDATE students
            SET student_id = $2, name = $3, school = $4, date_of_birth = $5, emergency_contact = $6,
                notes = $7, primary_parent_id = $8, secondary_parent_id = $9, is_active = $10,
                updated_at = $11
            WHERE id = $1;
        """
        async with self._pool.acquire() as connection:
            return await connection.execute(
                query, student_pk, student.student_id, student.name, student.school,
                student.date_of_birth, student.emergency_contact, student.notes,
                student.primary_parent_id, student.secondary_parent_id, student.is_active,
                datetime.now(timezone.utc)
            )

    async def deactivate_student(self, student_pk: UUID):
        """Soft delete: only is_active and updated_at change."""
        query = "UPDATE students SET is_active = FALSE, updated_at = $2 WHERE id = $1;"
        async with self._pool.acquire() as connection:
            return await connection.execute(query, student_pk, datetime.now(timezone.utc))

    async def get_active_students_for_parent(self, parent_id: UUID) -> List[Student]:
        query = """
            SELECT * FROM students
            WHERE (primary_parent_id = $1 OR secondary_parent_id = $1) AND is_active = TRUE
            ORDER BY name;
        """
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, parent_id)
            return [Student(**record) for record in records]

    async def search_active_students(self, term: str, limit: int = 20) -> List[Student]:
        query = """
            SELECT * FROM students
            WHERE is_active = TRUE AND (name ILIKE $1 OR student_id ILIKE $1)
            ORDER BY name
            LIMIT $2;
        """
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, f"%{term}%", limit)
            return [Student(**record) for record in records]

    # ===== Attendance =====

    async def get_open_attendance(self, student_pk: UUID) -> Optional[Attendance]:
        """The most recent session of this student that has no check-out time."""
        query = """
            SELECT * FROM attendance
            WHERE student_id = $1 AND check_out_time IS NULL
            ORDER BY check_in_time DESC
            LIMIT 1;
        """
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, student_pk)
            return Attendance(**record) if record else None

    async def close_attendance(self, attendance_id: UUID, check_out_time: datetime):
        query = "UPDATE attendance SET check_out_time = $2 WHERE id = $1;"
        async with self._pool.acquire() as connection:
            return await connection.execute(query, attendance_id, check_out_time)

    async def add_attendance(self, student_pk: UUID, staff_id: UUID, check_in_time: datetime) -> UUID:
        query = """
            INSERT INTO attendance (student_id, check_in_time, checked_in_by)
            VALUES ($1, $2, $3)
            RETURNING id;
        """
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query, student_pk, check_in_time, staff_id)

    async def get_attendance_log(self, since: Optional[datetime] = None, limit: int = 100) -> List[AttendanceWithDetails]:
        query = """
            SELECT a.*, s.name AS student_name, st.name AS checked_in_by_name
            FROM attendance a
            JOIN students s ON s.id = a.student_id
            LEFT JOIN staff st ON st.id = a.checked_in_by
            WHERE $1::timestamptz IS NULL OR a.check_in_time >= $1
            ORDER BY a.check_in_time DESC
            LIMIT $2;
        """
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, since, limit)
            return [AttendanceWithDetails(**record) for record in records]

    # ===== Failed notifications =====

    async def add_failed_notification(self, student_pk: UUID, parent_id: UUID, error_message: Optional[str]):
        query = """
            INSERT INTO failed_notifications (student_id, parent_id, error_message)
            VALUES ($1, $2, $3);
        """
        async with self._pool.acquire() as connection:
            return await connection.execute(query, student_pk, parent_id, error_message)

    async def get_failed_notifications(self, limit: int = 100) -> List[FailedNotification]:
        query = "SELECT * FROM failed_notifications ORDER BY attempted_at DESC LIMIT $1;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, limit)
            return [FailedNotification(**record) for record in records]

    # ===== Staff & admins =====

    async def get_active_staff(self) -> List[Staff]:
        query = "SELECT * FROM staff WHERE is_active = TRUE ORDER BY created_at;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query)
            return [Staff(**record) for record in records]

    async def list_staff(self) -> List[Staff]:
        query = "SELECT * FROM staff ORDER BY name;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query)
            return [Staff(**record) for record in records]

    async def add_staff(self, name: str, pin_hash: str) -> Staff:
        query = """
            INSERT INTO staff (name, pin_hash, is_active)
            VALUES ($1, $2, TRUE)
            RETURNING *;
        """
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, name, pin_hash)
            return Staff(**record)

    async def set_staff_active(self, staff_id: UUID, is_active: bool) -> int:
        """Returns the number of rows touched (0 when the staff id is unknown)."""
        query = "UPDATE staff SET is_active = $2 WHERE id = $1;"
        async with self._pool.acquire() as connection:
            status_msg = await connection.execute(query, staff_id, is_active)
            return int(status_msg.split()[-1])

    async def get_admin_by_email(self, email: str) -> Optional[Admin]:
        query = "SELECT * FROM admins WHERE email = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, email)
            return Admin(**record) if record else None

    async def get_admin(self, admin_id: UUID) -> Optional[Admin]:
        query = "SELECT * FROM admins WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, admin_id)
            return Admin(**record) if record else None

    # ===== Telegram link codes =====

    async def get_unused_link_code(self, code: str) -> Optional[LinkCode]:
        query = "SELECT * FROM telegram_link_codes WHERE code = $1 AND used = FALSE LIMIT 1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, code)
            return LinkCode(**record) if record else None

    async def add_link_code(self, code: str, parent_id: UUID, expires_at: datetime) -> UUID:
        query = """
            INSERT INTO telegram_link_codes (code, parent_id, expires_at, used)
            VALUES ($1, $2, $3, FALSE)
            RETURNING id;
        """
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query, code, parent_id, expires_at)

    async def mark_link_code_used(self, link_code_id: UUID) -> int:
        """Flips used only if still unused, so a code can never be consumed twice."""
        query = "UPDATE telegram_link_codes SET used = TRUE WHERE id = $1 AND used = FALSE;"
        async with self._pool.acquire() as connection:
            status_msg = await connection.execute(query, link_code_id)
            return int(status_msg.split()[-1])
