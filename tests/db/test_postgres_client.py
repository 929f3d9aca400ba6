import os
import uuid
from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
import asyncpg

from attendancr.db.bootstrap import apply_schema
from attendancr.db.db_client import AsyncPostgresClient
from attendancr.models.db_models import StudentWrite

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")


@pytest_asyncio.fixture(scope="function")
async def db_pool():
    pool = await asyncpg.create_pool(TEST_DATABASE_URL)
    try:
        await apply_schema(pool)
        yield pool
    finally:
        await pool.close()


@pytest_asyncio.fixture(autouse=True)
async def clear_tables(db_pool):
    async with db_pool.acquire() as connection:
        await connection.execute(
            "TRUNCATE telegram_link_codes, failed_notifications, attendance, students, parents, "
            "staff, admins, google_sheets_sync_log CASCADE;"
        )


@pytest.fixture
def db_client(db_pool) -> AsyncPostgresClient:
    return AsyncPostgresClient(pool=db_pool)


@pytest.mark.asyncio
class TestAsyncPostgresClient:

    async def test_upsert_parent_by_phone(self, db_client):
        first = await db_client.upsert_parent("Mary", "91234567")
        second = await db_client.upsert_parent("Mary Lim", "91234567")

        assert first == second
        assert (await db_client.get_parent(first)).name == "Mary Lim"

    async def test_student_lifecycle(self, db_client):
        parent_id = await db_client.upsert_parent("Mary", "91234567")
        student_pk = await db_client.insert_student(StudentWrite(student_id="S1", name="Ann", primary_parent_id=parent_id))

        await db_client.update_student(student_pk, StudentWrite(student_id="S1", name="Ann Tan", primary_parent_id=parent_id))
        await db_client.deactivate_student(student_pk)

        student = await db_client.get_student(student_pk)
        assert student.name == "Ann Tan"
        assert student.is_active is False
        assert await db_client.get_active_students_for_parent(parent_id) == []
        assert await db_client.search_active_students("ann") == []

    async def test_open_attendance_is_most_recent(self, db_client):
        student_pk = await db_client.insert_student(StudentWrite(student_id="S1", name="Ann"))
        staff = await db_client.add_staff("Desk", "hash")
        t0 = datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

        await db_client.add_attendance(student_pk, staff.id, t0)
        latest = await db_client.add_attendance(student_pk, staff.id, t0 + timedelta(hours=1))

        assert (await db_client.get_open_attendance(student_pk)).id == latest
        await db_client.close_attendance(latest, t0 + timedelta(hours=2))
        log = await db_client.get_attendance_log()
        assert log[0].student_name == "Ann"
        assert log[0].checked_in_by_name == "Desk"

    async def test_link_code_marks_used_once(self, db_client):
        parent_id = await db_client.upsert_parent("Mary", "91234567")
        code_id = await db_client.add_link_code("ABC234", parent_id, datetime.now(timezone.utc) + timedelta(hours=24))

        assert (await db_client.get_unused_link_code("ABC234")).id == code_id
        assert await db_client.mark_link_code_used(code_id) == 1
        assert await db_client.mark_link_code_used(code_id) == 0
        assert await db_client.get_unused_link_code("ABC234") is None

    async def test_sync_log_round(self, db_client):
        sync_id = await db_client.create_sync_log()
        await db_client.complete_sync_log(sync_id, "success", 1, 2, 3, None)

        log = (await db_client.get_sync_logs())[0]
        assert log.id == sync_id
        assert (log.status, log.students_added, log.students_updated, log.students_deleted) == ("success", 1, 2, 3)

    async def test_staff_toggle_unknown(self, db_client):
        assert await db_client.set_staff_active(uuid.uuid4(), False) == 0
