# attendancr/models/db_models.py

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Literal
from uuid import UUID

SyncStatus = Literal["in_progress", "success", "failed"]


class Parent(BaseModel):
    """
    A guardian who receives check-in notifications, mapping to the 'parents' table.
    """
    id: UUID
    name: str
    phone: str = Field(..., description="Natural key used to match guardians across roster rows")
    telegram_chat_id: Optional[str] = Field(None, description="Set once the guardian consumes a link code")
    created_at: Optional[datetime] = None


class StudentWrite(BaseModel):
    """
    The attribute set the roster reconciliation owns for a student.
    Optional fields are None when the roster leaves them blank.
    """
    student_id: str = Field(..., description="External roster identifier")
    name: str
    school: Optional[str] = None
    date_of_birth: Optional[str] = None
    emergency_contact: Optional[str] = None
    notes: Optional[str] = None
    primary_parent_id: Optional[UUID] = None
    secondary_parent_id: Optional[UUID] = None
    is_active: bool = True


class Student(StudentWrite):
    """
    A student row, mapping to the 'students' table. Never hard-deleted.
    """
    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def differs_from(self, incoming: StudentWrite) -> bool:
        """True when any reconciled attribute (including is_active) would change."""
        return self.model_dump(include=set(StudentWrite.model_fields)) != incoming.model_dump()

    @property
    def parent_ids(self) -> list:
        return [pid for pid in (self.primary_parent_id, self.secondary_parent_id) if pid]


class Staff(BaseModel):
    id: UUID
    name: str
    pin_hash: str
    is_active: bool = True
    created_at: Optional[datetime] = None


class Admin(BaseModel):
    id: UUID
    email: str
    password_hash: str
    created_at: Optional[datetime] = None


class Attendance(BaseModel):
    """
    One check-in session. check_out_time is None while the student is still in the centre.
    """
    id: UUID
    student_id: UUID = Field(..., description="FK to students.id")
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    checked_in_by: UUID = Field(..., description="FK to staff.id")
    created_at: Optional[datetime] = None


class AttendanceWithDetails(Attendance):
    student_name: str
    checked_in_by_name: Optional[str] = None


class FailedNotification(BaseModel):
    id: UUID
    student_id: UUID
    parent_id: UUID
    error_message: Optional[str] = None
    attempted_at: datetime


class SyncLog(BaseModel):
    """
    One roster reconciliation run. Rows stuck in 'in_progress' mark runs that never finished.
    """
    id: UUID
    sync_started_at: datetime
    sync_completed_at: Optional[datetime] = None
    status: SyncStatus
    error_message: Optional[str] = None
    students_added: int = 0
    students_updated: int = 0
    students_deleted: int = 0


class LinkCode(BaseModel):
    id: UUID
    code: str
    parent_id: UUID
    created_at: Optional[datetime] = None
    expires_at: datetime
    used: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
