# attendancr/api/schemas/attendance.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional
from uuid import UUID


class CheckInRequest(BaseModel):
    """All three fields are required; presence is checked in the route."""
    student_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    check_in_time: Optional[datetime] = None


class CheckInResponse(BaseModel):
    success: bool
    attendance_id: Optional[UUID] = None
    notification_sent: bool = False
    notification_errors: Optional[List[str]] = None
    error: Optional[str] = None


class StudentSearchResult(BaseModel):
    id: UUID
    student_id: str
    name: str
    school: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceLogEntry(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    checked_in_by: UUID
    checked_in_by_name: Optional[str] = None
    check_in_display: str

    model_config = ConfigDict(from_attributes=True)
