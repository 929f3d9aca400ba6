# attendancr/api/schemas/admin.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from uuid import UUID


class StaffCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    pin: str = Field(..., pattern=r"^[0-9]{6}$", description="Six-digit kiosk PIN.")


class StaffUpdateRequest(BaseModel):
    id: UUID
    is_active: bool


class StaffSummary(BaseModel):
    id: UUID
    name: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ParentSummary(BaseModel):
    id: UUID
    name: str
    phone: str = Field(..., description="Masked; only the last four digits are shown.")
    telegram_linked: bool


class FailedNotificationEntry(BaseModel):
    id: UUID
    student_id: UUID
    parent_id: UUID
    error_message: Optional[str] = None
    attempted_at: datetime

    model_config = ConfigDict(from_attributes=True)
