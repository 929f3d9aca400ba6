# attendancr/api/schemas/auth.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from uuid import UUID


class StaffPinRequest(BaseModel):
    # Format is checked by the route so a bad PIN gets the documented 400 body.
    pin: Optional[str] = None


class StaffResponse(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    subject_id: UUID
    subject_name: Optional[str] = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StaffLoginResponse(BaseModel):
    success: bool = True
    staff: StaffResponse
    session: SessionResponse


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminLoginResponse(BaseModel):
    token: Token
    session: SessionResponse


# Internal representation of JWT data
class TokenData(BaseModel):
    admin_id: Optional[UUID] = None
