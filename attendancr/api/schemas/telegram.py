# attendancr/api/schemas/telegram.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from uuid import UUID


class GenerateLinkRequest(BaseModel):
    parent_id: UUID


class GenerateLinkResponse(BaseModel):
    success: bool = True
    link: str
    code: str
    expires_at: Optional[datetime] = None
