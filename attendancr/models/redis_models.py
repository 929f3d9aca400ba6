from pydantic import BaseModel, Field
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional
from uuid import UUID

SessionKind = Literal["staff", "admin"]


class Session(BaseModel):
    """
    A kiosk or admin login session. Persisted in Redis with a TTL matching
    expires_at; validity itself is a plain comparison against the clock.
    """
    kind: SessionKind
    subject_id: UUID = Field(..., description="Staff or admin id the session belongs to.")
    subject_name: Optional[str] = None
    expires_at: datetime = Field(..., description="The session is invalid from this instant on.")

    @classmethod
    def create(cls, kind: SessionKind, subject_id: UUID, duration: timedelta,
               subject_name: Optional[str] = None, now: Optional[datetime] = None) -> "Session":
        start = now or datetime.now(timezone.utc)
        return cls(kind=kind, subject_id=subject_id, subject_name=subject_name, expires_at=start + duration)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) < self.expires_at

    def ttl_seconds(self, now: Optional[datetime] = None) -> int:
        remaining = self.expires_at - (now or datetime.now(timezone.utc))
        return max(int(remaining.total_seconds()), 0)
