# attendancr/models/roster_models.py

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

# Header text of the roster sheet, keyed by RosterRow field name.
ROSTER_COLUMNS = {
    "student_id": "Student ID",
    "student_name": "Student Name",
    "school": "School",
    "date_of_birth": "Date of Birth",
    "emergency_contact": "Emergency Contact",
    "notes": "Notes",
    "primary_parent_name": "Primary Parent Name",
    "primary_parent_phone": "Primary Parent Phone",
    "primary_parent_telegram": "Primary Parent Telegram",
    "secondary_parent_name": "Secondary Parent Name",
    "secondary_parent_phone": "Secondary Parent Phone",
    "secondary_parent_telegram": "Secondary Parent Telegram",
}

REQUIRED_FIELDS = ("student_id", "student_name", "primary_parent_name", "primary_parent_phone")
REQUIRED_COLUMNS = [ROSTER_COLUMNS[f] for f in REQUIRED_FIELDS]


class RosterRow(BaseModel):
    """
    One validated data row of the roster sheet.
    Cells are trimmed and blank optional cells become None.
    """
    row_number: int = Field(..., description="1-based row number in the sheet, header included.")
    student_id: str = Field(..., min_length=1)
    student_name: str = Field(..., min_length=1)
    school: Optional[str] = None
    date_of_birth: Optional[str] = None
    emergency_contact: Optional[str] = None
    notes: Optional[str] = None
    primary_parent_name: str = Field(..., min_length=1)
    primary_parent_phone: str = Field(..., min_length=1)
    primary_parent_telegram: Optional[str] = None
    secondary_parent_name: Optional[str] = None
    secondary_parent_phone: Optional[str] = None
    secondary_parent_telegram: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_cells(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def has_secondary_parent(self) -> bool:
        return bool(self.secondary_parent_name and self.secondary_parent_phone)


class RosterSnapshot(BaseModel):
    """The parsed roster: valid rows plus the non-fatal per-row errors."""
    rows: List[RosterRow] = []
    errors: List[str] = []
