# attendancr/tools/formatting.py

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from ..config.config import settings


def centre_timezone(offset_hours: Optional[int] = None) -> timezone:
    """Fixed-offset timezone of the centre (Singapore, UTC+8, by default)."""
    hours = settings.CENTRE_UTC_OFFSET_HOURS if offset_hours is None else offset_hours
    return timezone(timedelta(hours=hours))


def _as_datetime(value: Union[datetime, str]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        # Naive values are taken to be UTC, which is how the store returns them.
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_time(value: Union[datetime, str], offset_hours: Optional[int] = None) -> str:
    """
    Formats a timestamp as a 12-hour clock time in the centre's timezone.

    >>> format_time("2024-01-15T10:30:00Z")
    '6:30 PM'
    """
    local = _as_datetime(value).astimezone(centre_timezone(offset_hours))
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_date(value: Union[datetime, str], offset_hours: Optional[int] = None) -> str:
    """Formats a timestamp as e.g. '15 Jan 2024' in the centre's timezone."""
    local = _as_datetime(value).astimezone(centre_timezone(offset_hours))
    return f"{local.day} {local.strftime('%b')} {local.year}"


def mask_phone(phone: str) -> str:
    """Hides all but the last four digits of a phone number."""
    if len(phone) <= 4:
        return phone
    return "****" + phone[-4:]
