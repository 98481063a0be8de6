"""
Timestamp helpers

Timestamps are stored as naive UTC so SQLite and PostgreSQL compare them the same way.
"""

from datetime import datetime, timezone
from typing import Optional

import pytz

from admissions.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_local(value: Optional[datetime], tz_name: str = None) -> Optional[datetime]:
    """Converts a stored UTC timestamp to the portal's timezone"""
    if value is None:
        return None
    local_tz = pytz.timezone(tz_name or settings.timezone)
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(local_tz)


def format_local(value: Optional[datetime], fmt: str = "%Y-%m-%d %H:%M") -> str:
    local = to_local(value)
    return local.strftime(fmt) if local else ""
