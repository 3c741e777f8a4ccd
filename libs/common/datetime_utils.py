"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    entry = StatusHistoryEntry(status=OrderStatus.ACCEPTED, timestamp=utc_now())
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this instead of datetime.utcnow(), which returns naive datetimes.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_local(value: datetime) -> datetime:
    """Convert to the store's configured timezone (Asia/Kolkata by default)."""
    return ensure_aware(value).astimezone(ZoneInfo(get_settings().TIMEZONE))
