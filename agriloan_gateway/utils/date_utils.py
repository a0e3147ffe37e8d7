"""Date manipulation utilities"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def days_until(target: date, from_date: date) -> int:
    """Whole days from from_date to target (negative once target has passed)"""
    return (target - from_date).days
