"""
Time helpers
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_iso_timestamp(value: datetime) -> str:
    """
    Format a datetime as UTC ISO-8601 with millisecond precision and a Z suffix,
    e.g. 2026-10-19T12:00:00.000Z
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
