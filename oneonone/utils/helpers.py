"""
General helper utilities
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current instant as naive UTC (the storage convention for all columns)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an API datetime to naive UTC. Naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_meeting_date(value: datetime) -> str:
    """Human readable UTC timestamp for notification and email bodies"""
    return value.strftime("%a, %b %d %Y at %H:%M UTC")


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Split "HH:mm" into (hours, minutes)"""
    hours, minutes = value.split(":")
    return int(hours), int(minutes)
