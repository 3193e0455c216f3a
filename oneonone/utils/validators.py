"""
Input validation utilities
"""
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_time_of_day(value: str) -> str:
    """Validate a 24h "HH:mm" wall-clock time"""
    if not _TIME_OF_DAY.match(value or ""):
        raise ValueError("time_of_day must be in HH:mm format")
    return value


def validate_day_of_week(value: int) -> int:
    """Validate a weekday index, 0 = Sunday .. 6 = Saturday"""
    if value < 0 or value > 6:
        raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    return value


def validate_time_zone(value: str | None) -> str | None:
    """Validate an IANA timezone name"""
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown time zone: {value}")
    return value
