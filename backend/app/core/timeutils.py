"""Helpers for "HH:MM" schedule strings and weekday names."""
from datetime import date, datetime
from typing import Optional, Union

from backend.app.core.constants import WEEKDAYS
from backend.app.core.exceptions import InvalidInputError


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. Raises InvalidInputError."""
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (ValueError, AttributeError):
        raise InvalidInputError(f"Invalid time '{value}', expected HH:MM")
    # "24:00" is accepted as an end-of-day close time
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or (hours == 24 and minutes != 0):
        raise InvalidInputError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_weekday(day: Union[str, int, date, datetime]) -> str:
    """
    Accept a full weekday name in any case, an index (0=Monday .. 6=Sunday)
    or a date, and return the lowercase full name.
    """
    if isinstance(day, (date, datetime)):
        return WEEKDAYS[day.weekday()]
    if isinstance(day, int) and not isinstance(day, bool):
        if 0 <= day <= 6:
            return WEEKDAYS[day]
        raise InvalidInputError("weekday index must be between 0 and 6")
    if isinstance(day, str):
        name = day.strip().lower()
        if name in WEEKDAYS:
            return name
    raise InvalidInputError(f"Unknown weekday '{day}'")


def day_hours(operating_hours: Optional[dict], weekday: str) -> Optional[tuple[int, int]]:
    """Return (open, close) in minutes for a weekday, or None if closed/unset."""
    if not operating_hours or not isinstance(operating_hours, dict):
        return None
    config = operating_hours.get(weekday)
    if not isinstance(config, dict):
        return None
    open_time = config.get("open")
    close_time = config.get("close")
    if not open_time or not close_time:
        return None
    return parse_hhmm(open_time), parse_hhmm(close_time)
