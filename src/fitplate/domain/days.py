"""Calendar-day helpers for daily log identity."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

DAY_KEY_FORMAT = "%Y-%m-%d"


def start_of_day(value: date | datetime, timezone_name: str = "UTC") -> date:
    """Return the calendar day containing value in the given timezone."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(ZoneInfo(timezone_name)).date()
    return value


def day_key(day: date) -> str:
    """Return the document key for a calendar day."""
    return day.strftime(DAY_KEY_FORMAT)


def parse_day_key(value: str) -> date | None:
    """Parse a document key back into a date."""
    try:
        return datetime.strptime(value, DAY_KEY_FORMAT).date()
    except ValueError:
        return None

