"""Date and time helpers for simplenotes.

Notes are edited through two text fields, a date ("January 2, 2006") and a
12-hour time ("3:04 PM"). These helpers parse the fields, combine them into
one UTC instant and format stored instants back into the same patterns.
"""
import datetime
import logging
from datetime import timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Display/edit patterns for Note dates
NOTE_DATE_FORMAT = "%B %d, %Y"
NOTE_TIME_FORMAT = "%I:%M %p"

# Accepted when parsing only, e.g. "Jan 1, 2024"
_DATE_INPUT_FORMATS = (NOTE_DATE_FORMAT, "%b %d, %Y")

# An empty time field means midnight
DEFAULT_TIME = "12:00 AM"


def parse_date(text: str) -> datetime.date:
    """Parse a date such as "January 2, 2006" or "Jan 2, 2006".

    Raises:
        ValueError: If the text matches neither pattern.
    """
    for fmt in _DATE_INPUT_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"invalid date: {text!r}")


def parse_time(text: str) -> datetime.time:
    """Parse a 12-hour time such as "3:04 PM". Empty text means midnight.

    Raises:
        ValueError: If the text is not a valid 12-hour time.
    """
    if text == "":
        text = DEFAULT_TIME
    try:
        return datetime.datetime.strptime(text, NOTE_TIME_FORMAT).time()
    except ValueError as e:
        raise ValueError(f"invalid time: {text!r}") from e


def combine(date: datetime.date, time: datetime.time) -> datetime.datetime:
    """Combine a date and a time of day into a UTC instant.

    Only the wall-clock fields are used; any zone attached to ``time`` is
    dropped and replaced with UTC.
    """
    return datetime.datetime(
        date.year, date.month, date.day,
        time.hour, time.minute, time.second, time.microsecond,
        tzinfo=timezone.utc,
    )


def format_date(value: datetime.datetime) -> str:
    """Format an instant's date as "January 2, 2006"."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_time(value: datetime.datetime) -> str:
    """Format an instant's time as "3:04 PM"."""
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {value.strftime('%p')}"


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite stores datetimes without zone information, so every value read
    back from the database goes through here.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def local_now(zone_name: str) -> datetime.datetime:
    """Get the current time in the named zone, falling back to UTC."""
    try:
        zone = ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC", zone_name)
        zone = timezone.utc
    return datetime.datetime.now(zone)
