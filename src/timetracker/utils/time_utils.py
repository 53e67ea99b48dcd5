"""
Date and time helpers shared by the services.
"""
import datetime
import math
import re
from typing import Optional, Union

DateLike = Union[str, datetime.date, None]

_TIME_24H = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')
_TIME_12H = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)$', re.IGNORECASE)

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d.%m.%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
]


def format_hms(total_seconds: int) -> str:
    """Format seconds to HH:MM:SS."""
    total_seconds = max(0, int(total_seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_time(value: Optional[str]) -> Optional[datetime.time]:
    """
    Parse a time-of-day string.

    Accepts ``HH:MM``, ``HH:MM:SS`` and ``HH:MM AM/PM``. Returns None for
    anything else.
    """
    if not value:
        return None
    value = value.strip()

    match = _TIME_24H.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3) or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            return None
        return datetime.time(hours, minutes, seconds)

    match = _TIME_12H.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        meridiem = match.group(3).upper()
        if not 1 <= hours <= 12 or minutes > 59:
            return None
        if meridiem == 'PM' and hours < 12:
            hours += 12
        elif meridiem == 'AM' and hours == 12:
            hours = 0
        return datetime.time(hours, minutes)

    return None


def calculate_duration(start_time: Optional[str], end_time: Optional[str]) -> float:
    """
    Hours between two times of day, rounded to two decimals.

    An end time before the start time is treated as an overnight shift.
    Unparseable input yields 0.
    """
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None or end is None:
        return 0.0

    start_seconds = start.hour * 3600 + start.minute * 60 + start.second
    end_seconds = end.hour * 3600 + end.minute * 60 + end.second
    hours = (end_seconds - start_seconds) / 3600.0
    if hours < 0:
        hours += 24
    return round(hours, 2)


def round_to_half_hour(hours: float) -> float:
    """Round hours to the nearest half hour (ties up), never below zero."""
    return max(0.0, math.floor(hours * 2 + 0.5) / 2)


def parse_date(value: DateLike) -> Optional[datetime.date]:
    """Parse a date from the formats seen in imported timesheets."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_date(value: DateLike) -> Optional[str]:
    """Return the ISO form of a date, or None if it cannot be parsed."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def to_iso(value: DateLike) -> str:
    """Coerce a date or date string to an ISO string (empty if unset)."""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return parse_date(value).isoformat()
    return (value or '').strip()


def now_iso(now: Optional[datetime.datetime] = None) -> str:
    return (now or datetime.datetime.now()).isoformat(timespec='seconds')


def count_work_days(start: DateLike, end: DateLike) -> int:
    """Count Monday-to-Friday days in an inclusive date range."""
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None or end_date < start_date:
        return 0
    days = 0
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            days += 1
        current += datetime.timedelta(days=1)
    return days


def days_between(start: DateLike, end: DateLike) -> int:
    """Inclusive number of calendar days in a range (0 if invalid)."""
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None or end_date < start_date:
        return 0
    return (end_date - start_date).days + 1
