"""
Wall-clock datetime helpers.

Trade times are stored as naive datetimes exactly as the trader typed them
(or as the screenshot showed them). No timezone conversion happens anywhere.
"""

import re
from datetime import datetime, date
from typing import Optional, Union

_WALL_CLOCK_RE = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})(?:[ T](\d{2}):(\d{2})(?::(\d{2}))?)?$'
)

DateLike = Union[datetime, date, str, None]


def _coerce(value: DateLike) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        parsed = parse_wall_clock(value)
        if parsed is not None:
            return parsed
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def format_ymd_hms(value: DateLike) -> str:
    """Format as YYYY-MM-DD HH:MM:SS, empty string when missing or invalid"""
    dt = _coerce(value)
    if dt is None:
        return ''
    return dt.strftime('%Y-%m-%d %H:%M:%S')


def format_ymd(value: DateLike) -> str:
    """Format as YYYYMMDD, empty string when missing or invalid"""
    dt = _coerce(value)
    if dt is None:
        return ''
    return dt.strftime('%Y%m%d')


def parse_wall_clock(raw: Optional[str]) -> Optional[datetime]:
    """
    Parse a wall-clock string into a naive datetime.

    Accepts YYYY-MM-DD, YYYY-MM-DD HH:MM and YYYY-MM-DD HH:MM:SS, with either
    a space or a 'T' between date and time.

    Returns:
        datetime, or None when the text does not match or the date is impossible
    """
    if not raw:
        return None
    match = _WALL_CLOCK_RE.match(raw.strip())
    if not match:
        return None

    year, month, day = (int(match.group(i)) for i in (1, 2, 3))
    hour = int(match.group(4) or 0)
    minute = int(match.group(5) or 0)
    second = int(match.group(6) or 0)

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None
