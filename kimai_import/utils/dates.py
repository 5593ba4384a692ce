"""Parsing of date/time strings found in exports."""

from datetime import datetime, timezone as dt_timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Layouts tried after ISO 8601, in order. US style m/d/Y before European d/m/Y.
DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %I:%M:%S %p",
    "%Y-%m-%d %I:%M %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
]


def get_timezone(name) -> tzinfo:
    """ZoneInfo for ``name``, UTC when empty or unknown."""
    if not name:
        return dt_timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return dt_timezone.utc


def is_valid_timezone(name) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def parse_datetime(value: str, tz: tzinfo) -> datetime:
    """
    Parses ``value`` into an aware datetime.

    Values without an offset are interpreted as wall clock time in ``tz``.
    Raises ValueError when no known layout matches.
    """
    value = str(value).strip()
    if value == "":
        raise ValueError("Empty date")

    parsed = None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        for fmt in DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        raise ValueError(f"Invalid date: {value}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def to_utc(value: datetime) -> datetime:
    return value.astimezone(dt_timezone.utc)
