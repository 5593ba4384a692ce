"""Parser for human readable duration strings."""

import re

_NATURAL = re.compile(
    r"^\s*(?:(?P<hours>\d+(?:[.,]\d+)?)\s*h)?\s*(?:(?P<minutes>\d+)\s*m)?\s*(?:(?P<seconds>\d+)\s*s)?\s*$",
    re.IGNORECASE,
)
_COLON = re.compile(r"^\s*(?P<hours>\d+):(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?\s*$")
_DECIMAL = re.compile(r"^\s*\d+(?:[.,]\d+)?\s*$|^\s*[.,]\d+\s*$")


def parse_duration(value: str) -> int:
    """
    Converts a duration string into seconds.

    Supported formats are ``h:mm[:ss]`` (``1:30``), natural (``1h30m``, ``2h 15m 10s``)
    and decimal hours (``1.5`` or ``1,5``). Raises ValueError for anything else,
    including negative values.
    """
    if value is None:
        raise ValueError("Empty duration")
    value = str(value).strip()
    if value == "":
        raise ValueError("Empty duration")
    if value.startswith("-"):
        raise ValueError(f"Negative duration: {value}")

    if ":" in value:
        match = _COLON.match(value)
        if match is None:
            raise ValueError(f"Invalid duration: {value}")
        minutes = int(match.group("minutes"))
        seconds = int(match.group("seconds") or 0)
        if minutes > 59 or seconds > 59:
            raise ValueError(f"Invalid duration: {value}")
        return int(match.group("hours")) * 3600 + minutes * 60 + seconds

    if re.search(r"[hms]", value, re.IGNORECASE):
        match = _NATURAL.match(value)
        if match is None or not any(match.groupdict().values()):
            raise ValueError(f"Invalid duration: {value}")
        hours = float((match.group("hours") or "0").replace(",", "."))
        minutes = int(match.group("minutes") or 0)
        seconds = int(match.group("seconds") or 0)
        return int(round(hours * 3600)) + minutes * 60 + seconds

    if _DECIMAL.match(value):
        return int(round(float(value.replace(",", ".")) * 3600))

    raise ValueError(f"Invalid duration: {value}")
