"""Small value converters shared by all importers."""

import re
from typing import Any, Optional

_NUMERIC = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_TAGS = re.compile(r"<[^>]*>")

TRUE_VALUES = ("true", "yes", "on", "1")


def convert_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return False
    if isinstance(value, int):
        return bool(value)
    return str(value).strip().lower() in TRUE_VALUES


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if value is None:
        return False
    return _NUMERIC.match(str(value)) is not None


def to_float(value: Any) -> Optional[float]:
    """Float for numeric values, None for anything else."""
    if not is_numeric(value):
        return None
    return float(value)


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_utf8(value: Any) -> bool:
    """False if the text carries undecodable bytes (kept as surrogate escapes while reading)."""
    if not isinstance(value, str):
        return True
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def strip_tags(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _TAGS.sub("", value)


def calculate_rate(hourly_rate: float, duration: int) -> float:
    """Rate earned for ``duration`` seconds at ``hourly_rate``."""
    return round(float(hourly_rate) * (duration / 3600), 4)
