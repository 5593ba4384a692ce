"""Turns raw CSV or JSON payloads into ordered rows of flat records."""

import csv
import io
import json
import logging
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from kimai_import.exceptions import DelimiterMismatchError, EmptyInputError, UnsupportedFormatError

log = logging.getLogger(__name__)

SUPPORTED_DELIMITERS = (";", ",", "\t")


class ParsedFile(BaseModel):
    """Header plus rows in source order."""
    header: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


def decode(content: bytes) -> str:
    """UTF-8 text; undecodable bytes survive as surrogate escapes so rows can be flagged later."""
    if isinstance(content, str):
        return content
    return content.decode("utf-8-sig", errors="surrogateescape")


def read_csv(content: bytes, delimiter: str = ";") -> ParsedFile:
    if delimiter not in SUPPORTED_DELIMITERS:
        raise UnsupportedFormatError("Missing delimiter")

    text = decode(content)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)

    header = None
    for line in reader:
        if any(cell.strip() for cell in line):
            header = [cell.strip() for cell in line]
            break

    if header is None:
        raise EmptyInputError()

    if len(header) == 1:
        others = [other for other in (";", ",") if other != delimiter]
        if any(other in header[0] for other in others):
            raise DelimiterMismatchError()

    rows = []
    width = len(header)
    for line in reader:
        if not any(cell.strip() for cell in line):
            continue
        if len(line) < width:
            line = line + [""] * (width - len(line))
        rows.append(dict(zip(header, line[:width])))

    if not rows:
        raise EmptyInputError()

    log.debug(f"Read {len(rows)} CSV rows with {width} columns")
    return ParsedFile(header=header, rows=rows)


def read_json(content: bytes) -> ParsedFile:
    text = decode(content)
    if text.strip() == "":
        raise EmptyInputError()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        log.debug(f"Invalid JSON payload: {e}")
        raise UnsupportedFormatError()

    if not isinstance(data, list):
        raise UnsupportedFormatError()
    if not data:
        raise EmptyInputError()

    rows = []
    for item in data:
        if not isinstance(item, dict):
            raise UnsupportedFormatError()
        for value in item.values():
            if isinstance(value, (dict, list)):
                raise UnsupportedFormatError()
        rows.append(dict(item))

    header = [str(key) for key in rows[0].keys()]
    log.debug(f"Read {len(rows)} JSON rows with {len(header)} keys")
    return ParsedFile(header=header, rows=rows)
