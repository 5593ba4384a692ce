"""Batch-fatal import errors.

Every error raised from here aborts the whole import call. Problems with a
single row never raise, they are collected on the row instead.
"""

from typing import Iterable, List, Optional


class ImportException(ValueError):
    """Base class for errors that abort an import run."""


class EmptyInputError(ImportException):
    def __init__(self):
        super().__init__("Unsupported file given: empty")


class RowLimitExceededError(ImportException):
    def __init__(self, max_rows: int):
        self.max_rows = max_rows
        super().__init__(f"Maximum of {max_rows} rows allowed per import")


class DelimiterMismatchError(ImportException):
    def __init__(self):
        super().__init__("Unsupported file given: wrong delimiter?")


class UnsupportedFormatError(ImportException):
    def __init__(self, message: str = "Unsupported file given"):
        super().__init__(message)


class MissingColumnsError(ImportException):
    def __init__(self, columns: Iterable[str]):
        self.columns = sorted(columns)
        super().__init__("Invalid file given, missing and/or invalid columns: " + ", ".join(self.columns))


class AmbiguousFormatError(ImportException):
    def __init__(self, candidates: Optional[List[str]] = None):
        self.candidates = candidates or []
        if self.candidates:
            message = "Found multiple matching importers: " + ", ".join(self.candidates)
        else:
            message = "Could not find matching importer"
        super().__init__(message)


class LegacySourceError(ImportException):
    """The legacy database can not be imported; carries all collected messages."""

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("\n".join(self.messages))
