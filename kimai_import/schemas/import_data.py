from enum import Enum
from typing import Any, Dict, List
from pydantic import BaseModel, Field


class RowStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    RESOLVED = "resolved"
    MAPPED = "mapped"
    PERSISTED = "persisted"
    SKIPPED = "skipped"
    FAILED = "failed"


class ImportRow(BaseModel):
    """One input row together with its outcome."""
    data: Dict[str, Any] = Field(default_factory=dict, description="Row values keyed by column name")
    errors: List[str] = Field(default_factory=list, description="Row level error messages")
    status: RowStatus = Field(RowStatus.PENDING, description="Processing state of the row")

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.status = RowStatus.FAILED

    def has_error(self) -> bool:
        return len(self.errors) > 0


class ImportData(BaseModel):
    """Summary of one import run: rows with their errors plus human readable status lines."""
    title: str
    header: List[str] = Field(default_factory=list)
    rows: List[ImportRow] = Field(default_factory=list)
    status: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    created: Dict[str, int] = Field(default_factory=dict)
    updated: Dict[str, int] = Field(default_factory=dict)
    processed: int = 0
    failed: int = 0
    dry_run: bool = False

    def add_row(self, row: ImportRow, keep: bool = True) -> None:
        self.processed += 1
        if row.has_error():
            self.failed += 1
        if keep:
            self.rows.append(row)

    def add_status(self, message: str) -> None:
        self.status.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def count_rows(self) -> int:
        return self.processed

    def count_errors(self) -> int:
        return sum(len(row.errors) for row in self.rows)

    def count_failed_rows(self) -> int:
        return self.failed
