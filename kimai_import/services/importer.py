"""Entry point for file imports: reads the payload, picks a format and runs the matching importer."""

import logging
import mimetypes
from typing import Optional

from sqlalchemy.orm import Session

from kimai_import.adapters.base import TARGET_CUSTOMER, TARGET_PROJECT, TARGET_TIMESHEET
from kimai_import.adapters.registry import select_adapter
from kimai_import.config import Settings, settings as default_settings
from kimai_import.exceptions import EmptyInputError, RowLimitExceededError, UnsupportedFormatError
from kimai_import.schemas.import_data import ImportData
from kimai_import.schemas.options import ImportOptions
from kimai_import.services.customer_importer import CustomerImporter
from kimai_import.services.project_importer import ProjectImporter
from kimai_import.services.reader import ParsedFile, read_csv, read_json
from kimai_import.services.store import KimaiStore
from kimai_import.services.timesheet_importer import TimesheetImporter

log = logging.getLogger(__name__)

CSV_MIME_TYPES = ("text/csv", "text/plain", "application/csv", "application/vnd.ms-excel", "text/tab-separated-values")
JSON_MIME_TYPES = ("application/json", "text/json")


class ImporterService:
    """
    Imports one uploaded file into the destination store.

    Every batch-fatal problem (unreadable payload, unknown format, too many
    rows) raises an ``ImportException`` before the first row is touched.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.store = KimaiStore(db)
        self.settings = settings or default_settings

    def detect_mime_type(self, mime_type: Optional[str], filename: Optional[str]) -> str:
        if mime_type:
            return mime_type.split(";")[0].strip().lower()
        if filename:
            guessed, _ = mimetypes.guess_type(filename)
            if guessed:
                return guessed
        return "text/csv"

    def read(self, content: bytes, mime_type: str, options: ImportOptions) -> ParsedFile:
        if mime_type in JSON_MIME_TYPES:
            return read_json(content)
        if mime_type in CSV_MIME_TYPES:
            return read_csv(content, options.delimiter)
        log.warning(f"Rejected upload with MIME type {mime_type}")
        raise UnsupportedFormatError()

    def import_file(
        self,
        content: bytes,
        *,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
        options: Optional[ImportOptions] = None,
    ) -> ImportData:
        options = options or ImportOptions()
        mime_type = self.detect_mime_type(mime_type, filename)

        parsed = self.read(content, mime_type, options)
        if not parsed.rows:
            raise EmptyInputError()
        if len(parsed.rows) > self.settings.max_rows:
            raise RowLimitExceededError(self.settings.max_rows)

        adapter = select_adapter(parsed.header, options.importer)
        log.info(
            f"Importing {len(parsed.rows)} rows as '{adapter.name}'"
            f"{' (dry run)' if options.dry_run else ''}"
        )

        if adapter.target == TARGET_TIMESHEET:
            importer = TimesheetImporter(
                self.store,
                adapter,
                dry_run=options.dry_run,
                global_activities=options.global_activities,
                settings=self.settings,
            )
        elif adapter.target == TARGET_CUSTOMER:
            importer = CustomerImporter(self.store, adapter, dry_run=options.dry_run, settings=self.settings)
        elif adapter.target == TARGET_PROJECT:
            importer = ProjectImporter(self.store, adapter, dry_run=options.dry_run, settings=self.settings)
        else:
            raise UnsupportedFormatError()

        try:
            return importer.run(parsed)
        finally:
            if options.dry_run:
                self.db.rollback()
