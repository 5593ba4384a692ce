"""Batch loop for timesheet formats."""

import logging
from typing import Optional

from kimai_import.adapters.base import FormatAdapter, TimesheetRecord
from kimai_import.config import Settings, settings as default_settings
from kimai_import.schemas.import_data import ImportData, ImportRow
from kimai_import.services.mapper import TimesheetMapper
from kimai_import.services.outcome import Ok, apply_outcome, persist
from kimai_import.services.reader import ParsedFile
from kimai_import.services.resolver import EntityResolver
from kimai_import.services.store import KimaiStore

log = logging.getLogger(__name__)

# Kinds reported even when nothing was created.
ALWAYS_REPORTED = ("customers", "projects", "activities")
REPORT_ORDER = ("customers", "projects", "activities", "tags", "users")


def add_created_status(data: ImportData, created: dict, dry_run: bool, always=()) -> None:
    verb = "create" if dry_run else "created"
    for kind in REPORT_ORDER:
        count = created.get(kind, 0)
        if count > 0 or kind in always:
            data.add_status(f"{verb} {count} {kind}")


class TimesheetImporter:
    """Runs every row of a timesheet file through adapter, mapper and store."""

    def __init__(
        self,
        store: KimaiStore,
        adapter: FormatAdapter,
        dry_run: bool = True,
        global_activities: bool = True,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.adapter = adapter
        self.dry_run = dry_run
        self.settings = settings or default_settings
        self.resolver = EntityResolver(
            store,
            dry_run=dry_run,
            global_activities=global_activities,
            match_user_alias=adapter.match_user_alias,
            settings=self.settings,
        )
        self.mapper = TimesheetMapper(self.resolver, settings=self.settings, global_activities=global_activities)

    def run(self, parsed: ParsedFile) -> ImportData:
        data = ImportData(
            title=self.adapter.title,
            header=self.adapter.display_header(parsed.header),
            dry_run=self.dry_run,
        )

        for raw in parsed.rows:
            canonical = self.adapter.transform(raw, parsed.header, self.settings)
            row = ImportRow(data=canonical)

            outcome = self.mapper.map_row(TimesheetRecord.from_row(canonical), row)
            if isinstance(outcome, Ok) and not self.dry_run:
                outcome = persist(self.store, outcome.entity)
            apply_outcome(row, outcome, self.dry_run)

            data.add_row(row)

        data.created = dict(self.resolver.created)
        data.add_status(f"processed {data.count_rows()} rows")
        if data.count_failed_rows() > 0:
            data.add_status(f"failed {data.count_failed_rows()} rows")
        add_created_status(data, data.created, self.dry_run, ALWAYS_REPORTED)

        log.info(f"{self.adapter.title}: {', '.join(data.status)}")
        return data
