"""Project list imports."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from kimai_import.adapters.base import FormatAdapter
from kimai_import.config import Settings, settings as default_settings
from kimai_import.constants.row_errors import RowErrorCode, explain_error
from kimai_import.models import Project
from kimai_import.schemas.import_data import ImportData, ImportRow, RowStatus
from kimai_import.services.customer_importer import clean, map_budgets, map_meta_fields
from kimai_import.services.outcome import Err, Ok, RowError, RowOutcome, apply_outcome, persist
from kimai_import.services.reader import ParsedFile
from kimai_import.services.resolver import EntityResolver
from kimai_import.services.store import KimaiStore
from kimai_import.services.timesheet_importer import add_created_status
from kimai_import.services.validator import EntityValidator
from kimai_import.utils.dates import get_timezone

log = logging.getLogger(__name__)

MAX_CUSTOMER_NAME = 149
MAX_ORDER_NUMBER = 50

PROJECT_DATES = {
    "OrderDate": "order_date",
    "StartDate": "start",
    "EndDate": "end",
}


class ProjectImporter:
    """
    Creates projects, or updates an existing project of the same customer.

    Customers are resolved by name and created when missing.
    """

    def __init__(
        self,
        store: KimaiStore,
        adapter: FormatAdapter,
        dry_run: bool = True,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.adapter = adapter
        self.dry_run = dry_run
        self.settings = settings or default_settings
        self.resolver = EntityResolver(store, dry_run=dry_run, settings=self.settings)
        self.validator = EntityValidator()
        self.seen = set()
        self.created = 0
        self.updated = 0

    def map_row(self, row: Dict[str, Any], import_row: Optional[ImportRow] = None) -> RowOutcome:
        try:
            customer_name = clean(row.get("Customer"))
            if customer_name is None:
                raise RowError(explain_error(RowErrorCode.EMPTY_CUSTOMER_NAME, {}))
            name = clean(row.get("Name"))
            if name is None:
                raise RowError(explain_error(RowErrorCode.EMPTY_PROJECT_NAME, {}))
            if (name, customer_name) in self.seen:
                raise RowError(explain_error(RowErrorCode.DUPLICATE_PROJECT, {"name": name, "customer": customer_name}))
            if import_row is not None:
                import_row.status = RowStatus.VALIDATED

            customer = self.resolve_customer(customer_name)
            self.seen.add((name, customer_name))

            resolved = self.resolver.lookup_project(name, customer)
            project = resolved.entity if resolved is not None else self.resolver.new_project(name, customer)
            if import_row is not None:
                import_row.status = RowStatus.RESOLVED

            self.map_project(project, row)
            violations = self.validator.validate(project)
            if violations:
                raise RowError([str(violation) for violation in violations])
            if import_row is not None:
                import_row.status = RowStatus.MAPPED
        except RowError as e:
            return Err(e.messages)
        return Ok(project)

    def resolve_customer(self, name: str):
        resolved = self.resolver.lookup_customer(name)
        if resolved is not None:
            return resolved.entity
        if len(name) > MAX_CUSTOMER_NAME:
            raise RowError(explain_error(RowErrorCode.CUSTOMER_NAME_TOO_LONG, {"max_length": MAX_CUSTOMER_NAME + 1}))
        customer = self.resolver.new_customer(name)
        violations = self.validator.validate(customer)
        if violations:
            raise RowError([str(violation) for violation in violations])
        self.resolver.register("customers", self.resolver.customer_key(name), customer)
        return customer

    def map_project(self, project: Project, row: Dict[str, Any]) -> None:
        if "Comment" in row:
            project.comment = clean(row["Comment"])
        if "OrderNumber" in row:
            order_number = clean(row["OrderNumber"])
            project.order_number = order_number[:MAX_ORDER_NUMBER] if order_number is not None else None
        if "Color" in row:
            project.color = clean(row["Color"])
        if "BudgetType" in row:
            project.budget_type = clean(row["BudgetType"])

        for column, attribute in PROJECT_DATES.items():
            if column in row:
                setattr(project, attribute, self.parse_date(project, clean(row[column])))

        map_budgets(project, row)
        map_meta_fields(project, row)

    @staticmethod
    def parse_date(project: Project, value: Optional[str]) -> Optional[datetime]:
        """Y-m-d at midnight in the customer's timezone."""
        if value is None:
            return None
        timezone = get_timezone(project.customer.timezone if project.customer is not None else None)
        try:
            day = datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            raise RowError(explain_error(RowErrorCode.INVALID_DATE, {"value": value}))
        return day.replace(tzinfo=timezone)

    def run(self, parsed: ParsedFile) -> ImportData:
        data = ImportData(
            title=self.adapter.title,
            header=self.adapter.display_header(parsed.header),
            dry_run=self.dry_run,
        )

        for raw in parsed.rows:
            canonical = self.adapter.transform(raw, parsed.header, self.settings)
            row = ImportRow(data=canonical)

            outcome = self.map_row(canonical, row)
            if isinstance(outcome, Ok):
                is_new = outcome.entity.id is None
                if not self.dry_run:
                    outcome = persist(self.store, outcome.entity)
                if isinstance(outcome, Ok):
                    if is_new:
                        self.created += 1
                    else:
                        self.updated += 1
            elif not self.dry_run:
                self.store.rollback()
            apply_outcome(row, outcome, self.dry_run)

            data.add_row(row)

        data.created = {"customers": self.resolver.created["customers"], "projects": self.created}
        data.updated = {"projects": self.updated}
        data.add_status(f"processed {data.count_rows()} rows")
        if data.count_failed_rows() > 0:
            data.add_status(f"failed {data.count_failed_rows()} rows")
        add_created_status(data, data.created, self.dry_run)
        if self.updated > 0:
            data.add_status(f"{'update' if self.dry_run else 'updated'} {self.updated} projects")

        log.info(f"{self.adapter.title}: {', '.join(data.status)}")
        return data
