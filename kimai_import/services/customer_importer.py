"""Customer list imports (generic customer CSV and Grandtotal address books)."""

import logging
from typing import Any, Dict, Optional

from kimai_import.adapters.base import FormatAdapter, is_meta_column, meta_name
from kimai_import.config import Settings, settings as default_settings
from kimai_import.constants.row_errors import RowErrorCode, explain_error
from kimai_import.models import Customer
from kimai_import.schemas.import_data import ImportData, ImportRow, RowStatus
from kimai_import.services.outcome import Err, Ok, RowError, RowOutcome, apply_outcome, persist
from kimai_import.services.reader import ParsedFile
from kimai_import.services.resolver import EntityResolver
from kimai_import.services.store import KimaiStore
from kimai_import.services.validator import EntityValidator
from kimai_import.utils.converters import convert_boolean, to_float

log = logging.getLogger(__name__)

MAX_CUSTOMER_NAME = 149

CUSTOMER_FIELDS = {
    "Company": "company",
    "Email": "email",
    "Number": "number",
    "VatId": "vat_id",
    "Comment": "comment",
    "Address": "address",
    "Contact": "contact",
    "Phone": "phone",
    "Mobile": "mobile",
    "Fax": "fax",
    "Homepage": "homepage",
    "Color": "color",
    "BudgetType": "budget_type",
}

# Only overwritten when the file has a value.
CUSTOMER_DEFAULTED_FIELDS = {
    "Country": "country",
    "Currency": "currency",
    "Timezone": "timezone",
}


def clean(value: Any) -> Optional[str]:
    """Trimmed text, None for empty values."""
    if value is None:
        return None
    value = str(value).strip()
    return value if value != "" else None


def map_budgets(entity, row: Dict[str, Any]) -> None:
    if "Visible" in row:
        entity.visible = convert_boolean(clean(row["Visible"]))
    if "Budget" in row:
        entity.budget = to_float(clean(row["Budget"])) or 0.0
    if "TimeBudget" in row:
        entity.time_budget = int(to_float(clean(row["TimeBudget"])) or 0)


def map_meta_fields(entity, row: Dict[str, Any]) -> None:
    for key, value in row.items():
        if is_meta_column(key):
            entity.set_meta_field(meta_name(key), clean(value), visible=True)


class CustomerImporter:
    """
    Creates customers or updates existing ones with the same name.

    A name may only appear once per file; the second row is rejected.
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
            name = clean(row.get("Name"))
            if name is None:
                raise RowError(explain_error(RowErrorCode.MISSING_CUSTOMER_NAME, {}))
            if len(name) > MAX_CUSTOMER_NAME:
                raise RowError(explain_error(RowErrorCode.CUSTOMER_NAME_TOO_LONG, {"max_length": MAX_CUSTOMER_NAME + 1}))
            if name in self.seen:
                raise RowError(explain_error(RowErrorCode.DUPLICATE_CUSTOMER, {"name": name}))
            self.seen.add(name)
            if import_row is not None:
                import_row.status = RowStatus.VALIDATED

            customer = self.store.find_customer_by_name(name)
            if customer is None:
                customer = self.resolver.new_customer(name)
            if import_row is not None:
                import_row.status = RowStatus.RESOLVED

            self.map_customer(customer, row)
            violations = self.validator.validate(customer)
            if violations:
                raise RowError([str(violation) for violation in violations])
            if import_row is not None:
                import_row.status = RowStatus.MAPPED
        except RowError as e:
            return Err(e.messages)
        return Ok(customer)

    def map_customer(self, customer: Customer, row: Dict[str, Any]) -> None:
        for column, attribute in CUSTOMER_FIELDS.items():
            if column in row:
                setattr(customer, attribute, clean(row[column]))
        for column, attribute in CUSTOMER_DEFAULTED_FIELDS.items():
            value = clean(row.get(column))
            if value is not None:
                setattr(customer, attribute, value)
        map_budgets(customer, row)
        map_meta_fields(customer, row)

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

        data.created = {"customers": self.created}
        data.updated = {"customers": self.updated}
        verb = "create" if self.dry_run else "created"
        data.add_status(f"processed {data.count_rows()} rows")
        if data.count_failed_rows() > 0:
            data.add_status(f"failed {data.count_failed_rows()} rows")
        if self.created > 0:
            data.add_status(f"{verb} {self.created} customers")
        if self.updated > 0:
            data.add_status(f"{'update' if self.dry_run else 'updated'} {self.updated} customers")

        log.info(f"{self.adapter.title}: {', '.join(data.status)}")
        return data
