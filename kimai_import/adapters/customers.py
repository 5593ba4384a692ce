"""Customer and project list formats, including the Grandtotal address book export."""

from typing import Any, Dict

from kimai_import.adapters.base import FormatAdapter, TARGET_CUSTOMER, TARGET_PROJECT
from kimai_import.utils.converters import strip_tags

CUSTOMER_COLUMNS = {
    "Name": ("name", "customer"),
    "Company": ("company",),
    "Email": ("email",),
    "Country": ("country",),
    "Number": ("account", "number"),
    "VatId": ("tax", "vat", "vat_id"),
    "Comment": ("description", "comment"),
    "Address": ("address",),
    "Contact": ("contact",),
    "Currency": ("currency",),
    "Timezone": ("timezone",),
    "Phone": ("phone",),
    "Mobile": ("mobile",),
    "Fax": ("fax",),
    "Homepage": ("homepage",),
    "Color": ("color",),
    "Visible": ("visible",),
    "Budget": ("budget",),
    "BudgetType": ("budgettype",),
    "TimeBudget": ("timebudget",),
}

customer_adapter = FormatAdapter(
    name="customer",
    title="customers",
    target=TARGET_CUSTOMER,
    columns=CUSTOMER_COLUMNS,
    required=((("Name",),),),
    excludes=(("project",), ("organization",), ("firma",), ("name", "customer")),
)


GRANDTOTAL_COLUMNS = {
    "Name": ("organization", "firma"),
    "Email": ("e-mail",),
    "Country": ("country", "land"),
    "Number": ("customer number", "kundennummer"),
    "VatId": ("tax-id", "umsatzsteuer"),
    "Comment": ("note", "notiz"),
    "Title": ("title", "titel"),
    "FirstName": ("first name", "vorname"),
    "MiddleName": ("middle name", "zweiter vorname"),
    "LastName": ("last name", "nachname"),
    "Street": ("street", "straße"),
    "Zip": ("zip", "plz"),
    "City": ("city", "ort"),
}


def _clean(value: Any):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def prepare_grandtotal(row: Dict[str, Any], raw: Dict[str, Any], settings) -> Dict[str, Any]:
    result = {key: row.get(key) for key in ("Name", "Email", "Country", "Number", "VatId")}

    comment = _clean(row.get("Comment"))
    result["Comment"] = strip_tags(comment) if comment is not None else None

    names = [_clean(row.get(key)) for key in ("Title", "FirstName", "MiddleName", "LastName")]
    if any(names):
        result["Contact"] = " ".join(name for name in names if name)

    street, code, city = (_clean(row.get(key)) for key in ("Street", "Zip", "City"))
    if street or code or city:
        result["Address"] = f"{street or ''}\n{code or ''} {city or ''}".strip()

    return result


grandtotal_adapter = FormatAdapter(
    name="grandtotal",
    title="importer.grandtotal",
    target=TARGET_CUSTOMER,
    columns=GRANDTOTAL_COLUMNS,
    required=((("Name",),),),
    header=("Name", "Email", "Country", "Number", "VatId", "Comment", "Contact", "Address"),
    prepare=prepare_grandtotal,
)


PROJECT_COLUMNS = {
    "Name": ("name", "project"),
    "Customer": ("customer",),
    "Comment": ("description", "comment"),
    "OrderNumber": ("ordernumber",),
    "OrderDate": ("orderdate",),
    "StartDate": ("startdate",),
    "EndDate": ("enddate",),
    "Color": ("color",),
    "Visible": ("visible",),
    "Budget": ("budget",),
    "BudgetType": ("budgettype",),
    "TimeBudget": ("timebudget",),
}

project_adapter = FormatAdapter(
    name="project",
    title="projects",
    target=TARGET_PROJECT,
    columns=PROJECT_COLUMNS,
    required=((("Customer",),), (("Name",),)),
    excludes=(("exported",), ("duration",), ("user",)),
)

