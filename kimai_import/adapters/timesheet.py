"""Generic Kimai timesheet format (Begin/End or Date/From/To columns)."""

import re
from typing import Any, Dict

from kimai_import.adapters.base import FormatAdapter, TARGET_TIMESHEET

_HOUR_ONLY = re.compile(r"^\d{1,2}$")

TIMESHEET_COLUMNS = {
    "User": ("user", "username", "name", "benutzer", "benutzername"),
    "Alias": ("alias", "name", "display name", "anzeigename"),
    "Email": ("email", "e-mail", "mail"),
    "Customer": ("customer", "client", "kunde"),
    "Project": ("project", "projekt"),
    "Activity": ("activity", "task", "tätigkeit", "taetigkeit", "aktivität"),
    "ActivityType": ("activitytype", "activity type"),
    "Begin": ("begin", "start", "beginn"),
    "End": ("end", "ende"),
    "Date": ("date", "datum"),
    "From": ("from", "von"),
    "To": ("to", "bis"),
    "Duration": ("duration", "dauer"),
    "Break": ("break", "pause"),
    "Rate": ("rate", "preis"),
    "HourlyRate": ("hourlyrate", "hourly rate", "stundenpreis"),
    "FixedRate": ("fixedrate", "fixed rate", "festpreis"),
    "InternalRate": ("internalrate", "internal rate", "interner preis"),
    "Tags": ("tags", "schlagworte"),
    "Billable": ("billable", "abrechenbar"),
    "Exported": ("exported", "exportiert"),
    "Description": ("description", "beschreibung"),
}


def _pad_time(value: Any) -> Any:
    if isinstance(value, int):
        value = str(value)
    if isinstance(value, str) and _HOUR_ONLY.match(value.strip()):
        return value.strip().zfill(2) + ":00"
    return value


def prepare_timesheet(row: Dict[str, Any], raw: Dict[str, Any], settings) -> Dict[str, Any]:
    for key in ("From", "To"):
        if key in row:
            row[key] = _pad_time(row[key])
    return row


timesheet_adapter = FormatAdapter(
    name="timesheet",
    title="time_tracking",
    target=TARGET_TIMESHEET,
    columns=TIMESHEET_COLUMNS,
    required=(
        (("User",),),
        (("Customer",),),
        (("Project",),),
        (("Activity",),),
        (("Begin", "End"), ("Date",)),
    ),
    excludes=(("start date",), ("start time",)),
    prepare=prepare_timesheet,
)
