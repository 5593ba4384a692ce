"""Export formats of third party time trackers, mapped onto the canonical timesheet row."""

import logging
from typing import Any, Dict, Sequence

from kimai_import.adapters.base import FormatAdapter, TARGET_TIMESHEET
from kimai_import.utils.converters import convert_boolean, is_empty
from kimai_import.utils.duration import parse_duration

log = logging.getLogger(__name__)

TIMESHEET_HEADER = (
    "Begin", "End", "Customer", "Project", "Description", "Activity", "User", "Email",
    "Tags", "Billable", "Duration", "HourlyRate", "Rate",
)


def _exact_columns(names: Sequence[str]) -> Dict[str, tuple]:
    return {name: (name.lower(),) for name in names}


def _required(names: Sequence[str]) -> tuple:
    return tuple(((name,),) for name in names)


def _join(*parts: Any) -> str:
    return " ".join(str(part).strip() for part in parts if not is_empty(part))


def _seconds(value: Any) -> Any:
    """Vendor durations like ``01:30:00`` as seconds; unparseable values stay for row validation."""
    if isinstance(value, int) or is_empty(value):
        return value
    try:
        return parse_duration(value)
    except ValueError:
        log.trace(f"Keeping unparseable vendor duration {value!r}")
        return value


def _value_with_prefix(raw: Dict[str, Any], prefix: str):
    for key, value in raw.items():
        if key.startswith(prefix):
            return value
    return None


CLOCKIFY_COLUMNS = (
    "Project", "Client", "Description", "Task", "User", "Group", "Email", "Tags", "Billable",
    "Start Date", "Start Time", "End Date", "End Time", "Duration (h)", "Duration (decimal)",
)


def prepare_clockify(row: Dict[str, Any], raw: Dict[str, Any], settings) -> Dict[str, Any]:
    customer = settings.placeholder_customer
    if not is_empty(row.get("Client")):
        customer = row["Client"]

    result = {
        "Begin": _join(row.get("Start Date"), row.get("Start Time")),
        "End": _join(row.get("End Date"), row.get("End Time")),
        "Customer": customer,
        "Project": row.get("Project"),
        "Description": row.get("Description"),
        "Activity": row.get("Task"),
        "User": row.get("User"),
        "Email": row.get("Email"),
        "Tags": row.get("Tags"),
        "Billable": convert_boolean(row.get("Billable")),
        "Duration": _seconds(row.get("Duration (h)")),
    }

    hourly_rate = _value_with_prefix(raw, "billable rate")
    if hourly_rate is not None:
        result["HourlyRate"] = hourly_rate
    rate = _value_with_prefix(raw, "billable amount")
    if rate is not None:
        result["Rate"] = rate
    return result


clockify_adapter = FormatAdapter(
    name="clockify",
    title="Clockify",
    target=TARGET_TIMESHEET,
    columns=_exact_columns(CLOCKIFY_COLUMNS),
    required=_required(CLOCKIFY_COLUMNS),
    header=TIMESHEET_HEADER,
    prepare=prepare_clockify,
)


TOGGL_COLUMNS = (
    "User", "Email", "Client", "Project", "Task", "Description", "Billable",
    "Start date", "Start time", "End date", "End time", "Duration", "Tags",
)


def prepare_toggl(row: Dict[str, Any], raw: Dict[str, Any], settings) -> Dict[str, Any]:
    placeholder = settings.placeholder_customer
    result = {
        "Customer": placeholder,
        "Project": placeholder,
        "Activity": placeholder,
        "Begin": _join(row.get("Start date"), row.get("Start time")),
        "End": _join(row.get("End date"), row.get("End time")),
        "Description": row.get("Description"),
        "User": row.get("User"),
        "Email": row.get("Email"),
        "Tags": row.get("Tags"),
        "Billable": convert_boolean(row.get("Billable")),
        "Rate": "0.0",
        "Duration": _seconds(row.get("Duration")),
    }

    if not is_empty(row.get("Client")):
        result["Customer"] = row["Client"]
    if not is_empty(row.get("Project")):
        result["Project"] = row["Project"]
    if not is_empty(row.get("Task")):
        result["Activity"] = row["Task"]

    rate = _value_with_prefix(raw, "amount")
    if not is_empty(rate):
        result["Rate"] = rate
    return result


toggl_adapter = FormatAdapter(
    name="toggl",
    title="Toggl",
    target=TARGET_TIMESHEET,
    columns=_exact_columns(TOGGL_COLUMNS),
    required=_required(TOGGL_COLUMNS),
    header=(
        "Customer", "Project", "Activity", "Begin", "End", "Description", "User", "Email",
        "Tags", "Billable", "Rate", "Duration",
    ),
    prepare=prepare_toggl,
    match_user_alias=True,
)
