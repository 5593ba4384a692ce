from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

META_PREFIX = "meta."

TARGET_TIMESHEET = "timesheet"
TARGET_CUSTOMER = "customer"
TARGET_PROJECT = "project"


def normalize_column(name: Any) -> str:
    return str(name).strip().lower()


def is_meta_column(name: str) -> bool:
    return normalize_column(name).startswith(META_PREFIX) and len(name.strip()) > len(META_PREFIX)


def meta_name(column: str) -> str:
    return column.strip()[len(META_PREFIX):]


def _stringify(value: Any) -> Any:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class TimesheetRecord(BaseModel):
    """Canonical timesheet row every format adapter produces."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user: Optional[str] = Field(None, alias="User", description="Username or email identifying the user")
    email: Optional[str] = Field(None, alias="Email", description="Email of the user")
    alias: Optional[str] = Field(None, alias="Alias", description="Display name of the user")
    customer: Optional[str] = Field(None, alias="Customer", description="Customer name")
    project: Optional[str] = Field(None, alias="Project", description="Project name")
    activity: Optional[str] = Field(None, alias="Activity", description="Activity name")
    activity_type: Optional[str] = Field(None, alias="ActivityType", description="'project' or 'global'")
    begin: Optional[str] = Field(None, alias="Begin", description="Begin date and time")
    end: Optional[str] = Field(None, alias="End", description="End date and time")
    date: Optional[str] = Field(None, alias="Date", description="Day of the record, used with From/To")
    from_time: Optional[str] = Field(None, alias="From", description="Begin time of day")
    to_time: Optional[str] = Field(None, alias="To", description="End time of day")
    duration: Optional[Union[int, str]] = Field(None, alias="Duration", description="Seconds (int) or duration string")
    break_time: Optional[Union[int, str]] = Field(None, alias="Break", description="Break in seconds or as duration string")
    rate: Optional[str] = Field(None, alias="Rate")
    hourly_rate: Optional[str] = Field(None, alias="HourlyRate")
    fixed_rate: Optional[str] = Field(None, alias="FixedRate")
    internal_rate: Optional[str] = Field(None, alias="InternalRate")
    tags: Optional[str] = Field(None, alias="Tags", description="Comma separated tag names")
    billable: Optional[Union[bool, int, str]] = Field(None, alias="Billable")
    exported: Optional[Union[bool, int, str]] = Field(None, alias="Exported")
    description: Optional[str] = Field(None, alias="Description")
    meta: Dict[str, str] = Field(default_factory=dict, description="Named extension fields from meta.* columns")

    @field_validator(
        "user", "email", "alias", "customer", "project", "activity", "activity_type", "begin", "end",
        "date", "from_time", "to_time", "rate", "hourly_rate", "fixed_rate", "internal_rate", "tags",
        "description", mode="before",
    )
    @classmethod
    def numbers_as_text(cls, value):
        return _stringify(value)

    @field_validator("duration", "break_time", mode="before")
    @classmethod
    def whole_numbers_as_int(cls, value):
        if isinstance(value, float):
            return int(value) if value.is_integer() else str(value)
        return value

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "TimesheetRecord":
        meta = {}
        values = {}
        for key, value in data.items():
            if is_meta_column(key):
                meta[meta_name(key)] = "" if value is None else str(_stringify(value))
            else:
                values[key] = value
        return cls.model_validate({**values, "meta": meta})


class FormatAdapter(BaseModel):
    """
    Describes one supported input format.

    ``columns`` maps canonical column names to the accepted (lower case) header
    spellings, in priority order. Each entry of ``required`` lists alternatives,
    and each alternative is a group of canonical columns that must all be present.
    A header holding all marker columns of any ``excludes`` group is never claimed.
    ``prepare`` receives the renamed row plus the raw row with lower case keys
    and returns the canonical row, for formats that derive values.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    target: str = TARGET_TIMESHEET
    columns: Dict[str, Tuple[str, ...]]
    required: Tuple[Tuple[Tuple[str, ...], ...], ...]
    excludes: Tuple[Tuple[str, ...], ...] = ()
    header: Tuple[str, ...] = ()
    prepare: Optional[Callable[..., Dict[str, Any]]] = None
    match_user_alias: bool = False

    def map_columns(self, header: Sequence[str]) -> Dict[str, str]:
        """Canonical name to actual header column, each header column used at most once."""
        available = {}
        for column in header:
            available.setdefault(normalize_column(column), column)

        mapping = {}
        used = set()
        for canonical, spellings in self.columns.items():
            for spelling in spellings:
                if spelling in available and spelling not in used:
                    mapping[canonical] = available[spelling]
                    used.add(spelling)
                    break
        return mapping

    def missing_columns(self, header: Sequence[str]) -> Set[str]:
        present = self.map_columns(header)
        missing = set()
        for alternatives in self.required:
            if any(all(column in present for column in group) for group in alternatives):
                continue
            if len(alternatives) == 1:
                missing.update(column for column in alternatives[0] if column not in present)
            else:
                missing.add(" or ".join("+".join(group) for group in alternatives))
        return missing

    def conflicting_columns(self, header: Sequence[str]) -> Set[str]:
        normalized = {normalize_column(column) for column in header}
        conflicts = set()
        for group in self.excludes:
            if all(marker in normalized for marker in group):
                conflicts.update(group)
        return conflicts

    def supports(self, header: Sequence[str]) -> bool:
        return not self.conflicting_columns(header) and not self.missing_columns(header)

    def display_header(self, header: Sequence[str]) -> List[str]:
        if self.header:
            return list(self.header)
        mapping = self.map_columns(header)
        by_column = {actual: canonical for canonical, actual in mapping.items()}
        result = []
        for column in header:
            if column in by_column:
                result.append(by_column[column])
            elif is_meta_column(column):
                result.append(column.strip())
        return result

    def transform(self, row: Dict[str, Any], header: Sequence[str], settings) -> Dict[str, Any]:
        """Canonical row for one raw input row. Never raises for bad values."""
        result = {}
        for canonical, actual in self.map_columns(header).items():
            result[canonical] = row.get(actual)

        if self.prepare is not None:
            lowered = {normalize_column(key): value for key, value in row.items()}
            result = self.prepare(result, lowered, settings)

        for key, value in row.items():
            if is_meta_column(key):
                result[key.strip()] = value
        return result
