"""Maps canonical timesheet records onto Timesheet entities."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from kimai_import.adapters.base import TimesheetRecord
from kimai_import.config import Settings, settings as default_settings
from kimai_import.constants.row_errors import RowErrorCode, explain_error
from kimai_import.constants.validation_codes import IMPORT_IGNORED_CODES
from kimai_import.models import Timesheet, User
from kimai_import.models.tag import MAX_TAG_LENGTH
from kimai_import.schemas.import_data import ImportRow, RowStatus
from kimai_import.services.outcome import Err, Ok, RowError, RowOutcome
from kimai_import.services.resolver import EntityResolver
from kimai_import.services.validator import EntityValidator
from kimai_import.utils.converters import calculate_rate, convert_boolean, is_empty, is_numeric, is_utf8, to_float
from kimai_import.utils.dates import get_timezone, parse_datetime, to_utc
from kimai_import.utils.duration import parse_duration

log = logging.getLogger(__name__)

ACTIVITY_TYPE_PROJECT = "project"
ACTIVITY_TYPE_GLOBAL = "global"

NOON = "12:00"

RATE_FIELDS = (
    ("HourlyRate", "hourly_rate"),
    ("InternalRate", "internal_rate"),
    ("FixedRate", "fixed_rate"),
    ("Rate", "rate"),
)


def _error(code: RowErrorCode, **context) -> str:
    return explain_error(code, context)


def parse_seconds(value) -> Optional[int]:
    """
    Seconds for a Duration or Break value, None when empty.

    Integers and digit-only strings are seconds, everything else is handed to
    the duration parser. Raises ValueError for unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    value = str(value).strip()
    if value == "":
        return None
    if value.isdigit():
        return int(value)
    return parse_duration(value)


def is_negative(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value < 0
    return isinstance(value, str) and value.strip().startswith("-")


class TimesheetMapper:
    """
    Turns one ``TimesheetRecord`` into an unsaved Timesheet.

    The record is validated field by field first, then user, project and
    activity are resolved through the run's ``EntityResolver``, and finally the
    timesheet is built and checked by the ``EntityValidator``. Nothing in here
    raises to the caller: every problem ends up in an ``Err`` outcome.
    """

    def __init__(
        self,
        resolver: EntityResolver,
        validator: Optional[EntityValidator] = None,
        settings: Optional[Settings] = None,
        global_activities: bool = True,
    ):
        self.resolver = resolver
        self.validator = validator or EntityValidator()
        self.settings = settings or default_settings
        self.global_activities = global_activities

    def map_row(self, record: TimesheetRecord, row: Optional[ImportRow] = None) -> RowOutcome:
        try:
            errors = self.validate(record)
            if errors:
                raise RowError(errors)
            self._advance(row, RowStatus.VALIDATED)

            user, project, activity = self.resolve(record)
            self._advance(row, RowStatus.RESOLVED)

            timesheet = self.build(record, user, project, activity)
            violations = self.validator.validate(timesheet, ignore=IMPORT_IGNORED_CODES)
            if violations:
                raise RowError([str(violation) for violation in violations])
            self._advance(row, RowStatus.MAPPED)
        except RowError as e:
            log.trace(f"Row rejected: {e.messages}")
            return Err(e.messages)

        return Ok(timesheet)

    @staticmethod
    def _advance(row: Optional[ImportRow], status: RowStatus) -> None:
        if row is not None:
            row.status = status

    # Validation

    @staticmethod
    def uses_date_form(record: TimesheetRecord) -> bool:
        return is_empty(record.begin) and is_empty(record.end) and not is_empty(record.date)

    def validate(self, record: TimesheetRecord) -> List[str]:
        """One message per failing field, identity fields first."""
        errors = []

        for field, value in (
            ("User", record.user),
            ("Customer", record.customer),
            ("Project", record.project),
            ("Activity", record.activity),
        ):
            if is_empty(value):
                errors.append(_error(RowErrorCode.EMPTY_FIELD, field=field))

        if self.uses_date_form(record):
            if is_empty(record.from_time) or is_empty(record.to_time):
                if is_empty(record.duration):
                    errors.append(_error(RowErrorCode.EMPTY_FIELD, field="Duration"))
        else:
            if is_empty(record.begin):
                errors.append(_error(RowErrorCode.EMPTY_FIELD, field="Begin"))
            if is_empty(record.end):
                errors.append(_error(RowErrorCode.EMPTY_FIELD, field="End"))

        for field, value in (
            ("Project", record.project),
            ("Activity", record.activity),
            ("Description", record.description),
        ):
            if not is_empty(value) and not is_utf8(value):
                errors.append(_error(RowErrorCode.INVALID_ENCODING, field=field))

        if is_negative(record.duration):
            errors.append(_error(RowErrorCode.NEGATIVE_DURATION, field="Duration"))

        for field, attribute in RATE_FIELDS:
            value = getattr(record, attribute)
            if not is_empty(value) and not is_numeric(value):
                errors.append(_error(RowErrorCode.INVALID_NUMBER, field=field))

        activity_type = self.activity_type(record)
        if activity_type not in (None, ACTIVITY_TYPE_PROJECT, ACTIVITY_TYPE_GLOBAL):
            errors.append(_error(RowErrorCode.INVALID_ACTIVITY_TYPE, value=record.activity_type))

        return errors

    @staticmethod
    def activity_type(record: TimesheetRecord) -> Optional[str]:
        if is_empty(record.activity_type):
            return None
        return record.activity_type.strip().lower()

    # Resolution

    def resolve(self, record: TimesheetRecord):
        user = self.resolver.user(record.user, record.email, record.alias)
        if user is None:
            raise RowError(_error(RowErrorCode.UNKNOWN_USER, user=record.user))

        project = self.resolver.project(record.project, record.customer)

        activity_type = self.activity_type(record)
        if activity_type is None:
            is_global = self.global_activities
        else:
            is_global = activity_type == ACTIVITY_TYPE_GLOBAL
        activity = self.resolver.activity(record.activity, None if is_global else project)

        return user, project, activity

    # Mapping

    def user_timezone(self, user: User) -> str:
        return user.timezone or self.settings.default_timezone

    def _seconds(self, value) -> Optional[int]:
        try:
            return parse_seconds(value)
        except ValueError:
            raise RowError(_error(RowErrorCode.INVALID_DURATION, value=value))

    def _datetime(self, value: str, timezone) -> datetime:
        try:
            return parse_datetime(value, timezone)
        except ValueError:
            raise RowError(_error(RowErrorCode.INVALID_DATE, value=value))

    def _day(self, value: str, timezone) -> str:
        return self._datetime(value, timezone).strftime("%Y-%m-%d")

    def derive_times(self, record: TimesheetRecord, timezone) -> Tuple[datetime, datetime, Optional[int]]:
        """
        Begin, end and the explicit duration (if any) of a record.

        Begin/End records are parsed directly. Date records are placed at noon
        or anchored at From and/or To, using Duration for the missing side.
        End before begin is fixed by Begin + Duration, or by adding one day.
        """
        duration = self._seconds(record.duration)

        if not self.uses_date_form(record):
            begin = self._datetime(record.begin, timezone)
            end = self._datetime(record.end, timezone)
        else:
            day = self._day(record.date, timezone)
            has_from = not is_empty(record.from_time)
            has_to = not is_empty(record.to_time)

            if has_from and has_to:
                begin = self._datetime(f"{day} {record.from_time.strip()}", timezone)
                end = self._datetime(f"{day} {record.to_time.strip()}", timezone)
            elif has_to:
                end = self._datetime(f"{day} {record.to_time.strip()}", timezone)
                begin = end - timedelta(seconds=duration or 0)
            elif has_from:
                begin = self._datetime(f"{day} {record.from_time.strip()}", timezone)
                end = begin + timedelta(seconds=duration or 0)
            else:
                begin = self._datetime(f"{day} {NOON}", timezone)
                end = begin + timedelta(seconds=duration or 0)

        if end < begin:
            if duration:
                end = begin + timedelta(seconds=duration)
            else:
                end = end + timedelta(days=1)

        return begin, end, duration

    def build(self, record: TimesheetRecord, user: User, project, activity) -> Timesheet:
        timezone_name = self.user_timezone(user)
        begin, end, duration = self.derive_times(record, get_timezone(timezone_name))

        if duration is None:
            duration = int((end - begin).total_seconds())

        timesheet = Timesheet(
            user=user,
            project=project,
            activity=activity,
            begin=to_utc(begin),
            end=to_utc(end),
            duration=duration,
            break_duration=self._seconds(record.break_time) or 0,
            timezone=timezone_name,
            description=record.description if not is_empty(record.description) else None,
            billable=True if record.billable is None else convert_boolean(record.billable),
            exported=convert_boolean(record.exported),
        )

        self.map_rates(timesheet, record)

        for name in self.tag_names(record.tags):
            timesheet.tags.append(self.resolver.tag(name))

        for name, value in record.meta.items():
            timesheet.set_meta_field(name, value, visible=True)

        return timesheet

    @staticmethod
    def map_rates(timesheet: Timesheet, record: TimesheetRecord) -> None:
        timesheet.hourly_rate = to_float(record.hourly_rate)
        timesheet.fixed_rate = to_float(record.fixed_rate)
        timesheet.internal_rate = to_float(record.internal_rate)

        rate = to_float(record.rate)
        if rate is None:
            if timesheet.fixed_rate is not None:
                rate = timesheet.fixed_rate
            elif timesheet.hourly_rate is not None:
                rate = calculate_rate(timesheet.hourly_rate, timesheet.duration)
            else:
                rate = 0.0
        timesheet.rate = rate

    @staticmethod
    def tag_names(value: Optional[str]) -> List[str]:
        if is_empty(value):
            return []
        names = []
        for name in value.split(","):
            name = name.strip()[:MAX_TAG_LENGTH]
            if name and name not in names:
                names.append(name)
        return names
