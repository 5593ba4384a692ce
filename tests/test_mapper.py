from datetime import datetime, timezone

import pytest

from kimai_import.adapters.base import TimesheetRecord
from kimai_import.schemas.import_data import ImportRow, RowStatus
from kimai_import.services.mapper import TimesheetMapper, parse_seconds
from kimai_import.services.outcome import Err, Ok
from kimai_import.services.resolver import EntityResolver


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def record(**values) -> TimesheetRecord:
    data = {
        "User": "bob",
        "Email": "bob@example.com",
        "Customer": "Acme",
        "Project": "Website",
        "Activity": "Dev",
    }
    data.update(values)
    return TimesheetRecord.from_row(data)


@pytest.fixture
def resolver(store, settings):
    return EntityResolver(store, dry_run=True, settings=settings)


@pytest.fixture
def mapper(resolver, settings):
    return TimesheetMapper(resolver, settings=settings)


def map_ok(mapper, **values):
    outcome = mapper.map_row(record(**values))
    assert isinstance(outcome, Ok), outcome
    return outcome.entity


def map_err(mapper, **values):
    outcome = mapper.map_row(record(**values))
    assert isinstance(outcome, Err), outcome
    return outcome.errors


class TestValidation:
    def test_all_missing_fields_are_reported(self, mapper):
        errors = mapper.validate(TimesheetRecord.from_row({}))

        assert errors == [
            "Empty or missing field: User",
            "Empty or missing field: Customer",
            "Empty or missing field: Project",
            "Empty or missing field: Activity",
            "Empty or missing field: Begin",
            "Empty or missing field: End",
        ]

    def test_date_form_needs_duration_without_from_and_to(self, mapper):
        errors = map_err(mapper, Date="2024-01-15", From="09:00")
        assert errors == ["Empty or missing field: Duration"]

    def test_negative_duration(self, mapper):
        errors = map_err(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", Duration="-3600")
        assert errors == ["Negative values not supported: Duration"]

    def test_invalid_encoding(self, mapper):
        errors = map_err(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", Description="Caf\udce9")
        assert errors == ["Invalid encoding, requires UTF-8: Description"]

    def test_non_numeric_rates(self, mapper):
        errors = map_err(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", HourlyRate="ten", Rate="1,5")
        assert errors == ["Invalid numeric value: HourlyRate", "Invalid numeric value: Rate"]

    def test_invalid_activity_type(self, mapper):
        errors = map_err(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", ActivityType="team")
        assert errors == ['Invalid activity type "team" given, allowed values are: project, global']

    def test_validation_failure_resolves_nothing(self, mapper, resolver):
        map_err(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", Duration="-1")
        assert sum(resolver.created.values()) == 0

    @pytest.mark.parametrize("values, message", [
        ({"Begin": "yesterday", "End": "2024-01-15 10:00"}, "Invalid date: yesterday"),
        ({"Begin": "2024-01-15 09:00", "End": "2024-01-15 10:00", "Duration": "soon"}, "Invalid duration: soon"),
        ({"Begin": "2024-01-15 09:00", "End": "2024-01-15 10:00", "Break": "later"}, "Invalid duration: later"),
    ])
    def test_unparseable_values(self, mapper, values, message):
        assert map_err(mapper, **values) == [message]


class TestTimes:
    def test_begin_and_end(self, mapper):
        timesheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 17:00")

        assert timesheet.begin == utc(2024, 1, 15, 9)
        assert timesheet.end == utc(2024, 1, 15, 17)
        assert timesheet.duration == 28800
        assert timesheet.timezone == "UTC"

    def test_user_timezone_is_applied(self, mapper, existing_user):
        timesheet = map_ok(mapper, User="alice", Email="", Begin="2024-01-15 09:00", End="2024-01-15 10:00")

        assert timesheet.user.id == existing_user.id
        assert timesheet.begin == utc(2024, 1, 15, 8)
        assert timesheet.timezone == "Europe/Berlin"

    def test_explicit_duration_wins(self, mapper):
        timesheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 17:00", Duration="7:30")
        assert timesheet.duration == 27000

    def test_end_before_begin_rolls_over_midnight(self, mapper):
        timesheet = map_ok(mapper, Begin="2024-01-15 22:00", End="2024-01-15 02:00")

        assert timesheet.end == utc(2024, 1, 16, 2)
        assert timesheet.duration == 14400

    def test_end_before_begin_uses_duration(self, mapper):
        timesheet = map_ok(mapper, Date="2024-01-15", From="22:00", To="02:00", Duration="3600")

        assert timesheet.begin == utc(2024, 1, 15, 22)
        assert timesheet.end == utc(2024, 1, 15, 23)
        assert timesheet.duration == 3600

    def test_date_only_starts_at_noon(self, mapper):
        timesheet = map_ok(mapper, Date="2024-01-15", Duration="1:30")

        assert timesheet.begin == utc(2024, 1, 15, 12)
        assert timesheet.end == utc(2024, 1, 15, 13, 30)

    def test_date_with_to_counts_backwards(self, mapper):
        timesheet = map_ok(mapper, Date="2024-01-15", To="18:00", Duration="2h")

        assert timesheet.begin == utc(2024, 1, 15, 16)
        assert timesheet.end == utc(2024, 1, 15, 18)

    def test_date_with_from_and_to(self, mapper):
        timesheet = map_ok(mapper, Date="15.01.2024", From="08:15", To="12:45")

        assert timesheet.begin == utc(2024, 1, 15, 8, 15)
        assert timesheet.duration == 16200

    def test_break_in_seconds(self, mapper):
        timesheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 17:00", Break="30m")
        assert timesheet.break_duration == 1800

    @pytest.mark.parametrize("value, seconds", [(None, None), ("", None), (90, 90), ("90", 90), ("0:02", 120)])
    def test_parse_seconds(self, value, seconds):
        assert parse_seconds(value) == seconds


class TestMapping:
    def test_unknown_user(self, mapper):
        errors = map_err(mapper, Email="", Begin="2024-01-15 09:00", End="2024-01-15 10:00")
        assert errors == ["Unknown user bob"]

    def test_rates(self, mapper):
        hourly = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:30", HourlyRate="60")
        fixed = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:30", HourlyRate="60", FixedRate="100")
        explicit = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:30", HourlyRate="60", Rate="75")
        nothing = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:30")

        assert hourly.rate == 90.0
        assert hourly.hourly_rate == 60.0
        assert fixed.rate == 100.0
        assert explicit.rate == 75.0
        assert nothing.rate == 0.0

    def test_flags_description_tags_and_meta(self, mapper):
        timesheet = map_ok(
            mapper,
            Begin="2024-01-15 09:00",
            End="2024-01-15 10:00",
            Billable="0",
            Exported="yes",
            Description="Landing page",
            Tags="ui, web,, ui",
            **{"meta.ticket": "T-42"},
        )

        assert timesheet.billable is False
        assert timesheet.exported is True
        assert timesheet.description == "Landing page"
        assert [tag.name for tag in timesheet.tags] == ["ui", "web"]
        assert timesheet.get_meta_value("ticket") == "T-42"
        assert timesheet.get_meta_field("ticket").visible

    def test_billable_defaults_to_true(self, mapper):
        assert map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00").billable is True

    def test_activity_type_overrides_run_default(self, resolver, settings):
        mapper = TimesheetMapper(resolver, settings=settings, global_activities=True)

        global_sheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00")
        project_sheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00", ActivityType="Project")

        assert global_sheet.activity.project is None
        assert project_sheet.activity.project is project_sheet.project
        assert resolver.created["activities"] == 2

    def test_project_activities_by_default(self, resolver, settings):
        mapper = TimesheetMapper(resolver, settings=settings, global_activities=False)

        timesheet = map_ok(mapper, Begin="2024-01-15 09:00", End="2024-01-15 10:00")
        assert timesheet.activity.project is timesheet.project

    def test_row_status_follows_progress(self, mapper):
        row = ImportRow()
        mapper.map_row(record(Begin="2024-01-15 09:00", End="2024-01-15 10:00"), row)
        assert row.status == RowStatus.MAPPED

        row = ImportRow()
        mapper.map_row(record(User="carol", Email="", Begin="2024-01-15 09:00", End="2024-01-15 10:00"), row)
        assert row.status == RowStatus.VALIDATED
