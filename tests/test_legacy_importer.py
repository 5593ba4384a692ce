from unittest.mock import patch

import pytest
from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from kimai_import.config import Settings
from kimai_import.exceptions import LegacySourceError
from kimai_import.models import Activity, Customer, Project, ProjectRate, Team, Timesheet, User
from kimai_import.models.user import PREFERENCE_HOURLY_RATE, PREFERENCE_LANGUAGE, ROLE_SUPER_ADMIN
from kimai_import.schemas.options import LegacyImportOptions
from kimai_import.services.legacy_importer import (
    IMPORTED_ID,
    LegacyImporter,
    fix_encoding_row,
    validate_legacy_data,
)
from kimai_import.services.legacy_source import LegacySource, compare_versions
from kimai_import.services.store import KimaiStore
from kimai_import.utils.passwords import verify_password

PASSWORD = "secret123"

JAN_15 = 1705305600  # 2024-01-15 08:00:00 UTC


def create_schema(engine, prefix, tables=None):
    metadata = MetaData()
    definitions = {
        "configuration": [Column("option", String(255)), Column("value", String(255))],
        "preferences": [Column("userID", Integer), Column("option", String(255)), Column("value", String(255))],
        "users": [
            Column("userID", Integer, primary_key=True),
            Column("name", String(160)),
            Column("mail", String(160)),
            Column("alias", String(160)),
            Column("active", Integer, default=1),
            Column("trash", Integer, default=0),
            Column("ban", Integer, default=0),
            Column("globalRoleID", Integer, default=2),
        ],
        "customers": [
            Column("customerID", Integer, primary_key=True),
            Column("name", String(255)),
            Column("comment", Text),
            Column("company", String(255)),
            Column("mail", String(255)),
            Column("phone", String(255)),
            Column("fax", String(255)),
            Column("mobile", String(255)),
            Column("homepage", String(255)),
            Column("contact", String(255)),
            Column("street", String(255)),
            Column("zipcode", String(255)),
            Column("city", String(255)),
            Column("timezone", String(255)),
            Column("visible", Integer, default=1),
            Column("trash", Integer, default=0),
        ],
        "projects": [
            Column("projectID", Integer, primary_key=True),
            Column("customerID", Integer),
            Column("name", String(255)),
            Column("comment", Text),
            Column("budget", Float, default=0),
            Column("visible", Integer, default=1),
            Column("trash", Integer, default=0),
        ],
        "activities": [
            Column("activityID", Integer, primary_key=True),
            Column("name", String(255)),
            Column("comment", Text),
            Column("visible", Integer, default=1),
            Column("trash", Integer, default=0),
        ],
        "projects_activities": [Column("projectID", Integer), Column("activityID", Integer)],
        "timeSheet": [
            Column("timeEntryID", Integer, primary_key=True),
            Column("start", Integer),
            Column("end", Integer),
            Column("duration", Integer),
            Column("userID", Integer),
            Column("projectID", Integer),
            Column("activityID", Integer),
            Column("description", Text),
            Column("comment", Text),
            Column("location", String(50)),
            Column("trackingNumber", String(30)),
            Column("rate", Float, default=0),
            Column("fixedRate", Float, default=0),
            Column("cleared", Integer, default=0),
        ],
        "fixedRates": [Column("userID", Integer), Column("projectID", Integer), Column("activityID", Integer), Column("rate", Float)],
        "rates": [Column("userID", Integer), Column("projectID", Integer), Column("activityID", Integer), Column("rate", Float)],
        "groups": [Column("groupID", Integer, primary_key=True), Column("name", String(160)), Column("trash", Integer, default=0)],
        "groups_customers": [Column("groupID", Integer), Column("customerID", Integer)],
        "groups_projects": [Column("groupID", Integer), Column("projectID", Integer)],
        "groups_users": [Column("groupID", Integer), Column("userID", Integer), Column("membershipRoleID", Integer)],
        "groups_activities": [Column("groupID", Integer), Column("activityID", Integer)],
    }

    result = {}
    for name, columns in definitions.items():
        if tables is None or name in tables:
            result[name] = Table(prefix + name, metadata, *columns)
    metadata.create_all(engine)
    return result


def fill(engine, tables, **rows):
    with engine.begin() as connection:
        for name, values in rows.items():
            for value in values:
                connection.execute(insert(tables[name]), value)


def configuration(version="1.0.1", revision="1388"):
    return [{"option": "version", "value": version}, {"option": "revision", "value": revision}]


def instance_data():
    return {
        "configuration": configuration(),
        "users": [
            {"userID": 1, "name": "alice", "mail": "alice@example.com", "alias": "Alice", "globalRoleID": 1},
            {"userID": 2, "name": "bob", "mail": "bob@example.com", "active": 0},
        ],
        "preferences": [
            {"userID": 1, "option": "ui.lang", "value": "de"},
            {"userID": 1, "option": "timezone", "value": "Europe/Berlin"},
            {"userID": 1, "option": "ui.skin", "value": "dark"},
        ],
        "customers": [
            {"customerID": 1, "name": "Acme", "street": "Main St 1", "zipcode": "12345", "city": "Berlin", "mail": "info@acme.test"},
        ],
        "projects": [
            {"projectID": 1, "customerID": 1, "name": "Website", "budget": 1000},
            {"projectID": 2, "customerID": 1, "name": "Shop"},
        ],
        "activities": [
            {"activityID": 1, "name": "Dev"},
            {"activityID": 2, "name": "Support"},
        ],
        "projects_activities": [{"projectID": 2, "activityID": 2}],
        "fixedRates": [{"userID": None, "projectID": 1, "activityID": None, "rate": 500}],
        "rates": [
            {"userID": 1, "projectID": None, "activityID": None, "rate": 50},
            {"userID": 2, "projectID": 1, "activityID": None, "rate": 70},
        ],
        "groups": [
            {"groupID": 1, "name": "Developers"},
            {"groupID": 2, "name": "Old", "trash": 1},
            {"groupID": 3, "name": "Empty"},
        ],
        "groups_users": [
            {"groupID": 1, "userID": 1, "membershipRoleID": 1},
            {"groupID": 1, "userID": 2, "membershipRoleID": 2},
            {"groupID": 2, "userID": 2, "membershipRoleID": 1},
        ],
        "groups_customers": [{"groupID": 1, "customerID": 1}],
        "groups_projects": [{"groupID": 1, "projectID": 1}],
        "groups_activities": [{"groupID": 1, "activityID": 1}],
        "timeSheet": [
            {"timeEntryID": 1, "start": JAN_15, "end": JAN_15 + 3600, "userID": 1, "projectID": 1, "activityID": 1,
             "description": "Build", "comment": "first", "rate": 50, "cleared": 1},
            {"timeEntryID": 2, "start": JAN_15, "end": JAN_15 + 1800, "userID": 2, "projectID": 2, "activityID": 2},
            {"timeEntryID": 3, "start": JAN_15, "end": 0, "userID": 1, "projectID": 1, "activityID": 1},
            {"timeEntryID": 4, "start": JAN_15, "end": JAN_15 + 600, "userID": 1, "projectID": 99, "activityID": 1},
            {"timeEntryID": 5, "start": JAN_15, "end": JAN_15 + 900, "userID": 77, "projectID": 1, "activityID": 1},
            {"timeEntryID": 6, "start": JAN_15, "end": JAN_15 + 1200, "userID": 2, "projectID": 2, "activityID": 1,
             "fixedRate": 99},
        ],
    }


@pytest.fixture
def legacy_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    yield engine
    engine.dispose()


@pytest.fixture
def instance(legacy_engine):
    tables = create_schema(legacy_engine, "kimai_")
    fill(legacy_engine, tables, **instance_data())
    return tables


def options(**values):
    return LegacyImportOptions(url="sqlite://", password=PASSWORD, **values)


def importer(db, settings, legacy_engine, **values):
    return LegacyImporter(db, options(**values), settings=settings, engine=legacy_engine)


class TestVersionCheck:
    @pytest.mark.parametrize("left, right, expected", [
        ("1.0.1", "1.0.1", 0),
        ("1.0.1", "0.9.3", 1),
        ("1.0.1", "1.0", 1),
        ("1.0", "1.0.1", -1),
        ("1.0rc1", "1.0", -1),
        ("1.0.1", "1.0.2-dev", -1),
        ("1388", "1390", -1),
    ])
    def test_compare_versions(self, left, right, expected):
        assert compare_versions(left, right) == expected

    def test_outdated_version(self, legacy_engine):
        tables = create_schema(legacy_engine, "kimai_")
        fill(legacy_engine, tables, configuration=configuration(version="0.9.3"))

        with pytest.raises(LegacySourceError) as exc:
            LegacySource(prefix="kimai_", engine=legacy_engine).check_version()
        assert "Needs at least 1.0.1 but found 0.9.3" in str(exc.value)

    def test_outdated_revision(self, legacy_engine):
        tables = create_schema(legacy_engine, "kimai_")
        fill(legacy_engine, tables, configuration=configuration(revision="1300"))

        with pytest.raises(LegacySourceError) as exc:
            LegacySource(prefix="kimai_", engine=legacy_engine).check_version()
        assert "Database revision needs to be 1388 but found 1300" in str(exc.value)

    def test_wrong_prefix(self, legacy_engine, instance):
        with pytest.raises(LegacySourceError) as exc:
            LegacySource(prefix="other_", engine=legacy_engine).check_version()
        assert str(exc.value) == 'Cannot read from table "other_configuration", make sure that your prefix "other_" is correct.'

    def test_missing_tables(self, legacy_engine):
        tables = create_schema(legacy_engine, "kimai_", tables=("configuration", "users"))
        fill(legacy_engine, tables, configuration=configuration())

        with pytest.raises(LegacySourceError) as exc:
            LegacySource(prefix="kimai_", engine=legacy_engine).check_version()
        assert str(exc.value).startswith("Import cannot be started, missing tables.")

    def test_all_prefixes_are_checked_before_importing(self, db, settings, legacy_engine, instance):
        with pytest.raises(LegacySourceError):
            importer(db, settings, legacy_engine, prefix=["kimai_", "missing_"]).run()
        assert db.query(User).count() == 0


class TestLegacyImport:
    def test_full_import(self, db, settings, legacy_engine, instance):
        results = importer(db, settings, legacy_engine).run()

        assert len(results) == 1
        data = results[0]
        assert data.title == "Kimai v1: kimai_"
        assert data.status == [
            "imported 2 users",
            "imported 1 customers",
            "imported 2 projects",
            "imported 2 activities",
            "imported 1 teams",
            "imported 4 timesheets",
            "created 1 users during timesheet import",
            "failed 2 timesheets",
        ]
        assert [row.errors for row in data.rows] == [
            ["Cannot import running timesheet record, skipping: 3"],
            ["Could not create timesheet record, missing project with ID: 99"],
        ]
        assert 'Skipping team "Old" because it is trashed.' in data.warnings
        assert "Didn't import team: Empty because it has no users." in data.warnings

    def test_users(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine).run()

        alice = db.query(User).filter(User.username == "alice").one()
        assert alice.roles == [ROLE_SUPER_ADMIN]
        assert alice.alias == "Alice"
        assert alice.enabled
        assert alice.requires_password_reset
        assert verify_password(PASSWORD, alice.password)
        assert alice.get_preference_value(PREFERENCE_LANGUAGE) == "de"
        assert alice.timezone == "Europe/Berlin"
        assert float(alice.get_preference_value(PREFERENCE_HOURLY_RATE)) == 50.0
        assert alice.get_preference_value(IMPORTED_ID) == "1"

        bob = db.query(User).filter(User.username == "bob").one()
        assert not bob.enabled
        assert bob.timezone == "UTC"

        placeholder = db.query(User).filter(User.username.notin_(["alice", "bob"])).one()
        assert not placeholder.enabled
        assert placeholder.alias.startswith("Import: ")
        assert placeholder.email.endswith("@example.com")

    def test_customers_projects_and_activities(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine).run()

        customer = db.query(Customer).one()
        assert customer.address == "Main St 1\n12345 Berlin"
        assert customer.country == "DE"
        assert customer.get_meta_value(IMPORTED_ID) == "1"

        website = db.query(Project).filter(Project.name == "Website").one()
        assert website.budget == 1000.0
        assert sorted((rate.rate, rate.is_fixed) for rate in db.query(ProjectRate).all()) == [(70.0, False), (500.0, True)]

        support = db.query(Activity).filter(Activity.name == "Support").one()
        assert support.project.name == "Shop"
        assert db.query(Activity).filter(Activity.name == "Dev").one().project_id is None

    def test_timesheets(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine).run()

        first = db.query(Timesheet).filter(Timesheet.description == "Build").one()
        assert first.duration == 3600
        assert first.rate == 50.0
        assert first.hourly_rate == 50.0
        assert first.exported is True
        assert first.timezone == "Europe/Berlin"

        fixed = db.query(Timesheet).filter(Timesheet.duration == 1200).one()
        assert fixed.rate == 99.0
        assert fixed.activity.name == "Dev"
        assert fixed.project.name == "Shop"
        assert db.query(Timesheet).count() == 4

    def test_teams(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine).run()

        team = db.query(Team).one()
        assert team.name == "Developers"
        assert sorted(user.username for user in team.users) == ["alice", "bob"]
        assert [member.user.username for member in team.members if member.teamlead] == ["alice"]
        assert [customer.name for customer in team.customers] == ["Acme"]
        assert [project.name for project in team.projects] == ["Website"]
        assert [activity.name for activity in team.activities] == ["Dev"]

    def test_skip_teams_and_instance_team(self, db, settings, legacy_engine, instance):
        data = importer(db, settings, legacy_engine, skip_teams=True, instance_team=True).run()[0]

        assert "imported 0 teams" in data.status
        team = db.query(Team).one()
        assert team.name == "kimai_"
        assert len(team.users) == 2

    def test_global_activities_option(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine, global_activities=True).run()
        assert db.query(Activity).filter(Activity.project_id.isnot(None)).count() == 0

    def test_meta_fields(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine, meta_comment="comment").run()

        first = db.query(Timesheet).filter(Timesheet.description == "Build").one()
        assert first.get_meta_value("comment") == "first"

    def test_dry_run(self, db, settings, legacy_engine, instance):
        with patch.object(KimaiStore, "save") as mock_save, \
             patch.object(KimaiStore, "add") as mock_add, \
             patch.object(KimaiStore, "commit") as mock_commit:
            data = importer(db, settings, legacy_engine, dry_run=True).run()[0]

        mock_save.assert_not_called()
        mock_add.assert_not_called()
        mock_commit.assert_not_called()
        assert data.dry_run
        assert "imported 4 timesheets" in data.status
        assert db.query(User).count() == 0
        assert db.query(Timesheet).count() == 0

    def test_failed_save_keeps_staged_timesheets(self, db, legacy_engine, instance):
        original = KimaiStore.save

        def failing_save(self, entity):
            if isinstance(entity, User) and (entity.alias or "").startswith("Import: "):
                raise IntegrityError("INSERT", {}, Exception("database is locked"))
            return original(self, entity)

        settings = Settings(_env_file=None, legacy_batch_size=100)
        with patch.object(KimaiStore, "save", failing_save):
            data = importer(db, settings, legacy_engine, skip_teams=True).run()[0]

        assert "imported 3 timesheets" in data.status
        assert "failed 3 timesheets" in data.status
        assert data.rows[-1].errors == ["Found timesheet record for unknown user and failed to create user: 77"]
        assert any(warning.startswith("Failed to create <User") for warning in data.warnings)
        assert db.query(Timesheet).count() == 3

    def test_check_already_imported(self, db, settings, legacy_engine, instance):
        importer(db, settings, legacy_engine, skip_teams=True).run()
        data = importer(db, settings, legacy_engine, skip_teams=True, check_already_imported=True).run()[0]

        assert data.status[:4] == [
            "imported 0 users",
            "imported 0 customers",
            "imported 0 projects",
            "imported 0 activities",
        ]
        assert db.query(Customer).count() == 1
        assert db.query(Activity).count() == 2


class TestMultipleInstances:
    def test_merge_users_warns_about_partial_matches(self, db, settings, legacy_engine, instance):
        second = create_schema(legacy_engine, "second_")
        fill(
            legacy_engine,
            second,
            configuration=configuration(),
            users=[
                {"userID": 1, "name": "alice", "mail": "alice@example.com"},
                {"userID": 2, "name": "robert", "mail": "bob@example.com"},
            ],
            customers=[{"customerID": 1, "name": "Globex"}],
            projects=[{"projectID": 1, "customerID": 1, "name": "Portal"}],
            activities=[{"activityID": 1, "name": "Dev"}],
            timeSheet=[{"timeEntryID": 1, "start": JAN_15, "end": JAN_15 + 60, "userID": 1, "projectID": 1, "activityID": 1}],
        )

        results = importer(
            db, settings, legacy_engine, prefix=["kimai_", "second_"], merge_user=True, dry_run=True,
        ).run()

        assert [data.title for data in results] == ["Kimai v1: kimai_", "Kimai v1: second_"]
        merged = results[1]
        assert merged.status[0] == "imported 1 users"
        assert "imported 1 timesheets" in merged.status
        assert any("Username does not match, but email does." in warning for warning in merged.warnings)


class TestPreValidation:
    def test_collects_all_problems(self):
        messages = validate_legacy_data(
            options(),
            users=[
                {"userID": 1, "name": "carl", "mail": None},
                {"userID": 2, "name": "dora", "mail": "x@example.com"},
                {"userID": 3, "name": "erik", "mail": "x@example.com"},
            ],
            customers=[{"customerID": 1, "name": "C" * 151}],
            projects=[{"projectID": 1, "customerID": 9, "name": "P"}],
            activities=[],
            rates=[{"userID": 5, "projectID": 1, "activityID": None, "rate": 1}],
        )

        assert messages == [
            'User "carl" with ID 1 has no email',
            'Email "x@example.com" for user "erik" with ID 3 is already used',
            f'Customer name "{"C" * 151}" (ID 1) is too long. Max. 150 character are allowed, found 151.',
            'Project "P" with ID 1 has unknown customer with ID 9',
            'Unknown user with ID "5" found for rate with project "1" and activity "None"',
        ]

    def test_import_aborts_on_invalid_data(self, db, settings, legacy_engine, instance):
        fill(legacy_engine, instance, users=[{"userID": 3, "name": "carl", "mail": None}])

        with pytest.raises(LegacySourceError) as exc:
            importer(db, settings, legacy_engine).run()

        assert exc.value.messages == ['User "carl" with ID 3 has no email']
        assert db.query(User).count() == 0

    def test_fix_email(self, db, settings, legacy_engine, instance):
        fill(legacy_engine, instance, users=[{"userID": 3, "name": "Carl", "mail": None}])

        importer(db, settings, legacy_engine, fix_email="example.org", skip_teams=True).run()

        assert db.query(User).filter(User.username == "Carl").one().email == "carl_import@example.org"

    def test_fix_encoding(self):
        row = {"name": "MÃ¼ller Ã–l", "comment": "GrÃ¶ÃŸe â¦ 1", "rate": 5}
        fix_encoding_row(row)
        assert row == {"name": "Müller Öl", "comment": "Größe - 1", "rate": 5}
