"""Import of a complete Kimai v1 database: users, customers, projects, activities, teams and timesheets."""

import logging
import secrets
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kimai_import.config import Settings, settings as default_settings
from kimai_import.constants.validation_codes import IMPORT_IGNORED_CODES
from kimai_import.exceptions import LegacySourceError
from kimai_import.models import (
    Activity,
    ActivityRate,
    Customer,
    Project,
    ProjectRate,
    Team,
    Timesheet,
    User,
)
from kimai_import.models.user import (
    PREFERENCE_HOURLY_RATE,
    PREFERENCE_LANGUAGE,
    PREFERENCE_TIMEZONE,
    ROLE_SUPER_ADMIN,
    ROLE_USER,
)
from kimai_import.schemas.import_data import ImportData, ImportRow, RowStatus
from kimai_import.schemas.options import LegacyImportOptions
from kimai_import.services.legacy_source import LegacySource
from kimai_import.services.store import KimaiStore
from kimai_import.services.validator import EntityValidator, same_entity
from kimai_import.utils.converters import calculate_rate
from kimai_import.utils.passwords import get_password_hash, unusable_password_hash

log = logging.getLogger(__name__)

IMPORTED_ID = "_imported_id"
MAX_NAME_LENGTH = 150
MAX_ACCOUNT_NUMBER = 30

USER_PREFERENCES = {"ui.lang": PREFERENCE_LANGUAGE, "timezone": PREFERENCE_TIMEZONE}

TIMESHEET_HEADER = ["timeEntryID", "start", "end", "userID", "projectID", "activityID", "description"]

# Known double encoded characters of Kimai v1 databases.
MOJIBAKE = {
    "Ã¤": "ä",
    "Ã„": "Ä",
    "Ã¼": "ü",
    "Ãœ": "Ü",
    "Ã¶": "ö",
    "Ã–": "Ö",
    "ÃŸ": "ß",
    "â¦": "-",
}
TEXT_COLUMNS = ("name", "comment", "description", "location", "trackingNumber", "alias")


def legacy_id(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def flag(value) -> bool:
    if value is None or value == "":
        return False
    try:
        return int(value) != 0
    except (TypeError, ValueError):
        return bool(value)


def amount(value) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def random_name() -> str:
    return secrets.token_hex(7)


def fix_encoding(rows: Iterable[Dict[str, Any]]) -> None:
    for row in rows:
        fix_encoding_row(row)


def fix_encoding_row(row: Dict[str, Any]) -> None:
    for column in TEXT_COLUMNS:
        value = row.get(column)
        if isinstance(value, str):
            for search, replace in MOJIBAKE.items():
                value = value.replace(search, replace)
            row[column] = value


def fix_emails(users: Iterable[Dict[str, Any]], domain: str) -> None:
    for user in users:
        if not user.get("mail"):
            user["mail"] = f"{str(user['name']).lower()}_import@{domain}"


def fix_timesheet_row(record: Dict[str, Any]) -> None:
    if record.get("end") and record.get("start") and int(record["start"]) > int(record["end"]):
        record["end"] = record["start"]
        record["duration"] = 0
        record["rate"] = 0


def validate_legacy_data(options: LegacyImportOptions, users, customers, projects, activities, rates) -> List[str]:
    """All reasons why this instance can not be imported, empty when it can."""
    messages = []

    used_emails = set()
    user_ids = set()
    for old in users:
        user_ids.add(legacy_id(old["userID"]))
        if not old.get("mail"):
            messages.append(f'User "{old["name"]}" with ID {old["userID"]} has no email')
            continue
        if old["mail"] in used_emails:
            messages.append(f'Email "{old["mail"]}" for user "{old["name"]}" with ID {old["userID"]} is already used')
        if options.alias_as_account_number and old.get("alias") and len(old["alias"]) > MAX_ACCOUNT_NUMBER:
            messages.append(
                f'Alias "{old["alias"]}" for user "{old["name"]}" with ID {old["userID"]}, which should be used '
                f"as account number, is longer than {MAX_ACCOUNT_NUMBER} character"
            )
        used_emails.add(old["mail"])

    customer_ids = set()
    for old in customers:
        customer_ids.add(legacy_id(old["customerID"]))
        if len(old["name"] or "") > MAX_NAME_LENGTH:
            messages.append(
                f'Customer name "{old["name"]}" (ID {old["customerID"]}) is too long. '
                f"Max. {MAX_NAME_LENGTH} character are allowed, found {len(old['name'])}."
            )

    for old in projects:
        if legacy_id(old["customerID"]) not in customer_ids:
            messages.append(
                f'Project "{old["name"]}" with ID {old["projectID"]} has unknown customer with ID {old["customerID"]}'
            )
        if len(old["name"] or "") > MAX_NAME_LENGTH:
            messages.append(
                f'Project name "{old["name"]}" (ID {old["projectID"]}) is too long. '
                f"Max. {MAX_NAME_LENGTH} character are allowed, found {len(old['name'])}."
            )

    for old in activities:
        if len(old["name"] or "") > MAX_NAME_LENGTH:
            messages.append(
                f'Activity name "{old["name"]}" (ID {old["activityID"]}) is too long. '
                f"Max. {MAX_NAME_LENGTH} character are allowed, found {len(old['name'])}."
            )

    if not options.skip_error_rates:
        for rate in rates:
            if rate.get("userID") is None:
                continue
            if legacy_id(rate["userID"]) not in user_ids:
                messages.append(
                    f'Unknown user with ID "{rate["userID"]}" found for rate with project '
                    f'"{rate.get("projectID")}" and activity "{rate.get("activityID")}"'
                )

    return messages


class LegacyImporter:
    """
    Imports one or more Kimai v1 instances (table prefixes) into the destination store.

    Entities are cached by their Kimai v1 id. Users, customers, projects,
    activities and teams of an earlier prefix are reused for later prefixes
    when the matching ``merge_*`` option is set. Every prefix produces its own
    ``ImportData`` holding the failed timesheet records.
    """

    def __init__(
        self,
        db: Session,
        options: LegacyImportOptions,
        settings: Optional[Settings] = None,
        engine=None,
    ):
        self.db = db
        self.store = KimaiStore(db)
        self.options = options
        self.settings = settings or default_settings
        self.engine = engine
        self.validator = EntityValidator()
        self.dry_run = options.dry_run
        self.password_hash = None
        self.staged = 0

        self.users: Dict[str, User] = {}
        self.user_ids: Dict[str, str] = {}
        self.customers: Dict[str, Customer] = {}
        self.projects: Dict[str, Project] = {}
        self.activities: Dict[str, Dict[Optional[str], Activity]] = {}
        self.teams: Dict[str, Team] = {}
        self.team_ids: Dict[str, str] = {}
        self.old_activities: Dict[str, Dict[str, Any]] = {}
        self.data: Optional[ImportData] = None
        self.created_during_timesheets = 0
        self.activities_during_timesheets = 0

    def sources(self) -> List[LegacySource]:
        if self.engine is None:
            return [LegacySource(self.options.url, prefix) for prefix in self.options.prefix]
        return [LegacySource(prefix=prefix, engine=self.engine) for prefix in self.options.prefix]

    def run(self) -> List[ImportData]:
        sources = self.sources()
        for source in sources:
            source.check_version()

        self.password_hash = get_password_hash(self.options.password)

        results = []
        try:
            for source in sources:
                results.append(self.import_instance(source))
        finally:
            if self.dry_run:
                self.store.rollback()
        return results

    # Persistence helpers, all of them no-ops in dry run

    def save(self, entity) -> bool:
        """Saves and commits one entity. Staged rows are committed first, a failure only rolls back this entity."""
        if self.dry_run:
            return True
        if self.staged:
            self.commit_staged()
        try:
            self.store.save(entity)
        except SQLAlchemyError as e:
            self.store.rollback()
            log.error(f"Failed to create {entity!r}: {e}")
            self.data.add_warning(f"Failed to create {entity!r}: {e}")
            return False
        return True

    def stage(self, entity) -> None:
        if not self.dry_run:
            self.store.add(entity)
            self.staged += 1

    def commit_staged(self) -> None:
        if not self.dry_run:
            self.store.commit()
            self.staged = 0

    def check(self, entity, ignore: Iterable[str] = ()) -> None:
        violations = self.validator.validate(entity, ignore=ignore)
        if violations:
            name = getattr(entity, "name", None) or getattr(entity, "username", None)
            raise LegacySourceError(
                [f"Failed to validate {type(entity).__name__.lower()}: {name}"] + [str(violation) for violation in violations]
            )

    # Per instance flow

    def reset_caches(self) -> None:
        self.user_ids = {}
        self.team_ids = {}
        self.old_activities = {}
        if not self.options.merge_customer:
            self.customers = {}
        if not self.options.merge_project:
            self.projects = {}
        if not self.options.merge_user:
            self.users = {}
        if not self.options.merge_team:
            self.teams = {}
        if not self.options.merge_activity:
            self.activities = {}

    def fetch(self, source: LegacySource, table: str) -> List[Dict[str, Any]]:
        try:
            return source.fetch_all(table)
        except SQLAlchemyError as e:
            raise LegacySourceError(f"Failed to load {table}: {e}")

    def import_instance(self, source: LegacySource) -> ImportData:
        prefix = source.prefix
        log.info(f"Handling data from table prefix: {prefix}")
        self.data = ImportData(title=f"Kimai v1: {prefix}", header=list(TIMESHEET_HEADER), dry_run=self.dry_run)
        self.reset_caches()

        users = self.fetch(source, "users")
        customers = self.fetch(source, "customers")
        projects = self.fetch(source, "projects")
        activities = self.fetch(source, "activities")
        fixed_rates = self.fetch(source, "fixedRates")
        rates = self.fetch(source, "rates")

        if self.options.fix_email:
            fix_emails(users, self.options.fix_email)
        if self.options.fix_utf8:
            for rows in (users, customers, projects, activities):
                fix_encoding(rows)

        messages = validate_legacy_data(self.options, users, customers, projects, activities, rates)
        if messages:
            raise LegacySourceError(messages)

        if self.options.check_already_imported:
            self.load_imported()

        counts = {}
        counts["users"] = self.import_users(source, users, rates)
        counts["customers"] = self.import_customers(customers)
        counts["projects"] = self.import_projects(projects, fixed_rates, rates)
        counts["activities"] = self.import_activities(source, activities, fixed_rates, rates)
        counts["teams"] = 0
        if not self.options.skip_teams:
            counts["teams"] = self.import_teams(source)
        if self.options.instance_team and users:
            self.create_instance_team(users, activities, prefix)

        counts["timesheets"] = self.import_timesheets(source, fixed_rates, rates)

        self.data.created = counts
        for kind in ("users", "customers", "projects", "activities", "teams", "timesheets"):
            self.data.add_status(f"imported {counts[kind]} {kind}")
        if self.created_during_timesheets > 0:
            self.data.add_status(f"created {self.created_during_timesheets} users during timesheet import")
        if self.activities_during_timesheets > 0:
            self.data.add_status(f"created {self.activities_during_timesheets} activities during timesheet import")
        if self.data.count_failed_rows() > 0:
            self.data.add_status(f"failed {self.data.count_failed_rows()} timesheets")

        log.info(f"{self.data.title}: {', '.join(self.data.status)}")
        return self.data

    # Cache handling

    def get_cached_user(self, old_id) -> Optional[User]:
        key = legacy_id(old_id)
        key = self.user_ids.get(key, key)
        return self.users.get(key)

    def get_cached_activity(self, old_id, project_id=None) -> Optional[Activity]:
        return self.activities.get(legacy_id(old_id), {}).get(legacy_id(project_id))

    def set_activity_cache(self, old_id, activity: Activity, project_id=None) -> None:
        self.activities.setdefault(legacy_id(old_id), {})[legacy_id(project_id)] = activity

    def load_imported(self) -> None:
        """Fills the caches from entities an earlier run already imported."""
        for user in self.store.find_users():
            old_id = user.get_preference_value(IMPORTED_ID)
            if old_id is not None:
                self.users[old_id] = user

        for customer in self.store.find_customers():
            old_id = customer.get_meta_value(IMPORTED_ID)
            if old_id is not None:
                self.customers[old_id] = customer

        project_ids = {}
        for project in self.store.find_projects():
            old_id = project.get_meta_value(IMPORTED_ID)
            if old_id is not None:
                self.projects[old_id] = project
                project_ids[project.id] = old_id

        for activity in self.store.find_activities():
            old_id = activity.get_meta_value(IMPORTED_ID)
            if old_id is None:
                continue
            if activity.project_id is None:
                self.set_activity_cache(old_id, activity)
            elif activity.project_id in project_ids:
                self.set_activity_cache(old_id, activity, project_ids[activity.project_id])

        log.debug(
            f"Loaded {len(self.users)} users, {len(self.customers)} customers, "
            f"{len(self.projects)} projects and {len(self.activities)} activities from earlier imports"
        )

    def reload_caches(self) -> None:
        """Swaps every cached entity for a fresh instance of the current session."""
        users = {user.id: user for user in self.store.find_users()}
        self.users = {key: users.get(user.id, user) for key, user in self.users.items()}

        customers = {customer.id: customer for customer in self.store.find_customers()}
        self.customers = {key: customers.get(customer.id, customer) for key, customer in self.customers.items()}

        projects = {project.id: project for project in self.store.find_projects()}
        self.projects = {key: projects.get(project.id, project) for key, project in self.projects.items()}

        activities = {activity.id: activity for activity in self.store.find_activities()}
        self.activities = {
            key: {project_id: activities.get(activity.id, activity) for project_id, activity in variants.items()}
            for key, variants in self.activities.items()
        }

        teams = {team.id: team for team in self.store.find_teams()}
        self.teams = {key: teams.get(team.id, team) for key, team in self.teams.items()}

    def flush_batch(self) -> None:
        self.commit_staged()
        self.store.clear()
        self.reload_caches()

    # Users

    def is_known_user(self, old: Dict[str, Any]) -> bool:
        """
        True if this user was imported before, possibly from another instance.

        Users of different instances are the same user when email and username
        match (case-insensitive). A match of only one of the two is reported.
        """
        cache_id = legacy_id(old["userID"])
        if cache_id in self.user_ids:
            return True

        old_email = str(old.get("mail") or "").lower()
        old_name = str(old.get("name") or "").lower()
        for cached_id, user in self.users.items():
            email = (user.email or "").lower()
            name = (user.username or "").lower()
            if email != old_email and name != old_name:
                continue
            if email == old_email and name == old_name:
                self.user_ids[cache_id] = cached_id
                return True

            if email == old_email:
                message = "Username does not match, but email does."
            else:
                message = "Email does not match, but username does."
            warning = (
                f"Found problematic user combination. {message} Cached user: ID {user.id}, {email}, {name}. "
                f"New user: ID {old['userID']}, {old_email}, {old_name}."
            )
            log.warning(warning)
            self.data.add_warning(warning)

        return False

    def import_users(self, source: LegacySource, users: List[Dict[str, Any]], rates: List[Dict[str, Any]]) -> int:
        counter = 0
        for old in users:
            if self.is_known_user(old):
                continue

            old_id = legacy_id(old["userID"])
            enabled = flag(old.get("active")) and not flag(old.get("trash")) and not flag(old.get("ban"))
            role = ROLE_SUPER_ADMIN if flag(old.get("globalRoleID")) and int(old["globalRoleID"]) == 1 else ROLE_USER

            user = User(
                username=old["name"],
                email=old["mail"],
                enabled=enabled,
                roles=[role],
                password=self.password_hash,
                requires_password_reset=True,
            )
            user.set_preference_value(IMPORTED_ID, old_id)

            if old.get("alias") is not None:
                if self.options.alias_as_account_number:
                    user.account_number = old["alias"][:MAX_ACCOUNT_NUMBER]
                else:
                    user.alias = old["alias"]

            self.check(user)

            for preference in source.fetch_all("preferences", userID=old["userID"]):
                name = USER_PREFERENCES.get(preference.get("option"))
                if name is not None and preference.get("value"):
                    user.set_preference_value(name, preference["value"])

            defaults = {PREFERENCE_LANGUAGE: self.options.language, PREFERENCE_TIMEZONE: self.options.timezone}
            for name, default in defaults.items():
                if user.get_preference_value(name) is None:
                    user.set_preference_value(name, default)

            for rate in rates:
                if legacy_id(rate.get("userID")) == old_id and rate.get("activityID") is None and rate.get("projectID") is None:
                    user.set_preference_value(PREFERENCE_HOURLY_RATE, rate["rate"])

            if self.save(user):
                counter += 1
                self.users[old_id] = user
                log.debug(f"Created user: {user.username}")

        return counter

    # Customers

    def import_customers(self, customers: List[Dict[str, Any]]) -> int:
        counter = 0
        for old in customers:
            old_id = legacy_id(old["customerID"])
            if old_id in self.customers:
                continue

            name = old.get("name")
            if not name:
                name = random_name()
                self.warn(f"Found empty customer name, setting it to: {name}")

            address = None
            if old.get("street") or old.get("zipcode") or old.get("city"):
                address = f"{old.get('street') or ''}\n{old.get('zipcode') or ''} {old.get('city') or ''}".strip()

            customer = Customer(
                name=name,
                comment=old.get("comment"),
                company=old.get("company"),
                fax=old.get("fax"),
                homepage=old.get("homepage"),
                mobile=old.get("mobile"),
                email=old.get("mail"),
                phone=old.get("phone"),
                contact=old.get("contact"),
                address=address,
                timezone=old.get("timezone") or self.options.timezone,
                visible=flag(old.get("visible")) and not flag(old.get("trash")),
                country=self.options.country.upper(),
                currency=self.options.currency.upper(),
                billable=True,
                budget=0.0,
                time_budget=0,
            )
            customer.set_meta_field(IMPORTED_ID, old_id, visible=False)

            self.check(customer)

            if self.save(customer):
                counter += 1
                self.customers[old_id] = customer
                log.debug(f"Created customer: {customer.name}")

        return counter

    # Projects

    def import_projects(self, projects, fixed_rates, rates) -> int:
        counter = 0
        for old in projects:
            old_id = legacy_id(old["projectID"])
            if old_id in self.projects:
                continue

            customer = self.customers.get(legacy_id(old["customerID"]))
            if customer is None:
                message = (
                    f'Found project with unknown customer. Project ID: "{old_id}", Name: "{old["name"]}", '
                    f'Customer ID: "{old["customerID"]}"'
                )
                log.error(message)
                self.data.add_warning(message)
                continue

            name = old.get("name")
            if not name:
                name = random_name()
                self.warn(f"Found empty project name, setting it to: {name}")

            project = Project(
                customer=customer,
                name=name,
                comment=old.get("comment") or None,
                visible=flag(old.get("visible")) and not flag(old.get("trash")),
                billable=True,
                global_activities=True,
                budget=amount(old.get("budget")),
                time_budget=0,
            )
            project.set_meta_field(IMPORTED_ID, old_id, visible=False)

            self.check(project)

            if not self.save(project):
                continue
            counter += 1
            self.projects[old_id] = project
            log.debug(f"Created project: {project.name} for customer: {customer.name}")

            for row in fixed_rates:
                if row.get("activityID") is not None or legacy_id(row.get("projectID")) != old_id:
                    continue
                self.stage(ProjectRate(project=project, rate=amount(row["rate"]), is_fixed=True))

            for row in rates:
                if row.get("activityID") is not None or legacy_id(row.get("projectID")) != old_id:
                    continue
                user = self.get_cached_user(row["userID"]) if row.get("userID") is not None else None
                self.stage(ProjectRate(project=project, user=user, rate=amount(row["rate"])))

        self.commit_staged()
        return counter

    # Activities

    def import_activities(self, source: LegacySource, activities, fixed_rates, rates) -> int:
        """Activities without project mapping become global, all others one activity per mapped project."""
        mapping: Dict[str, List[str]] = {}
        if not self.options.global_activities:
            for row in source.fetch_all("projects_activities"):
                mapping.setdefault(legacy_id(row["activityID"]), []).append(legacy_id(row["projectID"]))

        counter = 0
        for old in activities:
            old_id = legacy_id(old["activityID"])
            self.old_activities[old_id] = old
            if old_id in mapping or self.get_cached_activity(old_id) is not None:
                continue
            if self.create_activity(old, fixed_rates, rates, None) is not None:
                counter += 1

        for old in activities:
            old_id = legacy_id(old["activityID"])
            for project_id in mapping.get(old_id, []):
                if self.get_cached_activity(old_id, project_id) is not None:
                    continue
                if self.create_activity(old, fixed_rates, rates, project_id) is not None:
                    counter += 1

        return counter

    def create_activity(self, old: Dict[str, Any], fixed_rates, rates, project_id: Optional[str]) -> Optional[Activity]:
        old_id = legacy_id(old["activityID"])
        cached = self.get_cached_activity(old_id, project_id)
        if cached is not None:
            return cached

        project = None
        if project_id is not None:
            project = self.projects.get(project_id)
            if project is None:
                self.warn(f"Did not find project [{project_id}], skipping activity creation [{old_id}] {old.get('name')}")
                return None

        name = old.get("name")
        if not name:
            name = random_name()
            self.warn(f"Found empty activity name, setting it to: {name}")

        activity = Activity(
            name=name,
            comment=old.get("comment") or None,
            visible=flag(old.get("visible")) and not flag(old.get("trash")),
            billable=True,
            budget=amount(old.get("budget")),
            time_budget=0,
            project=project,
        )
        activity.set_meta_field(IMPORTED_ID, old_id, visible=False)

        self.check(activity)

        if not self.save(activity):
            return None
        self.set_activity_cache(old_id, activity, project_id)
        log.debug(f"Created activity: {activity.name}")

        for row in fixed_rates:
            if legacy_id(row.get("activityID")) != old_id:
                continue
            if row.get("projectID") is not None and legacy_id(row["projectID"]) != project_id:
                continue
            self.stage(ActivityRate(activity=activity, rate=amount(row["rate"]), is_fixed=True))

        for row in rates:
            if legacy_id(row.get("activityID")) != old_id:
                continue
            if row.get("projectID") is not None and legacy_id(row["projectID"]) != project_id:
                continue
            user = self.get_cached_user(row["userID"]) if row.get("userID") is not None else None
            self.stage(ActivityRate(activity=activity, user=user, rate=amount(row["rate"])))

        self.commit_staged()
        return activity

    # Teams

    def is_known_team(self, group: Dict[str, Any]) -> bool:
        cache_id = legacy_id(group["groupID"])
        if cache_id in self.team_ids:
            return True
        for cached_id, team in self.teams.items():
            if team.name == group["name"]:
                self.team_ids[cache_id] = cached_id
                return True
        return False

    def import_teams(self, source: LegacySource) -> int:
        groups = source.fetch_all("groups")
        group_users = source.fetch_all("groups_users")
        group_customers = [] if self.options.skip_team_customers else source.fetch_all("groups_customers")
        group_projects = [] if self.options.skip_team_projects else source.fetch_all("groups_projects")
        group_activities = [] if self.options.skip_team_activities else source.fetch_all("groups_activities")
        if self.options.fix_utf8:
            fix_encoding(groups)

        new_teams: Dict[str, Team] = {}
        for group in groups:
            group_id = legacy_id(group["groupID"])
            if flag(group.get("trash")):
                self.warn(f'Skipping team "{group["name"]}" because it is trashed.')
                continue

            if self.is_known_team(group):
                team = self.teams[self.team_ids[group_id]]
            else:
                team = Team(name=group["name"])
            self.teams[group_id] = team
            new_teams[group_id] = team

        for row in group_users:
            team = new_teams.get(legacy_id(row["groupID"]))
            user = self.get_cached_user(row["userID"])
            if team is None or user is None:
                continue
            team.add_user(user)
            if not team.has_teamleads():
                team.add_teamlead(user)
            if flag(row.get("membershipRoleID")) and int(row["membershipRoleID"]) == 1:
                team.add_teamlead(user)

        for group_id, team in list(new_teams.items()):
            if not team.has_users():
                self.warn(f"Didn't import team: {team.name} because it has no users.")
                del new_teams[group_id]

        for row in group_customers:
            team = new_teams.get(legacy_id(row["groupID"]))
            if team is not None:
                team.add_customer(self.customers.get(legacy_id(row["customerID"])))

        for row in group_projects:
            team = new_teams.get(legacy_id(row["groupID"]))
            project = self.projects.get(legacy_id(row["projectID"]))
            if team is None or project is None:
                continue
            team.add_project(project)
            team.add_customer(project.customer)

        for row in group_activities:
            team = new_teams.get(legacy_id(row["groupID"]))
            if team is None:
                continue
            for activity in self.activities.get(legacy_id(row["activityID"]), {}).values():
                team.add_activity(activity)
                if activity.project is not None:
                    team.add_project(activity.project)
                    team.add_customer(activity.project.customer)

        counter = 0
        for team in new_teams.values():
            self.check(team)
            if self.save(team):
                counter += 1
                log.debug(
                    f"Created team: {team.name} with {len(team.users)} users, "
                    f"{len(team.projects)} projects and {len(team.customers)} customers."
                )
        return counter

    def create_instance_team(self, users: List[Dict[str, Any]], activities: List[Dict[str, Any]], name: str) -> None:
        team = Team(name=name)
        members = [self.get_cached_user(old["userID"]) for old in users]
        members = [user for user in members if user is not None]
        if not members:
            self.warn(f"Didn't create instance team: {name} because it has no users.")
            return

        team.add_teamlead(members[0])
        for user in members:
            team.add_user(user)
        for old in activities:
            team.add_activity(self.get_cached_activity(old["activityID"]))

        if self.save(team):
            log.info(f"Created instance team: {team.name}")

    # Timesheets

    def import_timesheets(self, source: LegacySource, fixed_rates, rates) -> int:
        self.created_during_timesheets = 0
        self.activities_during_timesheets = 0
        if not self.dry_run:
            self.flush_batch()

        counter = 0
        for old in source.iterate("timeSheet"):
            if self.options.fix_timesheet:
                fix_timesheet_row(old)
            if self.options.fix_utf8:
                fix_encoding_row(old)

            row = ImportRow(data=old)
            timesheet = self.map_timesheet(old, row, fixed_rates, rates)
            if timesheet is not None:
                self.stage(timesheet)
                row.status = RowStatus.SKIPPED if self.dry_run else RowStatus.PERSISTED
                counter += 1
                if not self.dry_run and counter % self.settings.legacy_batch_size == 0:
                    self.flush_batch()
                    log.debug(f"Imported {counter} timesheet records")

            self.data.add_row(row, keep=row.has_error())

        if not self.dry_run:
            self.flush_batch()
        return counter

    def placeholder_user(self, old_user_id) -> Optional[User]:
        """Disabled stand-in for timesheets of users that no longer exist."""
        name = random_name()
        user = User(
            username=name,
            email=f"{name}@example.com",
            alias=f"Import: {name}",
            enabled=False,
            roles=[ROLE_USER],
            password=unusable_password_hash(),
            requires_password_reset=True,
        )
        if self.validator.validate(user) or not self.save(user):
            return None
        self.users[legacy_id(old_user_id)] = user
        self.created_during_timesheets += 1
        log.debug(f"Created deactivated user: {user.username}")
        return user

    def map_timesheet(self, old: Dict[str, Any], row: ImportRow, fixed_rates, rates) -> Optional[Timesheet]:
        if not old.get("end"):
            row.add_error(f"Cannot import running timesheet record, skipping: {old.get('timeEntryID')}")
            return None

        project_id = legacy_id(old.get("projectID"))
        activity_id = legacy_id(old.get("activityID"))
        project = self.projects.get(project_id)
        if project is None:
            row.add_error(f"Could not create timesheet record, missing project with ID: {project_id}")
            return None

        activity = self.get_cached_activity(activity_id, project_id) or self.get_cached_activity(activity_id)
        if activity is None and activity_id in self.old_activities:
            activity = self.create_activity(self.old_activities[activity_id], fixed_rates, rates, project_id)
            if activity is not None:
                self.activities_during_timesheets += 1
        if activity is None:
            row.add_error(f"Could not import timesheet record, missing activity with ID: {activity_id}/{project_id}")
            return None

        user = self.get_cached_user(old.get("userID"))
        if user is None:
            user = self.placeholder_user(old.get("userID"))
            if user is None:
                row.add_error(f"Found timesheet record for unknown user and failed to create user: {old.get('userID')}")
                return None
        row.status = RowStatus.RESOLVED

        if activity.project is not None and not same_entity(activity.project, project):
            row.add_error(f"Found invalid mapped project - activity combination in record: {old.get('timeEntryID')}")
            return None

        start = int(old["start"])
        end = int(old["end"])
        duration = end - start

        timesheet = Timesheet(
            user=user,
            project=project,
            activity=activity,
            begin=datetime.fromtimestamp(start, tz=dt_timezone.utc),
            end=datetime.fromtimestamp(end, tz=dt_timezone.utc),
            duration=duration,
            break_duration=0,
            timezone=user.timezone or self.options.timezone,
            description=old.get("description") or old.get("comment") or None,
            billable=True,
            exported=flag(old.get("cleared")),
            rate=0.0,
        )

        fixed_rate = amount(old.get("fixedRate"))
        hourly_rate = amount(old.get("rate"))
        if fixed_rate > 0:
            timesheet.fixed_rate = fixed_rate
            timesheet.rate = fixed_rate
        if hourly_rate > 0:
            timesheet.hourly_rate = hourly_rate
            if timesheet.fixed_rate is None:
                timesheet.rate = calculate_rate(hourly_rate, duration)

        if self.options.meta_comment:
            timesheet.description = old.get("description") or None
            if old.get("comment"):
                timesheet.set_meta_field(self.options.meta_comment, old["comment"], visible=True)
        if self.options.meta_location and old.get("location"):
            timesheet.set_meta_field(self.options.meta_location, old["location"], visible=True)
        if self.options.meta_tracking_number and old.get("trackingNumber"):
            timesheet.set_meta_field(self.options.meta_tracking_number, old["trackingNumber"], visible=True)

        violations = self.validator.validate(timesheet, ignore=IMPORT_IGNORED_CODES)
        if violations:
            for violation in violations:
                row.add_error(str(violation))
            return None

        row.status = RowStatus.MAPPED
        return timesheet

    def warn(self, message: str) -> None:
        log.warning(message)
        self.data.add_warning(message)
