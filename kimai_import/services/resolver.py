"""Per-run lookup-or-create of customers, projects, activities, tags and users."""

import logging
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError

from kimai_import.config import Settings, settings as default_settings
from kimai_import.constants.row_errors import RowErrorCode, explain_error
from kimai_import.models import Activity, Customer, Project, Tag, User
from kimai_import.models.tag import MAX_TAG_LENGTH
from kimai_import.models.user import PREFERENCE_LANGUAGE, PREFERENCE_TIMEZONE, ROLE_USER
from kimai_import.services.outcome import RowError
from kimai_import.services.store import KimaiStore
from kimai_import.utils.passwords import unusable_password_hash

log = logging.getLogger(__name__)

GLOBAL_SCOPE = "GLOBAL"

KINDS = ("customers", "projects", "activities", "tags", "users")


class Origin(str, Enum):
    CACHED = "cached"
    FOUND = "found"
    CREATED = "created"


class Resolved(NamedTuple):
    entity: Any
    origin: Origin


class EntityResolver:
    """
    Memoized lookup-or-create for one import run.

    Every natural key is looked up in the run cache first, then in the store.
    Entities that do not exist yet are created, counted and (unless this is a
    dry run) saved right away, so later rows find them. An entity that was
    resolved once is never updated through a later cache hit.
    """

    def __init__(
        self,
        store: KimaiStore,
        *,
        dry_run: bool = False,
        global_activities: bool = True,
        match_user_alias: bool = False,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.dry_run = dry_run
        self.global_activities = global_activities
        self.match_user_alias = match_user_alias
        self.settings = settings or default_settings
        self._caches: Dict[str, Dict[Any, Any]] = {kind: {} for kind in KINDS}
        self._user_emails: Dict[str, User] = {}
        self._user_aliases: Dict[str, User] = {}
        self.created: Dict[str, int] = {kind: 0 for kind in KINDS}

    # Generic helpers

    def register(self, kind: str, key, entity) -> None:
        """Cache a newly built entity, count it and save it unless dry run."""
        if not self.dry_run:
            try:
                self.store.save(entity)
            except SQLAlchemyError as e:
                self.store.rollback()
                detail = str(getattr(e, "orig", None) or e)
                log.error(f"Failed to create {entity!r}: {detail}")
                raise RowError(explain_error(RowErrorCode.SAVE_FAILED, {"error_detail": detail}))
        self.created[kind] += 1
        self._caches[kind][key] = entity
        log.debug(f"{'Would create' if self.dry_run else 'Created'} {kind[:-1]} {key!r}")

    def cached(self, kind: str, key):
        return self._caches[kind].get(key)

    def remember(self, kind: str, key, entity) -> None:
        self._caches[kind][key] = entity

    # Customers

    @staticmethod
    def customer_key(name: str) -> str:
        return name.strip()

    def new_customer(self, name: str) -> Customer:
        return Customer(
            name=name,
            country=self.settings.default_country,
            currency=self.settings.default_currency,
            timezone=self.settings.default_timezone,
            visible=True,
            billable=True,
            budget=0.0,
            time_budget=0,
        )

    def lookup_customer(self, name: str) -> Optional[Resolved]:
        key = self.customer_key(name)
        customer = self.cached("customers", key)
        if customer is not None:
            return Resolved(customer, Origin.CACHED)
        customer = self.store.find_customer_by_name(key)
        if customer is not None:
            self.remember("customers", key, customer)
            return Resolved(customer, Origin.FOUND)
        return None

    def resolve_customer(self, name: str) -> Resolved:
        resolved = self.lookup_customer(name)
        if resolved is not None:
            return resolved
        key = self.customer_key(name)
        customer = self.new_customer(key)
        self.register("customers", key, customer)
        return Resolved(customer, Origin.CREATED)

    def customer(self, name: str) -> Customer:
        return self.resolve_customer(name).entity

    # Projects

    def project_key(self, name: str, customer: Customer):
        return (name.strip(), self.customer_key(customer.name))

    def new_project(self, name: str, customer: Customer) -> Project:
        return Project(
            name=name,
            customer=customer,
            visible=True,
            billable=True,
            global_activities=True,
            budget=0.0,
            time_budget=0,
        )

    def lookup_project(self, name: str, customer: Customer) -> Optional[Resolved]:
        key = self.project_key(name, customer)
        project = self.cached("projects", key)
        if project is not None:
            return Resolved(project, Origin.CACHED)
        project = self.store.find_project(key[0], customer)
        if project is not None:
            self.remember("projects", key, project)
            return Resolved(project, Origin.FOUND)
        return None

    def resolve_project(self, name: str, customer_name: str) -> Resolved:
        customer = self.customer(customer_name)
        resolved = self.lookup_project(name, customer)
        if resolved is not None:
            return resolved
        key = self.project_key(name, customer)
        project = self.new_project(key[0], customer)
        self.register("projects", key, project)
        return Resolved(project, Origin.CREATED)

    def project(self, name: str, customer_name: str) -> Project:
        return self.resolve_project(name, customer_name).entity

    # Activities

    def activity_scope(self, project: Optional[Project]):
        if project is None:
            return GLOBAL_SCOPE
        if project.id is not None:
            return project.id
        return self.project_key(project.name, project.customer)

    def resolve_activity(self, name: str, project: Optional[Project] = None) -> Resolved:
        """``project=None`` resolves the global activity of that name."""
        key = (name.strip(), self.activity_scope(project))
        activity = self.cached("activities", key)
        if activity is not None:
            return Resolved(activity, Origin.CACHED)

        activity = self.store.find_activity(key[0], project)
        if activity is not None:
            self.remember("activities", key, activity)
            return Resolved(activity, Origin.FOUND)

        activity = Activity(
            name=key[0],
            project=project,
            visible=True,
            billable=True,
            budget=0.0,
            time_budget=0,
        )
        self.register("activities", key, activity)
        return Resolved(activity, Origin.CREATED)

    def activity(self, name: str, project: Optional[Project] = None) -> Activity:
        return self.resolve_activity(name, project).entity

    # Tags

    def tag(self, name: str) -> Tag:
        key = name[:MAX_TAG_LENGTH]
        tag = self.cached("tags", key)
        if tag is not None:
            return tag
        tag = self.store.find_tag_by_name(key)
        if tag is not None:
            self.remember("tags", key, tag)
            return tag
        tag = Tag(name=key, visible=True)
        self.register("tags", key, tag)
        return tag

    # Users

    def new_user(self, username: str, email: str, alias: Optional[str] = None, enabled: bool = True) -> User:
        user = User(
            username=username,
            email=email,
            alias=alias,
            enabled=enabled,
            roles=[ROLE_USER],
            password=unusable_password_hash(),
            requires_password_reset=True,
        )
        user.set_preference_value(PREFERENCE_TIMEZONE, self.settings.default_timezone)
        user.set_preference_value(PREFERENCE_LANGUAGE, self.settings.default_language)
        return user

    def index_user(self, user: User) -> None:
        """Makes a user of this run findable by email and alias without asking the store."""
        if user.email:
            self._user_emails[user.email.strip().lower()] = user
        if self.match_user_alias and user.alias:
            self._user_aliases[user.alias] = user

    def find_user(self, identifier: str, email: Optional[str] = None) -> Optional[User]:
        user = None
        if email:
            user = self._user_emails.get(email.strip().lower()) or self.store.find_user_by_email(email)
        if user is None:
            user = self.store.find_user_by_username(identifier)
        if user is None and self.match_user_alias:
            user = self._user_aliases.get(identifier) or self.store.find_user_by_alias(identifier)
        return user

    def resolve_user(self, identifier: str, email: Optional[str] = None, alias: Optional[str] = None) -> Optional[Resolved]:
        """
        Resolves by email, then username, then (optionally) display name.

        Unknown users are created when an email address is known, either from
        the email column or because the identifier is one. Returns None otherwise.
        """
        identifier = identifier.strip()
        user = self.cached("users", identifier)
        if user is not None:
            return Resolved(user, Origin.CACHED)

        user = self.find_user(identifier, email)
        if user is not None:
            self.remember("users", identifier, user)
            return Resolved(user, Origin.FOUND)

        if not email and "@" in identifier:
            email = identifier
        if not email:
            return None

        user = self.new_user(identifier, email.strip(), alias or identifier)
        self.register("users", identifier, user)
        self.index_user(user)
        return Resolved(user, Origin.CREATED)

    def user(self, identifier: str, email: Optional[str] = None, alias: Optional[str] = None) -> Optional[User]:
        resolved = self.resolve_user(identifier, email, alias)
        return resolved.entity if resolved is not None else None
