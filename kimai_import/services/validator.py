"""Constraint checks for entities before they are saved."""

import re
from datetime import timedelta
from typing import Iterable, List

from pydantic import BaseModel

from kimai_import.constants import validation_codes as codes
from kimai_import.models import Activity, Customer, Project, Team, Timesheet, User
from kimai_import.utils.dates import is_valid_timezone

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

MAX_NAME_LENGTH = 150
LONG_RUNNING = timedelta(hours=24)
BUDGET_TYPES = ("month",)


def same_entity(left, right) -> bool:
    if left is right:
        return True
    return left.id is not None and left.id == right.id


class Violation(BaseModel):
    code: str
    field: str
    message: str

    def __str__(self):
        return f"{self.field}: {self.message}" if self.field else self.message


class EntityValidator:
    """Returns all constraint violations of an entity instead of raising."""

    def validate(self, entity, ignore: Iterable[str] = ()) -> List[Violation]:
        if isinstance(entity, Customer):
            violations = self._customer(entity)
        elif isinstance(entity, Project):
            violations = self._project(entity)
        elif isinstance(entity, Activity):
            violations = self._activity(entity)
        elif isinstance(entity, User):
            violations = self._user(entity)
        elif isinstance(entity, Team):
            violations = self._team(entity)
        elif isinstance(entity, Timesheet):
            violations = self._timesheet(entity)
        else:
            raise TypeError(f"Cannot validate {type(entity).__name__}")

        ignored = set(ignore)
        return [violation for violation in violations if violation.code not in ignored]

    def _name(self, violations: List[Violation], value, max_length: int = MAX_NAME_LENGTH, field: str = "name") -> None:
        if value is None or str(value).strip() == "":
            violations.append(Violation(code=codes.NOT_BLANK, field=field, message="This value should not be blank."))
        elif len(value) > max_length:
            violations.append(Violation(
                code=codes.TOO_LONG,
                field=field,
                message=f"This value is too long. It should have {max_length} characters or less.",
            ))

    def _max_length(self, violations: List[Violation], value, max_length: int, field: str) -> None:
        if value is not None and len(value) > max_length:
            violations.append(Violation(
                code=codes.TOO_LONG,
                field=field,
                message=f"This value is too long. It should have {max_length} characters or less.",
            ))

    def _color(self, violations: List[Violation], value) -> None:
        if value and not _COLOR.match(value):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="color", message="The color code is invalid."))

    def _budget_type(self, violations: List[Violation], value) -> None:
        if value and value not in BUDGET_TYPES:
            violations.append(Violation(code=codes.INVALID_CHOICE, field="budget_type", message="The budget type is invalid."))

    def _customer(self, customer: Customer) -> List[Violation]:
        violations = []
        self._name(violations, customer.name)
        self._max_length(violations, customer.number, 50, "number")
        if not customer.country or not re.match(r"^[A-Za-z]{2}$", customer.country):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="country", message="This value is not a valid country."))
        if not customer.currency or not re.match(r"^[A-Za-z]{3}$", customer.currency):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="currency", message="This value is not a valid currency."))
        if not is_valid_timezone(customer.timezone):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="timezone", message="This value is not a valid timezone."))
        if customer.email and not _EMAIL.match(customer.email):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="email", message="This value is not a valid email address."))
        self._color(violations, customer.color)
        self._budget_type(violations, customer.budget_type)
        return violations

    def _project(self, project: Project) -> List[Violation]:
        violations = []
        self._name(violations, project.name)
        if project.customer is None:
            violations.append(Violation(code=codes.NOT_BLANK, field="customer", message="This value should not be blank."))
        self._max_length(violations, project.order_number, 50, "order_number")
        if project.start is not None and project.end is not None and project.end < project.start:
            violations.append(Violation(code=codes.INVALID_FORMAT, field="end", message="End date must not be earlier then start date."))
        self._color(violations, project.color)
        self._budget_type(violations, project.budget_type)
        return violations

    def _activity(self, activity: Activity) -> List[Violation]:
        violations = []
        self._name(violations, activity.name)
        self._color(violations, activity.color)
        self._budget_type(violations, activity.budget_type)
        return violations

    def _user(self, user: User) -> List[Violation]:
        violations = []
        self._name(violations, user.username, 180, "username")
        if not user.email or not _EMAIL.match(user.email):
            violations.append(Violation(code=codes.INVALID_FORMAT, field="email", message="This value is not a valid email address."))
        self._max_length(violations, user.alias, 60, "alias")
        self._max_length(violations, user.account_number, 30, "account_number")
        return violations

    def _team(self, team: Team) -> List[Violation]:
        violations = []
        self._name(violations, team.name, 100)
        if not team.has_users():
            violations.append(Violation(code=codes.NOT_BLANK, field="members", message="A team needs at least one member."))
        elif not team.has_teamleads():
            violations.append(Violation(code=codes.NOT_BLANK, field="members", message="At least one team leader must be assigned to the team."))
        return violations

    def _timesheet(self, timesheet: Timesheet) -> List[Violation]:
        violations = []
        for field in ("user", "project", "activity"):
            if getattr(timesheet, field) is None:
                violations.append(Violation(code=codes.NOT_BLANK, field=field, message="This value should not be blank."))

        if timesheet.begin is None:
            violations.append(Violation(code=codes.NOT_BLANK, field="begin", message="This value should not be blank."))
        elif timesheet.end is not None:
            if timesheet.end < timesheet.begin:
                violations.append(Violation(
                    code=codes.TIMESHEET_END_BEFORE_BEGIN, field="end", message="End date must not be earlier then start date.",
                ))
            elif timesheet.end - timesheet.begin > LONG_RUNNING:
                violations.append(Violation(
                    code=codes.TIMESHEET_LONG_RUNNING, field="duration", message="Maximum duration of 24 hours exceeded.",
                ))

        if timesheet.duration is not None and timesheet.duration < 0:
            violations.append(Violation(
                code=codes.TIMESHEET_NEGATIVE_DURATION, field="duration", message="Duration cannot be negative.",
            ))
        elif timesheet.end is not None and not timesheet.duration:
            violations.append(Violation(
                code=codes.TIMESHEET_ZERO_DURATION, field="duration", message="Duration cannot be zero.",
            ))

        activity = timesheet.activity
        project = timesheet.project
        if activity is not None and project is not None and activity.project is not None and not same_entity(activity.project, project):
            violations.append(Violation(
                code=codes.TIMESHEET_ACTIVITY_MISMATCH, field="activity", message="Project mismatch: chosen activity belongs to another project.",
            ))

        if activity is not None and activity.visible is False:
            violations.append(Violation(
                code=codes.TIMESHEET_ACTIVITY_DEACTIVATED, field="activity", message="Cannot start a disabled activity.",
            ))
        if project is not None and project.visible is False:
            violations.append(Violation(
                code=codes.TIMESHEET_PROJECT_DEACTIVATED, field="project", message="Cannot start a disabled project.",
            ))
        if project is not None and project.customer is not None and project.customer.visible is False:
            violations.append(Violation(
                code=codes.TIMESHEET_CUSTOMER_DEACTIVATED, field="customer", message="Cannot start a disabled customer.",
            ))
        return violations
