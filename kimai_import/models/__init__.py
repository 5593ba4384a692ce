"""Database models."""

from kimai_import.models.customer import Customer, CustomerMeta
from kimai_import.models.project import Project, ProjectMeta
from kimai_import.models.activity import Activity, ActivityMeta
from kimai_import.models.user import User, UserPreference
from kimai_import.models.tag import Tag
from kimai_import.models.timesheet import Timesheet, TimesheetMeta
from kimai_import.models.team import Team, TeamMember
from kimai_import.models.rate import ProjectRate, ActivityRate

__all__ = [
    "Customer",
    "CustomerMeta",
    "Project",
    "ProjectMeta",
    "Activity",
    "ActivityMeta",
    "User",
    "UserPreference",
    "Tag",
    "Timesheet",
    "TimesheetMeta",
    "Team",
    "TeamMember",
    "ProjectRate",
    "ActivityRate",
]
