"""Team model, only created by the Kimai v1 database import."""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Table
from sqlalchemy.orm import relationship
from kimai_import.database import Base

team_customers = Table(
    "team_customers",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("customer_id", Integer, ForeignKey("customers.id", ondelete="CASCADE"), primary_key=True),
)

team_projects = Table(
    "team_projects",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
)

team_activities = Table(
    "team_activities",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("activity_id", Integer, ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True),
)


class TeamMember(Base):
    __tablename__ = "team_members"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    teamlead = Column(Boolean, default=False, nullable=False)

    user = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id}, teamlead={self.teamlead})>"


class Team(Base):
    """Group of users sharing access to customers, projects and activities."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    color = Column(String(7), nullable=True)

    members = relationship("TeamMember", cascade="all, delete-orphan", lazy="selectin")
    customers = relationship("Customer", secondary=team_customers, lazy="selectin")
    projects = relationship("Project", secondary=team_projects, lazy="selectin")
    activities = relationship("Activity", secondary=team_activities, lazy="selectin")

    def _member_for(self, user):
        for member in self.members:
            if member.user is user:
                return member
        return None

    def add_user(self, user) -> None:
        if self._member_for(user) is None:
            self.members.append(TeamMember(user=user, teamlead=False))

    def add_teamlead(self, user) -> None:
        member = self._member_for(user)
        if member is None:
            self.members.append(TeamMember(user=user, teamlead=True))
        else:
            member.teamlead = True

    def has_users(self) -> bool:
        return len(self.members) > 0

    def has_teamleads(self) -> bool:
        return any(member.teamlead for member in self.members)

    @property
    def users(self):
        return [member.user for member in self.members]

    def add_customer(self, customer) -> None:
        if customer is not None and customer not in self.customers:
            self.customers.append(customer)

    def add_project(self, project) -> None:
        if project is not None and project not in self.projects:
            self.projects.append(project)

    def add_activity(self, activity) -> None:
        if activity is not None and activity not in self.activities:
            self.activities.append(activity)

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"
