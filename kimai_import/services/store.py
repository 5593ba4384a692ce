"""Lookup and save operations against the destination store."""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kimai_import.models import Activity, Customer, Project, Tag, Team, User

log = logging.getLogger(__name__)


class KimaiStore:
    """
    Thin repository over a SQLAlchemy session.

    Lookups are plain queries; ``save`` and ``commit`` are the only calls that
    write, which keeps dry runs easy to verify.
    """

    def __init__(self, db: Session):
        self.db = db

    # Users

    def find_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        ).scalars().first()

    def find_user_by_username(self, username: str) -> Optional[User]:
        if not username:
            return None
        return self.db.execute(select(User).where(User.username == username)).scalars().first()

    def find_user_by_alias(self, alias: str) -> Optional[User]:
        if not alias:
            return None
        return self.db.execute(select(User).where(User.alias == alias)).scalars().first()

    def find_users(self) -> List[User]:
        return list(self.db.execute(select(User)).scalars().all())

    # Customers, projects, activities

    def find_customer_by_name(self, name: str) -> Optional[Customer]:
        return self.db.execute(
            select(Customer).where(Customer.name == name).order_by(Customer.id)
        ).scalars().first()

    def find_project(self, name: str, customer: Customer) -> Optional[Project]:
        if customer is None or customer.id is None:
            return None
        return self.db.execute(
            select(Project)
            .where(Project.name == name, Project.customer_id == customer.id)
            .order_by(Project.id)
        ).scalars().first()

    def find_activity(self, name: str, project: Optional[Project] = None) -> Optional[Activity]:
        query = select(Activity).where(Activity.name == name)
        if project is None:
            query = query.where(Activity.project_id.is_(None))
        elif project.id is None:
            return None
        else:
            query = query.where(Activity.project_id == project.id)
        return self.db.execute(query.order_by(Activity.id)).scalars().first()

    def find_projects(self) -> List[Project]:
        return list(self.db.execute(select(Project)).scalars().all())

    def find_activities(self) -> List[Activity]:
        return list(self.db.execute(select(Activity)).scalars().all())

    def find_customers(self) -> List[Customer]:
        return list(self.db.execute(select(Customer)).scalars().all())

    def find_teams(self) -> List[Team]:
        return list(self.db.execute(select(Team)).scalars().all())

    # Tags

    def find_tag_by_name(self, name: str) -> Optional[Tag]:
        return self.db.execute(select(Tag).where(Tag.name == name)).scalars().first()

    # Writes

    def save(self, entity) -> None:
        """Persist ``entity`` immediately so later lookups find it."""
        self.db.add(entity)
        self.db.commit()
        log.trace(f"Saved {entity!r}")

    def add(self, entity) -> None:
        """Stage ``entity`` for the next ``commit``."""
        self.db.add(entity)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        """Discards everything not committed yet, including staged changes of loaded entities."""
        self.db.rollback()

    def clear(self) -> None:
        """Detach all loaded entities to free memory during long imports."""
        self.db.expunge_all()
