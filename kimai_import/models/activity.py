"""Activity model for the destination store."""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from kimai_import.database import Base
from kimai_import.models.meta import HasMetaFields, MetaFieldColumns


class ActivityMeta(MetaFieldColumns, Base):
    __tablename__ = "activity_meta"

    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)


class Activity(HasMetaFields, Base):
    """An activity without a project is a global activity."""

    __tablename__ = "activities"

    meta_model = ActivityMeta

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    name = Column(String(150), nullable=False)
    comment = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    visible = Column(Boolean, default=True, nullable=False)
    billable = Column(Boolean, default=True, nullable=False)
    budget = Column(Float, default=0.0, nullable=False)
    time_budget = Column(Integer, default=0, nullable=False)
    budget_type = Column(String(10), nullable=True)

    project = relationship("Project", lazy="joined")
    meta_fields = relationship("ActivityMeta", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (
        Index('idx_activities_project_name', 'project_id', 'name'),
    )

    @property
    def is_global(self) -> bool:
        return self.project is None

    def __repr__(self):
        return f"<Activity(id={self.id}, name='{self.name}', project_id={self.project_id})>"
