"""Project model for the destination store."""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from kimai_import.database import Base
from kimai_import.models.meta import HasMetaFields, MetaFieldColumns


class ProjectMeta(MetaFieldColumns, Base):
    __tablename__ = "project_meta"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)


class Project(HasMetaFields, Base):
    """A project always belongs to exactly one customer."""

    __tablename__ = "projects"

    meta_model = ProjectMeta

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    name = Column(String(150), nullable=False)
    order_number = Column(String(50), nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=True)
    start = Column(DateTime(timezone=True), nullable=True)
    end = Column(DateTime(timezone=True), nullable=True)
    comment = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    visible = Column(Boolean, default=True, nullable=False)
    billable = Column(Boolean, default=True, nullable=False)
    global_activities = Column(Boolean, default=True, nullable=False)
    budget = Column(Float, default=0.0, nullable=False)
    time_budget = Column(Integer, default=0, nullable=False)
    budget_type = Column(String(10), nullable=True)

    customer = relationship("Customer", lazy="joined")
    meta_fields = relationship("ProjectMeta", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (
        Index('idx_projects_customer_name', 'customer_id', 'name'),
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', customer_id={self.customer_id})>"
