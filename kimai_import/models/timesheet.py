"""Timesheet model, the target of every timesheet import."""

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, DateTime, ForeignKey, Table, Index
from sqlalchemy.orm import relationship
from kimai_import.database import Base
from kimai_import.models.meta import HasMetaFields, MetaFieldColumns

timesheet_tags = Table(
    "timesheet_tags",
    Base.metadata,
    Column("timesheet_id", Integer, ForeignKey("timesheets.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class TimesheetMeta(MetaFieldColumns, Base):
    __tablename__ = "timesheet_meta"

    timesheet_id = Column(Integer, ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False, index=True)


class Timesheet(HasMetaFields, Base):
    """A single time record; begin and end are stored in UTC."""

    __tablename__ = "timesheets"

    meta_model = TimesheetMeta

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False)

    begin = Column(DateTime(timezone=True), nullable=False)
    end = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, default=0, nullable=False)
    break_duration = Column(Integer, default=0, nullable=False)
    timezone = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)

    rate = Column(Float, default=0.0, nullable=False)
    hourly_rate = Column(Float, nullable=True)
    fixed_rate = Column(Float, nullable=True)
    internal_rate = Column(Float, nullable=True)

    billable = Column(Boolean, default=True, nullable=False)
    exported = Column(Boolean, default=False, nullable=False)

    user = relationship("User", lazy="joined")
    project = relationship("Project", lazy="joined")
    activity = relationship("Activity", lazy="joined")
    tags = relationship("Tag", secondary=timesheet_tags, lazy="selectin")
    meta_fields = relationship("TimesheetMeta", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (
        Index('idx_timesheets_user_begin', 'user_id', 'begin'),
    )

    def __repr__(self):
        return f"<Timesheet(id={self.id}, user_id={self.user_id}, begin='{self.begin}', duration={self.duration})>"
