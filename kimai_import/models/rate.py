"""Project and activity rates, created by the Kimai v1 database import."""

from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from kimai_import.database import Base


class ProjectRate(Base):
    __tablename__ = "project_rates"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    rate = Column(Float, nullable=False)
    internal_rate = Column(Float, nullable=True)
    is_fixed = Column(Boolean, default=False, nullable=False)

    project = relationship("Project")
    user = relationship("User")

    def __repr__(self):
        return f"<ProjectRate(project_id={self.project_id}, user_id={self.user_id}, rate={self.rate}, fixed={self.is_fixed})>"


class ActivityRate(Base):
    __tablename__ = "activity_rates"

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    rate = Column(Float, nullable=False)
    internal_rate = Column(Float, nullable=True)
    is_fixed = Column(Boolean, default=False, nullable=False)

    activity = relationship("Activity")
    user = relationship("User")

    def __repr__(self):
        return f"<ActivityRate(activity_id={self.activity_id}, user_id={self.user_id}, rate={self.rate}, fixed={self.is_fixed})>"
