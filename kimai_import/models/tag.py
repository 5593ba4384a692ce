"""Tag model, referenced by name from timesheet records."""

from sqlalchemy import Column, Integer, String, Boolean
from kimai_import.database import Base

MAX_TAG_LENGTH = 100


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(MAX_TAG_LENGTH), unique=True, nullable=False, index=True)
    color = Column(String(7), nullable=True)
    visible = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"
