"""User model for timesheet owners."""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from kimai_import.database import Base

ROLE_USER = "ROLE_USER"
ROLE_SUPER_ADMIN = "ROLE_SUPER_ADMIN"

PREFERENCE_TIMEZONE = "timezone"
PREFERENCE_LANGUAGE = "language"
PREFERENCE_HOURLY_RATE = "hourly_rate"


class UserPreference(Base):
    """Named per-user setting (timezone, language, hourly rate, import markers)."""

    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    value = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<UserPreference(name='{self.name}', value='{self.value}')>"


class User(Base):
    """User owning timesheet records."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(180), unique=True, nullable=False, index=True)
    email = Column(String(180), unique=True, nullable=False)
    alias = Column(String(60), nullable=True)
    account_number = Column(String(30), nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)
    roles = Column(JSON, nullable=False, default=list)
    password = Column(String(255), nullable=False)
    requires_password_reset = Column(Boolean, default=False, nullable=False)

    preferences = relationship("UserPreference", cascade="all, delete-orphan", lazy="selectin")

    def get_preference_value(self, name: str, default=None):
        for preference in self.preferences:
            if preference.name == name:
                return preference.value
        return default

    def set_preference_value(self, name: str, value) -> None:
        value = None if value is None else str(value)
        for preference in self.preferences:
            if preference.name == name:
                preference.value = value
                return
        self.preferences.append(UserPreference(name=name, value=value))

    @property
    def timezone(self):
        return self.get_preference_value(PREFERENCE_TIMEZONE)

    @property
    def display_name(self) -> str:
        return self.alias or self.username

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
