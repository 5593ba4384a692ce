from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class ImportOptions(BaseModel):
    """Options for a single file import."""
    delimiter: str = Field(";", description="CSV delimiter, one of ';', ',' or a tab")
    dry_run: bool = Field(True, description="Validate and resolve everything, but persist nothing")
    global_activities: bool = Field(True, description="Create missing activities as global instead of project activities")
    importer: Optional[str] = Field(None, description="Name of the format adapter, auto detected when empty")


class LegacyImportOptions(BaseModel):
    """Options for importing a Kimai v1 database."""
    url: str = Field(..., description="SQLAlchemy URL of the Kimai v1 database")
    password: str = Field(..., description="Initial password for all imported users")
    country: str = Field("DE", description="Default country for customers")
    currency: str = Field("EUR", description="Default currency for customers")
    prefix: List[str] = Field(default_factory=lambda: ["kimai_"], description="Table prefixes, one per Kimai v1 instance")
    timezone: str = Field("UTC", description="Default timezone for users and customers")
    language: str = Field("en", description="Default language for users")
    global_activities: bool = Field(False, description="Import all activities as global activities")
    fix_utf8: bool = False
    fix_email: Optional[str] = Field(None, description="Domain for generated email addresses of users without one")
    fix_timesheet: bool = False
    skip_error_rates: bool = False
    merge_customer: bool = False
    merge_project: bool = False
    merge_activity: bool = False
    merge_user: bool = False
    merge_team: bool = False
    instance_team: bool = Field(False, description="Create one team per instance containing all users")
    alias_as_account_number: bool = False
    meta_comment: Optional[str] = Field(None, description="Meta field name for timesheet comments")
    meta_location: Optional[str] = Field(None, description="Meta field name for timesheet locations")
    meta_tracking_number: Optional[str] = Field(None, description="Meta field name for timesheet tracking numbers")
    skip_teams: bool = False
    skip_team_customers: bool = False
    skip_team_projects: bool = False
    skip_team_activities: bool = False
    check_already_imported: bool = False
    dry_run: bool = False

    @field_validator("password")
    @classmethod
    def password_min_length(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        return value

    @field_validator("country")
    @classmethod
    def country_code(cls, value: str) -> str:
        if len(value) != 2:
            raise ValueError("Country code must be exactly 2 characters")
        return value.upper()

    @field_validator("currency")
    @classmethod
    def currency_code(cls, value: str) -> str:
        if len(value) != 3:
            raise ValueError("Currency code must be exactly 3 characters")
        return value.upper()

    @field_validator("prefix")
    @classmethod
    def prefixes_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one table prefix is required")
        return value
