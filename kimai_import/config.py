"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str = "sqlite:///./kimai.db"

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # Import limits
    max_rows: int = 1000
    legacy_batch_size: int = 1000

    # Defaults for created customers and users
    default_country: str = "DE"
    default_currency: str = "EUR"
    default_timezone: str = "UTC"
    default_language: str = "en"

    # Customer used by vendor formats that have no customer concept
    placeholder_customer: str = "Importer"


# Global settings instance
settings = Settings()
