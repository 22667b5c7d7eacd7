"""
Music Store Analytics
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
(and an optional ``.env`` file), validated and cached for the process.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Source Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="DB_")

    url: str = Field(default="sqlite:///data/music_store.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL queries")
    isolation_level: str = Field(
        default="REPEATABLE READ",
        description="Isolation level used for the snapshot read transaction",
    )


class ReportingSettings(BaseSettings):
    """Reporting Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORTING_")

    default_genre: str = Field(default="Rock", description="Genre used by genre-keyed reports")
    genre_case_sensitive: bool = Field(default=False, description="Compare genre names case-sensitively")
    top_invoices: int = Field(default=3, ge=1, description="Default n for top invoice totals")
    top_artists: int = Field(default=10, ge=1, description="Default n for top artists by genre")
    total_tolerance: float = Field(
        default=0.005,
        ge=0,
        description="Allowed difference between an invoice total and the sum of its lines",
    )
    max_workers: int = Field(default=4, ge=1, description="Reports run concurrently")
    csv_dir: Optional[str] = Field(default=None, description="Directory of CSV exports to load instead of the database")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or console")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="music-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    version: str = Field(default="1.0.0", description="Application version")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    reporting: ReportingSettings = Field(default_factory=ReportingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
