"""
Environment configuration for the school management core.

Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    # "text" or "json"
    LOG_FORMAT: str = Field(default="text")
    LOG_FILE: Optional[str] = Field(default=None)
    ENABLE_STRUCTURED_LOGGING: bool = Field(default=False)

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only plain text and JSON output are supported."""
        v = v.lower().strip()
        if v not in {"text", "json"}:
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v


class StoreSettings(BaseSettings):
    """Document store (student aggregates and notifications) configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    STORE_BASE_URL: Optional[str] = Field(default=None)
    STORE_API_KEY: SecretStr = Field(default=SecretStr(""))
    STUDENT_COLLECTION: str = Field(default="coll-student")
    NOTIFICATION_COLLECTION: str = Field(default="coll-notify")
    STORE_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    @field_validator("STORE_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the base URL so paths can be appended."""
        if v:
            return v.rstrip("/")
        return v


class CalendarSettings(BaseSettings):
    """Calendar dataset configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # When unset the dataset is generated from the conversion tables.
    CALENDAR_DATASET_URL: Optional[str] = Field(default=None)
    DATASET_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    # Years on each side of the current BS year for generated datasets.
    CALENDAR_DATASET_YEARS: int = Field(default=1, ge=0, le=10)
    LOCAL_TIMEZONE: str = Field(default="Asia/Kathmandu")


class LeaveSettings(BaseSettings):
    """Leave workflow and notification configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    NOTIFICATION_VALIDITY_DAYS: int = Field(default=1, ge=1)
    NOTIFICATION_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    LIFECYCLE_MAX_CONFLICT_RETRIES: int = Field(default=3, ge=0)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    PROJECT_NAME: str = Field(default="SchoolHub Core")
    PROJECT_VERSION: str = Field(default="1.0.0")

    ENVIRONMENT: Environment = Field(default=Environment.DEVELOPMENT)
    DEBUG: bool = Field(default=False)

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)
    leave: LeaveSettings = Field(default_factory=LeaveSettings)

    @field_validator("ENVIRONMENT", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Accept environment names case-insensitively."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Warn about settings that should not reach production."""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if self.DEBUG:
                logging.warning("DEBUG is enabled in production")
            if not self.store.STORE_BASE_URL:
                logging.warning("STORE_BASE_URL is not configured; in-memory store will be used")
        return self

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.ENVIRONMENT == Environment.TESTING


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    The @lru_cache decorator ensures this function is only called once,
    and the same Settings instance is returned on subsequent calls.
    """
    return Settings()


def get_test_settings() -> Settings:
    """Get settings for testing (not cached)."""
    return Settings(
        ENVIRONMENT=Environment.TESTING,
        DEBUG=True,
        store=StoreSettings(STORE_BASE_URL=None),
        calendar=CalendarSettings(CALENDAR_DATASET_URL=None),
    )
