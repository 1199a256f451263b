import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is only meant for local development. Set DATABASE_URL to a
    PostgreSQL connection string anywhere the calendar must survive restarts.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "workout_calendar.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}. Set DATABASE_URL to use PostgreSQL.")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    auth_secret_key: str = Field(default="", validation_alias="AUTH_SECRET_KEY")
    auth_algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    auth_token_expire_days: int = Field(default=30, validation_alias="AUTH_TOKEN_EXPIRE_DAYS")
    recurrence_generation_cap: int = Field(
        default=12,
        validation_alias="RECURRENCE_GENERATION_CAP",
        description="Maximum occurrences materialized per generator invocation",
    )
    recurrence_horizon_days: int = Field(
        default=90,
        validation_alias="RECURRENCE_HORIZON_DAYS",
        description="How far ahead open-ended rules are expanded",
    )
    upcoming_workouts_limit: int = Field(default=5, validation_alias="UPCOMING_WORKOUTS_LIMIT")
    stats_default_window_days: int = Field(default=30, validation_alias="STATS_DEFAULT_WINDOW_DAYS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(sorted(valid_levels))}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("auth_secret_key")
    @classmethod
    def validate_auth_secret_key(cls, value: str) -> str:
        """Warn when tokens cannot be verified.

        Empty values are allowed for local development and tests that override
        the auth dependency.
        """
        if not value:
            logger.warning("AUTH_SECRET_KEY is not set. Bearer tokens will be rejected.")
        return value

    @field_validator("recurrence_generation_cap", "recurrence_horizon_days", "upcoming_workouts_limit", "stats_default_window_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value


settings = Settings()
