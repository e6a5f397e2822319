import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ WARNING: SQLite is for local development only. Set DATABASE_URL to a
    PostgreSQL connection string in production.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "cogload.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    llm_provider: str = Field(default="openai", validation_alias="LLM_PROVIDER")
    llm_model: str = Field(default="gpt-4o-mini", validation_alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="LLM_TIMEOUT_SECONDS",
        description="Upper bound for a single text-generation call",
    )
    tip_expiry_days: int = Field(default=7, gt=0, validation_alias="TIP_EXPIRY_DAYS")
    daily_job_hour: int = Field(default=6, ge=0, le=23, validation_alias="DAILY_JOB_HOUR")
    daily_job_minute: int = Field(default=0, ge=0, le=59, validation_alias="DAILY_JOB_MINUTE")
    daily_job_timezone: str = Field(default="Asia/Kolkata", validation_alias="DAILY_JOB_TIMEZONE")
    scheduler_enabled: bool = Field(
        default=True,
        validation_alias="SCHEDULER_ENABLED",
        description="Start the daily load scheduler with the API process",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("daily_job_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Fall back to UTC when the configured timezone is unknown."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown DAILY_JOB_TIMEZONE '{value}'. Defaulting to UTC.")
            return "UTC"
        return value

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_key(cls, value: str) -> str:
        if not value:
            logger.warning("OPENAI_API_KEY is not set. AI tip generation will fail until it is configured.")
        return value


settings = Settings()
