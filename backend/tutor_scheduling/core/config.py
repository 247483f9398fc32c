# backend/tutor_scheduling/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    log_level: str = Field(default="INFO", description="Root log level for the service")

    database_url: str = Field(
        default="sqlite:///./tutor_scheduling.db",
        description="SQLAlchemy URL for the scheduling database",
    )
    database_echo: bool = False

    # Slots are stored as local tutor wall-clock hours; this zone turns them into instants
    tutor_timezone: str = Field(
        default="Europe/Copenhagen",
        description="IANA timezone in which tutor slot hours are expressed",
    )

    # Booking lifecycle
    pending_expiry_minutes: int = Field(
        default=15,
        ge=1,
        description="Minutes a PENDING booking may wait for confirmation before it expires",
    )
    compensation_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts for releasing a claimed slot after a failed booking write",
    )
    compensation_base_delay_seconds: float = Field(
        default=0.05,
        ge=0,
        description="Base delay for exponential backoff between compensation attempts",
    )

    # Audit trail
    audit_enabled: bool = Field(default=True, description="Record slot changes in the audit log")
    audit_history_default_days: int = Field(default=30, ge=1)
    audit_writer_workers: int = Field(
        default=1, ge=1, description="Threads writing audit entries off the request path"
    )

    # Background jobs
    celery_broker_url: str = Field(
        default="redis://localhost:6379/0",
        description="Broker for reconciliation and expiry jobs",
    )
    reconciliation_interval_seconds: int = Field(default=60, ge=5)
    reconciliation_grace_seconds: int = Field(
        default=120,
        ge=0,
        description="Minimum age of an occupied slot before reconciliation may free it",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("tutor_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        return str(value).strip().upper() or "INFO"


settings = Settings()
