"""Configuration management for the booking engine."""

from datetime import time
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BOOKING_",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    database_url: str = Field(
        default="",
        description="SQLAlchemy async DSN; empty keeps appointments in memory",
    )

    # Scheduling policy
    slot_granularity_minutes: int = Field(
        default=15,
        gt=0,
        description="Spacing between candidate start times in availability results",
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long a booking waits for the provider lock before failing",
    )
    max_recurrence_occurrences: int = Field(
        default=52,
        gt=0,
        description="Cap applied to indefinite recurrences",
    )
    max_recurrence_end_after: int = Field(
        default=520,
        gt=0,
        description="Largest finite occurrence count a recurring booking may request",
    )

    # Working hours (used when no per-provider schedule is configured)
    default_open_time: time = Field(default=time(9, 0))
    default_close_time: time = Field(default=time(17, 0))
    working_days: list[int] = Field(
        default=[0, 1, 2, 3, 4],
        description="Weekdays (0=Mon..6=Sun) on which providers accept bookings",
    )

    # Domain events
    event_log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for the JSON Lines domain event log; disabled when unset",
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Debug
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def uses_database(self) -> bool:
        """Check if a SQL database is configured."""
        return bool(self.database_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
