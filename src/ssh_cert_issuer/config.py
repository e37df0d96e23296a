"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables prefixed with SSH_CERT_
  - Fall back to a .env file at the project root
  - Validate types at startup, before any key material is touched

Sub-settings are plain BaseModel classes populated through
env_nested_delimiter="__", so SSH_CERT_CLOCK__FIXED_NOW maps to clock.fixed_now.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (three levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class ClockSettings(BaseModel):
    """
    Clock used for issuance timestamps and renewal decisions.

    Leave fixed_now unset to use the system clock. Setting it pins "now" to
    one instant, which makes issued validity windows reproducible.
    """

    fixed_now: datetime | None = Field(
        default=None,
        description="RFC3339 instant to use as the current time (e.g. 2023-01-01T12:00:00Z)",
    )

    @field_validator("fixed_now")
    @classmethod
    def require_offset(cls, value: datetime | None) -> datetime | None:
        """Reject instants without a UTC offset; they cannot be compared safely."""
        if value is not None and value.tzinfo is None:
            raise ValueError(f"fixed_now must include a UTC offset, got {value.isoformat()!r}")
        return value


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables (SSH_CERT_*)
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="SSH_CERT_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    clock: ClockSettings = Field(default_factory=lambda: ClockSettings())
    log_level: str = Field(default="INFO")
