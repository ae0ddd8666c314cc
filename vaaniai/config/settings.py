"""
Application settings loaded from environment variables.

This module uses Pydantic Settings v2 for type validation and environment variable loading.
All settings are loaded from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_COMPLETION_TIMEOUT_SECONDS,
    DEFAULT_MODEL,
    DEFAULT_VISION_MODEL,
    FREE_PLAN_MESSAGE_LIMIT,
    GUEST_DEFAULT_TIMEZONE,
    GUEST_MESSAGE_LIMIT,
    OPENROUTER_BASE_URL,
)

# Load environment variables from .env file in the project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic Settings v2 for type validation and environment variable loading.
    All fields can be overridden via environment variables.
    """

    # Database
    database_url: str = "sqlite:///./data/vaaniai.db"

    # Security
    secret_key: str

    # Upstream completion API
    openrouter_base_url: str = OPENROUTER_BASE_URL
    # Optional: seeds the admin API config on first startup when the table is empty.
    # After that the key is managed from the admin back-office only.
    openrouter_api_key: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    default_vision_model: str = DEFAULT_VISION_MODEL
    completion_timeout_seconds: float = DEFAULT_COMPLETION_TIMEOUT_SECONDS

    # Quotas
    free_plan_message_limit: int = FREE_PLAN_MESSAGE_LIMIT
    guest_message_limit: int = GUEST_MESSAGE_LIMIT
    guest_counter_mode: Literal["daily", "lifetime"] = "daily"
    guest_default_timezone: str = GUEST_DEFAULT_TIMEZONE

    # Admin reporting
    active_users_window_days: int = 30

    # Frontend
    frontend_url: str = "http://localhost:5173"

    # Environment
    environment: str = "development"

    # Error monitoring (optional)
    sentry_dsn: Optional[str] = None

    @field_validator("openrouter_api_key", "sentry_dsn", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        """Treat empty environment values as unset."""
        if v == "":
            return None
        return v

    # Pydantic Settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Create settings instance
settings = Settings()
