"""
Configuration validation functions.

This module provides validation functions to ensure configuration consistency
and required settings are present on startup.
"""

import logging
import os

import pytz

from .constants import PLAN_CONFIG, UNLIMITED_MESSAGES
from .settings import settings

# Setup logger
logger = logging.getLogger(__name__)


def validate_config() -> None:
    """
    Validate configuration on startup.

    Raises ValueError if required configuration is missing or invalid.

    This function checks:
    - Required environment variables are set
    - Quota values are within expected ranges
    - Database URL format is valid
    - Guest timezone is a known IANA zone

    Can be skipped by setting SKIP_CONFIG_VALIDATION=true environment variable.
    """
    if os.getenv("SKIP_CONFIG_VALIDATION", "false").lower() == "true":
        logger.info("Skipping configuration validation (SKIP_CONFIG_VALIDATION=true)")
        return

    errors: list[str] = []
    warnings: list[str] = []

    # JWT signing
    if not settings.secret_key:
        errors.append("SECRET_KEY is required to sign access and refresh tokens")
    elif len(settings.secret_key) < 32:
        warnings.append(f"SECRET_KEY has {len(settings.secret_key)} characters; use at least 32 for HS256 tokens")

    if not settings.openrouter_api_key:
        warnings.append(
            "OPENROUTER_API_KEY is not set. Chat replies stay disabled until an admin "
            "saves an API key from the admin panel."
        )

    supported_schemes = ("sqlite:///", "postgresql://", "postgresql+psycopg2://", "postgresql+psycopg://")
    if not settings.database_url:
        errors.append("DATABASE_URL is empty")
    elif not settings.database_url.startswith(supported_schemes):
        warnings.append(f"DATABASE_URL uses an untested scheme: {settings.database_url.split(':', 1)[0]}")

    if settings.free_plan_message_limit < 1:
        errors.append("FREE_PLAN_MESSAGE_LIMIT must be at least 1")
    elif settings.free_plan_message_limit >= UNLIMITED_MESSAGES:
        errors.append(f"FREE_PLAN_MESSAGE_LIMIT must be below the unlimited sentinel ({UNLIMITED_MESSAGES})")

    if settings.guest_message_limit < 0:
        errors.append("GUEST_MESSAGE_LIMIT cannot be negative")

    if settings.guest_default_timezone not in pytz.all_timezones_set:
        errors.append(f"GUEST_DEFAULT_TIMEZONE is not a known timezone: {settings.guest_default_timezone}")

    for plan, config in PLAN_CONFIG.items():
        if "messages_limit" not in config:
            errors.append(f"PLAN_CONFIG['{plan}'] missing required field: messages_limit")

    if settings.completion_timeout_seconds <= 0:
        errors.append("COMPLETION_TIMEOUT_SECONDS must be positive")
    elif settings.completion_timeout_seconds > 120:
        warnings.append(
            f"COMPLETION_TIMEOUT_SECONDS is very high ({settings.completion_timeout_seconds}s). "
            "Chat requests may hang for a long time."
        )

    if settings.environment not in ("development", "staging", "production", "test"):
        warnings.append(f"ENVIRONMENT={settings.environment!r} is unusual; CORS and log level treat it as production")

    if not settings.frontend_url.startswith(("http://", "https://")):
        warnings.append(f"FRONTEND_URL is not an http(s) URL: {settings.frontend_url}")

    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)

    logger.debug("Configuration validation passed")


def mask_secret(value: str | None, show_chars: int = 4) -> str:
    """
    Mask a secret value, showing only the first and last few characters.

    Args:
        value: The secret value to mask
        show_chars: Number of characters to show at the start and end

    Returns:
        Masked string (e.g., "sk-o...9f2c")
    """
    if not value or len(value) <= show_chars * 2:
        return "***" if value else "(not set)"

    return f"{value[:show_chars]}...{value[-show_chars:]}"


def log_configuration() -> None:
    """Log essential configuration on startup with secrets masked."""
    db_display = settings.database_url
    if "://" in db_display and "@" in db_display:
        scheme, rest = db_display.split("://", 1)
        auth_part, host_part = rest.split("@", 1)
        if ":" in auth_part:
            user, _ = auth_part.split(":", 1)
            db_display = f"{scheme}://{user}:***@{host_part}"

    logger.info(
        f"Config: env={settings.environment} | "
        f"db={db_display} | "
        f"openrouter_seed_key={mask_secret(settings.openrouter_api_key)} | "
        f"free_limit={settings.free_plan_message_limit} | "
        f"guest_limit={settings.guest_message_limit}/{settings.guest_counter_mode} | "
        f"timeout={settings.completion_timeout_seconds}s"
    )
