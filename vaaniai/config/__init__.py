"""
Backend configuration module.

This module provides a centralized configuration system with:
- Settings: Environment-based configuration using Pydantic Settings v2
- Constants: Plans, quotas, notices and upstream defaults
- Validation: Configuration validation functions
- Helper functions: Utility functions for accessing configuration

Example:
    from vaaniai.config import settings, PLAN_CONFIG, get_plan_limit
"""

import os

# Import constants
from .constants import (
    PLAN_CONFIG,
    PLAN_PRICING,
    PLANS,
    UNLIMITED_MESSAGES,
    SESSION_PLACEHOLDER_TITLE,
)

# Import settings
from .settings import Settings, settings

# Import validation
from .validation import log_configuration, mask_secret, validate_config

# Import helper functions
from .helpers import get_plan_limit, get_plan_price, is_unlimited

__all__ = [
    # Settings
    "settings",
    "Settings",
    # Constants
    "PLAN_CONFIG",
    "PLAN_PRICING",
    "PLANS",
    "UNLIMITED_MESSAGES",
    "SESSION_PLACEHOLDER_TITLE",
    # Validation
    "validate_config",
    "log_configuration",
    "mask_secret",
    # Helper functions
    "get_plan_limit",
    "get_plan_price",
    "is_unlimited",
]

# Run validation on import (optional - can be disabled for testing)
if os.getenv("SKIP_CONFIG_VALIDATION", "false").lower() != "true":
    try:
        validate_config()
    except ValueError as e:
        # Only raise in production
        if settings.environment == "production":
            raise
        import warnings

        warnings.warn(f"Configuration validation warning: {e}", UserWarning)
