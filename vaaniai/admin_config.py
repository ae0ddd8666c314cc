"""
Admin configuration store for the upstream completion API.

A single AdminApiConfig row (id=1) holds the API key, model choice and
sampling limits. It is read from the database at the start of every send;
there is no in-process cache, so an admin change applies to the next message.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from .config import mask_secret, settings
from .config.constants import DEFAULT_MAX_TOKENS, DEFAULT_RATE_LIMIT, DEFAULT_TEMPERATURE
from .exceptions import ValidationError
from .models import AdminApiConfig, utcnow

logger = logging.getLogger(__name__)

CONFIG_ROW_ID = 1
MAX_TEMPERATURE = 2.0


def _validated(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill defaults for a full replace and check ranges."""
    selected_model = (data.get("selected_model") or settings.default_model).strip()
    vision_model = (data.get("vision_model") or settings.default_vision_model).strip()
    max_tokens = data.get("max_tokens")
    temperature = data.get("temperature")
    rate_limit = data.get("rate_limit")

    values = {
        "api_key": (data.get("api_key") or "").strip() or None,
        "selected_model": selected_model,
        "vision_model": vision_model,
        "max_tokens": DEFAULT_MAX_TOKENS if max_tokens is None else int(max_tokens),
        "temperature": DEFAULT_TEMPERATURE if temperature is None else float(temperature),
        "rate_limit": DEFAULT_RATE_LIMIT if rate_limit is None else int(rate_limit),
    }

    if not values["selected_model"]:
        raise ValidationError("selected_model cannot be empty")
    if values["max_tokens"] <= 0:
        raise ValidationError("max_tokens must be positive")
    if not 0.0 <= values["temperature"] <= MAX_TEMPERATURE:
        raise ValidationError(f"temperature must be between 0 and {MAX_TEMPERATURE}")
    if values["rate_limit"] < 0:
        raise ValidationError("rate_limit cannot be negative")
    return values


class AdminConfigStore:
    """Read and replace the singleton AdminApiConfig row."""

    def get(self, db: Session) -> Optional[AdminApiConfig]:
        return db.get(AdminApiConfig, CONFIG_ROW_ID, populate_existing=True)

    def set(self, db: Session, data: Mapping[str, Any]) -> AdminApiConfig:
        """
        Replace the configuration (last writer wins).

        Fields left out of data fall back to their defaults rather than
        keeping the previous values.
        """
        values = _validated(data)
        config = self.get(db)
        if config is None:
            config = AdminApiConfig(id=CONFIG_ROW_ID)
            db.add(config)

        for field, value in values.items():
            setattr(config, field, value)
        config.updated_at = utcnow()

        db.commit()
        db.refresh(config)
        logger.info(
            f"[CONFIG] Admin API config updated: model={config.selected_model}, "
            f"key={mask_secret(config.api_key) if config.api_key else 'not set'}"
        )
        return config

    def seed_from_settings(self, db: Session) -> Optional[AdminApiConfig]:
        """
        Create the config row from OPENROUTER_API_KEY when none exists yet.

        Returns the new row, or None when a row already exists or no key is set.
        """
        if self.get(db) is not None:
            return None
        if not settings.openrouter_api_key:
            logger.warning("[CONFIG] No admin API config and OPENROUTER_API_KEY not set; chat replies are disabled")
            return None

        config = self.set(
            db,
            {
                "api_key": settings.openrouter_api_key,
                "selected_model": settings.default_model,
                "vision_model": settings.default_vision_model,
            },
        )
        logger.info("[CONFIG] Seeded admin API config from OPENROUTER_API_KEY")
        return config

    def to_public_dict(self, config: Optional[AdminApiConfig]) -> Dict[str, Any]:
        """Config as shown to admins, with the key masked."""
        if config is None:
            return {
                "configured": False,
                "api_key_masked": None,
                "selected_model": settings.default_model,
                "vision_model": settings.default_vision_model,
                "rate_limit": DEFAULT_RATE_LIMIT,
                "max_tokens": DEFAULT_MAX_TOKENS,
                "temperature": DEFAULT_TEMPERATURE,
                "updated_at": None,
            }
        return {
            "configured": bool(config.api_key),
            "api_key_masked": mask_secret(config.api_key) if config.api_key else None,
            "selected_model": config.selected_model,
            "vision_model": config.vision_model,
            "rate_limit": config.rate_limit,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "updated_at": config.updated_at,
        }


admin_config_store = AdminConfigStore()
