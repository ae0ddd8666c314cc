"""
Configuration helper functions.

This module provides utility functions for accessing and working with
configuration values.
"""

from .constants import PLAN_CONFIG, PLAN_PRICING, UNLIMITED_MESSAGES
from .settings import settings


def get_plan_limit(plan: str) -> int:
    """
    Get the message quota for a given plan.

    The free tier reads FREE_PLAN_MESSAGE_LIMIT from settings so deployments
    can run a lower demo quota.

    Args:
        plan: Plan name

    Returns:
        Messages allowed per period (UNLIMITED_MESSAGES for unlimited plans)
    """
    normalized_plan = (plan or "").strip().lower()
    if normalized_plan == "free":
        return settings.free_plan_message_limit
    config = PLAN_CONFIG.get(normalized_plan)
    if config is None:
        return settings.free_plan_message_limit
    return config["messages_limit"]


def get_plan_price(plan: str) -> int:
    """Get the monthly price of a plan in INR (0 for unknown plans)."""
    return PLAN_PRICING.get(plan, 0)


def is_unlimited(messages_limit: int) -> bool:
    """Return True if a stored limit means "unlimited"."""
    return messages_limit is not None and messages_limit >= UNLIMITED_MESSAGES
