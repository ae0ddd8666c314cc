"""
Custom types for the VaaniAI backend.

This module defines Literal aliases and TypedDict types for structured
dictionaries shared between the stores, the pipeline and the routers.
"""

from typing import Dict, Literal, Optional, TypedDict


# ============================================================================
# Account Types
# ============================================================================

Plan = Literal["free", "premium", "enterprise"]
UserRole = Literal["user", "admin", "super_admin"]
Sender = Literal["user", "bot"]
GuestCounterMode = Literal["daily", "lifetime"]


class PlanConfigDict(TypedDict):
    """Configuration for a plan."""
    messages_limit: int
    price: int
    name_hindi: str


# ============================================================================
# Usage Types
# ============================================================================


class GuestUsageData(TypedDict):
    """Storage structure for a guest's device-local allowance."""
    used: int
    period_key: str  # local calendar date for daily mode, "lifetime" otherwise


class GuestUsageStatsDict(TypedDict):
    """Guest allowance as reported to the client."""
    used: int
    limit: int
    remaining: int
    mode: str
    resets_on: Optional[str]


# ============================================================================
# Admin Types
# ============================================================================


class AdminStatsDict(TypedDict):
    """Aggregated numbers for the admin dashboard."""
    total_users: int
    total_sessions: int
    total_messages: int
    free_users: int
    premium_users: int
    enterprise_users: int
    active_users: int
    active_users_window_days: int
    revenue: int
    currency: str
    api_calls: int
    users_by_plan: Dict[str, int]


class ConnectionTestDict(TypedDict, total=False):
    """Result of an admin connection test against the completion API."""
    success: bool
    model: str
    response_time: float
    reply_preview: str
    error: str
