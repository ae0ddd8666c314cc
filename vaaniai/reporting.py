"""
Read-only aggregations for the admin dashboard.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import PLAN_PRICING, PLANS, settings
from .config.constants import PLAN_CURRENCY
from .models import ChatSession, Message, UsageLog, User, utcnow
from .types import AdminStatsDict


def count_by_plan(db: Session) -> Dict[str, int]:
    """Number of users on each plan; every known plan is present, zero if empty."""
    counts = {plan: 0 for plan in PLANS}
    rows = db.query(User.plan, func.count(User.id)).group_by(User.plan).all()
    for plan, count in rows:
        counts[plan] = count
    return counts


def total_users(db: Session) -> int:
    return db.query(func.count(User.id)).scalar() or 0


def total_messages(db: Session) -> int:
    return db.query(func.count(Message.id)).scalar() or 0


def total_sessions(db: Session) -> int:
    return db.query(func.count(ChatSession.id)).scalar() or 0


def active_users(db: Session, window_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """
    Users counted as active for the dashboard.

    This counts accounts created within the last window_days, not accounts
    that sent a message in that window.
    """
    window_days = settings.active_users_window_days if window_days is None else window_days
    cutoff = (now or utcnow()) - timedelta(days=window_days)
    return db.query(func.count(User.id)).filter(User.created_at >= cutoff).scalar() or 0


def estimated_revenue(plan_counts: Dict[str, int]) -> int:
    """Monthly revenue estimate in INR from per-plan user counts."""
    return sum(PLAN_PRICING.get(plan, 0) * count for plan, count in plan_counts.items())


def api_calls(db: Session, since: Optional[datetime] = None) -> int:
    query = db.query(func.count(UsageLog.id))
    if since is not None:
        query = query.filter(UsageLog.created_at >= since)
    return query.scalar() or 0


def build_stats(db: Session) -> AdminStatsDict:
    plan_counts = count_by_plan(db)
    window_days = settings.active_users_window_days
    return {
        "total_users": total_users(db),
        "total_sessions": total_sessions(db),
        "total_messages": total_messages(db),
        "free_users": plan_counts.get("free", 0),
        "premium_users": plan_counts.get("premium", 0),
        "enterprise_users": plan_counts.get("enterprise", 0),
        "active_users": active_users(db, window_days),
        "active_users_window_days": window_days,
        "revenue": estimated_revenue(plan_counts),
        "currency": PLAN_CURRENCY,
        "api_calls": api_calls(db),
        "users_by_plan": plan_counts,
    }
