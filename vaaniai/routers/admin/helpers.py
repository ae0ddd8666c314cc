"""
Shared helpers for admin routes.
"""

import json
from typing import Any

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import AdminActionLog, ChatSession, User
from ...schemas import AdminUserResponse, UserResponse


def log_admin_action(
    db: Session,
    admin_user: User,
    action_type: str,
    action_description: str,
    target_user_id: int | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> None:
    """Log admin action for audit trail."""
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")

    log_entry = AdminActionLog(
        admin_user_id=admin_user.id,
        target_user_id=target_user_id,
        action_type=action_type,
        action_description=action_description,
        details=json.dumps(details, ensure_ascii=False) if details else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(log_entry)
    db.commit()


def admin_user_response(db: Session, user: User) -> AdminUserResponse:
    session_count = db.query(func.count(ChatSession.id)).filter(ChatSession.user_id == user.id).scalar() or 0
    return AdminUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        is_active=user.is_active,
        session_count=session_count,
    )
