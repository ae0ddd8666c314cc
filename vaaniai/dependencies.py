"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions for protecting routes, checking
admin roles and resolving the session owner (user or guest) of a request.
"""

import re
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .auth import verify_token
from .database import get_db
from .message_pipeline import MessagePipeline, message_pipeline
from .models import User
from .owner import Owner

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)

# Device ids generated by the client (uuid4 or similar)
GUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def _user_from_token(token: str, db: Session) -> Optional[User]:
    payload = verify_token(token, token_type="access")
    if payload is None:
        return None

    user_id_str = payload.get("sub")
    if user_id_str is None:
        return None

    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        return None

    return db.query(User).filter(User.id == user_id).first()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get current authenticated user from JWT token.
    Returns None if not authenticated (for optional authentication).
    """
    if not credentials:
        return None

    user = _user_from_token(credentials.credentials, db)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token (required).

    Raises:
        HTTPException: If authentication fails
    """
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    return user


def get_current_owner(
    current_user: Optional[User] = Depends(get_current_user),
    x_guest_id: Optional[str] = Header(None),
    x_timezone: Optional[str] = Header(None),
) -> Owner:
    """
    Resolve who owns the sessions this request touches.

    A valid bearer token wins; otherwise the request must carry an
    X-Guest-Id header identifying the guest device.
    """
    if current_user is not None:
        return Owner.for_user(current_user.id)

    if not x_guest_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required (log in or send X-Guest-Id)",
        )
    if not GUEST_ID_PATTERN.match(x_guest_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid X-Guest-Id header")

    return Owner.for_guest(x_guest_id, x_timezone)


def require_admin_role(required_role: str = "admin"):
    """
    Dependency factory to check if user has required admin role.

    Args:
        required_role: Minimum required role ('admin' or 'super_admin')

    Returns:
        Dependency function that validates admin role
    """
    role_hierarchy = {"user": 0, "admin": 1, "super_admin": 2}

    def dependency(current_user: User = Depends(get_current_user_required)) -> User:
        if not current_user.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

        user_role_level = role_hierarchy.get(current_user.role, 0)
        required_role_level = role_hierarchy.get(required_role, 1)

        if user_role_level < required_role_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires {required_role} role or higher",
            )
        return current_user

    return dependency


def get_current_admin_user(current_user: User = Depends(get_current_user_required)) -> User:
    """
    Get current user and verify they have admin privileges.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def get_message_pipeline() -> MessagePipeline:
    """The process-wide message pipeline (overridable in tests)."""
    return message_pipeline
