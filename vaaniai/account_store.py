"""
Account store: registration, login, plans and the per-user message counter.

All functions take an explicit SQLAlchemy session. The message counter is
only ever changed through increment_message_count(), which is a single
conditional UPDATE so concurrent sends can never push messages_used past
messages_limit.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .auth import get_password_hash, validate_password_strength, verify_password
from .config import PLANS, get_plan_limit
from .exceptions import EmailTakenError, InvalidCredentialsError, UserNotFoundError, ValidationError
from .models import ChatSession, User, utcnow

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UserNotFoundError()
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register(db: Session, name: str, email: str, password: str) -> User:
    """
    Create a new account on the free plan.

    Args:
        db: Database session
        name: Display name (at least 2 characters)
        email: Email address, stored lower-cased
        password: Plain password, stored as a bcrypt hash

    Returns:
        User: The newly created user

    Raises:
        EmailTakenError: If an account with this email already exists
        ValidationError: If name or password fail the basic checks
    """
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters long")

    is_valid, error_message = validate_password_strength(password)
    if not is_valid:
        raise ValidationError(error_message)

    normalized_email = normalize_email(email)
    if get_user_by_email(db, normalized_email) is not None:
        logger.info(f"[AUTH] Registration rejected, email already registered: {normalized_email}")
        raise EmailTakenError()

    plan = "free"
    user = User(
        name=name,
        email=normalized_email,
        password_hash=get_password_hash(password),
        plan=plan,
        messages_used=0,
        messages_limit=get_plan_limit(plan),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"[AUTH] Registered user {user.id} ({normalized_email})")
    return user


def login(db: Session, email: str, password: str) -> User:
    """
    Check credentials and return the account.

    Unknown email, wrong password and inactive accounts all raise the same
    InvalidCredentialsError so the response does not reveal which one failed.
    """
    normalized_email = normalize_email(email)
    user = get_user_by_email(db, normalized_email)

    if user is None:
        logger.info(f"[AUTH] Login failed for {normalized_email}: unknown email")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        logger.info(f"[AUTH] Login failed for {normalized_email}: wrong password")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.info(f"[AUTH] Login failed for {normalized_email}: account inactive")
        raise InvalidCredentialsError()

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def update_plan(db: Session, user_id: int, plan: str) -> User:
    """
    Move a user to another plan.

    messages_limit is reset to the new plan's quota; messages_used is kept,
    so a downgrade below the current usage leaves the user at their limit.
    """
    normalized_plan = (plan or "").strip().lower()
    if normalized_plan not in PLANS:
        raise ValidationError(f"Invalid plan. Must be one of: {', '.join(PLANS)}")

    user = get_user(db, user_id)
    old_plan = user.plan
    user.plan = normalized_plan
    user.messages_limit = get_plan_limit(normalized_plan)
    db.commit()
    db.refresh(user)

    logger.info(f"[AUTH] User {user_id} plan changed {old_plan} -> {normalized_plan}")
    return user


def increment_message_count(db: Session, user_id: int) -> bool:
    """
    Atomically consume one message from the user's quota.

    Returns:
        bool: True if a message was consumed, False if the quota is exhausted
        (or the user does not exist). Nothing changes on False.
    """
    stmt = (
        update(User)
        .where(User.id == user_id)
        .where(User.messages_used < User.messages_limit)
        .values(messages_used=User.messages_used + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount == 1


def reset_usage(db: Session, user_id: int) -> User:
    """Set messages_used back to zero (admin action)."""
    user = get_user(db, user_id)
    user.messages_used = 0
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user_id: int, name: str) -> User:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters long")

    user = get_user(db, user_id)
    user.name = name
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
    """
    Replace the user's password after checking the current one.

    Raises:
        InvalidCredentialsError: If current_password is wrong
        ValidationError: If the new password is too weak
    """
    user = get_user(db, user_id)
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")

    is_valid, error_message = validate_password_strength(new_password)
    if not is_valid:
        raise ValidationError(error_message)

    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"[AUTH] Password changed for user {user_id}")


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def export_user_data(db: Session, user_id: int) -> Dict[str, Any]:
    """Profile plus every session and message the user owns, as plain JSON-ready data."""
    user = get_user(db, user_id)
    sessions = (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id)
        .order_by(ChatSession.created_at, ChatSession.id)
        .all()
    )

    return {
        "profile": {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "plan": user.plan,
            "messages_used": user.messages_used,
            "messages_limit": user.messages_limit,
            "created_at": _isoformat(user.created_at),
        },
        "sessions": [
            {
                "id": session.id,
                "title": session.title,
                "created_at": _isoformat(session.created_at),
                "updated_at": _isoformat(session.updated_at),
                "messages": [
                    {
                        "text": message.text,
                        "sender": message.sender,
                        "image_url": message.image_url,
                        "created_at": _isoformat(message.created_at),
                    }
                    for message in session.messages
                ],
            }
            for session in sessions
        ],
        "exported_at": utcnow().isoformat(),
    }


def delete_user(db: Session, user_id: int) -> None:
    """Delete the account; sessions, messages and the active pointer go with it."""
    user = get_user(db, user_id)
    email = user.email
    db.delete(user)
    db.commit()
    logger.info(f"[AUTH] Deleted user {user_id} ({email})")
