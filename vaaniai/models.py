"""
SQLAlchemy models for VaaniAI accounts, chat sessions and admin configuration.

This module defines all database models including users, chat sessions,
messages, the active-session pointer, the admin API configuration singleton
and the usage/audit logs.
"""

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .config.constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_RATE_LIMIT,
    DEFAULT_TEMPERATURE,
    DEFAULT_VISION_MODEL,
    SESSION_PLACEHOLDER_TITLE,
)
from .config.helpers import get_plan_limit
from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so all stored times are naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


class User(Base):
    """Registered account with plan and message quota."""

    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Profile
    name = Column(String(255), nullable=False)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Admin roles
    role = Column(String(50), default="user", nullable=False)  # 'user', 'admin', 'super_admin'
    is_admin = Column(Boolean, default=False, nullable=False)

    # Plan and usage
    plan = Column(String(50), default="free", nullable=False)  # 'free', 'premium', 'enterprise'
    messages_used = Column(Integer, default=0, nullable=False)
    messages_limit = Column(Integer, default=lambda: get_plan_limit("free"), nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime)

    # Relationships
    sessions = relationship("ChatSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    usage_logs = relationship("UsageLog", back_populates="user", passive_deletes=True)

    @property
    def messages_remaining(self) -> int:
        """Messages left in the current period (never negative)."""
        return max(0, (self.messages_limit or 0) - (self.messages_used or 0))


class ChatSession(Base):
    """Named conversation thread owned by a user or a guest device."""

    __tablename__ = "chat_sessions"
    # Never hand a deleted session's id to a new one
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    guest_id = Column(String(64), nullable=True, index=True)  # Set for guest sessions only

    title = Column(String(255), default=SESSION_PLACEHOLDER_TITLE, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="sessions")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [Message.created_at, Message.id],
    )


class Message(Base):
    """Single immutable chat message."""

    __tablename__ = "messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)

    text = Column(Text, nullable=False)
    sender = Column(String(10), nullable=False)  # 'user' or 'bot'

    # Optional attached image (remote URL or base64 data URL)
    image_url = Column(Text)
    image_data = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    session = relationship("ChatSession", back_populates="messages")


class ActiveSessionPointer(Base):
    """Which session an owner currently has open. One row per owner."""

    __tablename__ = "active_session_pointers"

    owner_key = Column(String(80), primary_key=True)  # 'user:<id>' or 'guest:<id>'
    session_id = Column(Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class AdminApiConfig(Base):
    """Upstream completion API configuration managed by admins."""

    __tablename__ = "admin_api_config"

    # Single row table - only one config row should exist
    id = Column(Integer, primary_key=True, default=1)

    api_key = Column(Text)
    selected_model = Column(String(255), default=DEFAULT_MODEL, nullable=False)
    vision_model = Column(String(255), default=DEFAULT_VISION_MODEL, nullable=False)
    rate_limit = Column(Integer, default=DEFAULT_RATE_LIMIT, nullable=False)  # requests/minute per owner, 0 = off
    max_tokens = Column(Integer, default=DEFAULT_MAX_TOKENS, nullable=False)
    temperature = Column(Float, default=DEFAULT_TEMPERATURE, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class UsageLog(Base):
    """One row per call to the completion API, for admin analytics."""

    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)  # NULL for guests
    guest_id = Column(String(64), nullable=True)
    session_id = Column(Integer, ForeignKey("chat_sessions.id", ondelete="SET NULL"), nullable=True)

    model_used = Column(String(255))
    tokens_estimate = Column(Integer)
    response_time_ms = Column(Integer)
    status = Column(String(20), nullable=False)  # 'success' or 'error'
    error_message = Column(Text)

    created_at = Column(DateTime, default=utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="usage_logs")


class AdminActionLog(Base):
    """Audit log for all admin actions."""

    __tablename__ = "admin_action_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    target_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Action details
    action_type = Column(String(100), nullable=False)  # 'plan_update', 'user_delete', 'config_update', etc.
    action_description = Column(Text, nullable=False)
    details = Column(Text)  # JSON string with action-specific data
    ip_address = Column(String(45))
    user_agent = Column(Text)

    created_at = Column(DateTime, default=utcnow, index=True)
