"""
Chat session storage.

Sessions belong to one owner (user or guest). Each owner has an active
session pointer, and an owner that has used chat always keeps at least one
session: deleting the last one creates an empty replacement in the same
commit.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .config.constants import SESSION_PLACEHOLDER_TITLE, SESSION_TITLE_MAX_CHARS
from .exceptions import SessionNotFoundError, ValidationError
from .models import ActiveSessionPointer, ChatSession, Message, utcnow
from .owner import Owner
from .types import Sender

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255


def derive_title(text: str) -> str:
    """Title for a session from its first user message."""
    text = text.strip()
    if len(text) > SESSION_TITLE_MAX_CHARS:
        return text[:SESSION_TITLE_MAX_CHARS] + "..."
    return text


def _owned_by(query, owner: Owner):
    if owner.is_guest:
        return query.filter(ChatSession.guest_id == owner.guest_id)
    return query.filter(ChatSession.user_id == owner.user_id)


def _most_recent(db: Session, owner: Owner, exclude_id: Optional[int] = None) -> Optional[ChatSession]:
    query = _owned_by(db.query(ChatSession), owner)
    if exclude_id is not None:
        query = query.filter(ChatSession.id != exclude_id)
    return query.order_by(ChatSession.updated_at.desc(), ChatSession.id.desc()).first()


def _set_pointer(db: Session, owner: Owner, session_id: int) -> None:
    pointer = db.get(ActiveSessionPointer, owner.key)
    if pointer is None:
        db.add(ActiveSessionPointer(owner_key=owner.key, session_id=session_id))
    else:
        pointer.session_id = session_id


def _new_session(db: Session, owner: Owner) -> ChatSession:
    now = utcnow()
    session = ChatSession(
        user_id=owner.user_id,
        guest_id=owner.guest_id,
        title=SESSION_PLACEHOLDER_TITLE,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    db.flush()
    _set_pointer(db, owner, session.id)
    return session


def create_session(db: Session, owner: Owner) -> ChatSession:
    """Create an empty session titled with the placeholder and make it active."""
    session = _new_session(db, owner)
    db.commit()
    db.refresh(session)
    logger.debug(f"Created session {session.id} for {owner.key}")
    return session


def list_sessions(db: Session, owner: Owner) -> List[ChatSession]:
    """Owner's sessions, most recently updated first."""
    return (
        _owned_by(db.query(ChatSession), owner)
        .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
        .all()
    )


def get_session(db: Session, owner: Owner, session_id: int) -> ChatSession:
    """
    Fetch one of the owner's sessions.

    Raises:
        SessionNotFoundError: If the session does not exist or belongs to another owner
    """
    session = _owned_by(db.query(ChatSession), owner).filter(ChatSession.id == session_id).first()
    if session is None:
        raise SessionNotFoundError()
    return session


def get_active_session_id(db: Session, owner: Owner) -> Optional[int]:
    pointer = db.get(ActiveSessionPointer, owner.key)
    return pointer.session_id if pointer else None


def get_active_session(db: Session, owner: Owner, create: bool = True) -> Optional[ChatSession]:
    """
    The owner's active session.

    Falls back to the most recent session when no pointer is set, and creates
    a fresh session when the owner has none (unless create is False).
    """
    active_id = get_active_session_id(db, owner)
    if active_id is not None:
        session = _owned_by(db.query(ChatSession), owner).filter(ChatSession.id == active_id).first()
        if session is not None:
            return session

    session = _most_recent(db, owner)
    if session is not None:
        _set_pointer(db, owner, session.id)
        db.commit()
        return session

    if not create:
        return None
    return create_session(db, owner)


def switch_session(db: Session, owner: Owner, session_id: int) -> Optional[ChatSession]:
    """Make session_id active. Ids the owner does not have are ignored and return None."""
    session = _owned_by(db.query(ChatSession), owner).filter(ChatSession.id == session_id).first()
    if session is None:
        return None
    _set_pointer(db, owner, session.id)
    db.commit()
    return session


def rename_session(db: Session, owner: Owner, session_id: int, title: str) -> ChatSession:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title cannot be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title cannot be longer than {MAX_TITLE_LENGTH} characters")

    session = get_session(db, owner, session_id)
    session.title = title
    session.updated_at = utcnow()
    db.commit()
    db.refresh(session)
    return session


def delete_session(db: Session, owner: Owner, session_id: int) -> ChatSession:
    """
    Delete one of the owner's sessions.

    If it was active, the most recent remaining session becomes active. If it
    was the last one, an empty session is created and made active.

    Returns:
        ChatSession: The owner's active session after the delete
    """
    session = get_session(db, owner, session_id)
    was_active = get_active_session_id(db, owner) == session.id

    pointer = db.get(ActiveSessionPointer, owner.key)
    if pointer is not None and pointer.session_id == session.id:
        db.delete(pointer)
        # Pointer row must go before the session it references
        db.flush()
    db.delete(session)
    db.flush()

    replacement = _most_recent(db, owner)
    if replacement is None:
        replacement = _new_session(db, owner)
        logger.debug(f"Deleted last session {session_id} of {owner.key}, created {replacement.id}")
    elif was_active or pointer is None:
        _set_pointer(db, owner, replacement.id)

    db.commit()
    return get_active_session(db, owner)


def delete_all_sessions(db: Session, owner: Owner) -> ChatSession:
    """Delete every session the owner has and leave them one fresh session."""
    pointer = db.get(ActiveSessionPointer, owner.key)
    if pointer is not None:
        db.delete(pointer)
        db.flush()
    for session in list_sessions(db, owner):
        db.delete(session)
    db.flush()

    session = _new_session(db, owner)
    db.commit()
    db.refresh(session)
    return session


def clear_session(db: Session, owner: Owner, session_id: int) -> ChatSession:
    """Remove all messages from a session and restore the placeholder title."""
    session = get_session(db, owner, session_id)
    db.query(Message).filter(Message.session_id == session.id).delete(synchronize_session=False)
    session.title = SESSION_PLACEHOLDER_TITLE
    session.updated_at = utcnow()
    db.commit()
    db.expire(session)
    return session


def has_user_message(db: Session, session_id: int) -> bool:
    return (
        db.query(Message.id)
        .filter(Message.session_id == session_id, Message.sender == "user")
        .first()
        is not None
    )


def append_message(
    db: Session,
    session: ChatSession,
    text: str,
    sender: Sender,
    image_url: Optional[str] = None,
    image_data: Optional[str] = None,
) -> Message:
    """
    Append a message to a session and bump its updated_at.

    The first user message of a session still carrying the placeholder title
    also sets the title (first 30 characters, with "..." when truncated).
    """
    if sender not in ("user", "bot"):
        raise ValidationError(f"Invalid sender: {sender}")

    derive = (
        sender == "user"
        and session.title == SESSION_PLACEHOLDER_TITLE
        and not has_user_message(db, session.id)
    )

    now = utcnow()
    message = Message(
        session_id=session.id,
        text=text,
        sender=sender,
        image_url=image_url,
        image_data=image_data,
        created_at=now,
    )
    db.add(message)

    if derive and text.strip():
        session.title = derive_title(text)
    session.updated_at = now

    db.commit()
    db.refresh(message)
    db.refresh(session)
    return message
