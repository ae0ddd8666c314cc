"""
Admin message log browser.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ...database import get_db
from ...dependencies import get_current_admin_user
from ...models import ChatSession, Message, User
from ...schemas import AdminMessageLogItem, AdminMessageLogResponse

router = APIRouter()

PREVIEW_LENGTH = 500


@router.get("/messages", response_model=AdminMessageLogResponse)
async def list_messages(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    user_id: int | None = Query(None),
    sender: str | None = Query(None, pattern="^(user|bot)$"),
    guests_only: bool = Query(False),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """All chat messages, newest first, with the owning user or guest."""
    query = (
        db.query(Message, ChatSession, User)
        .join(ChatSession, Message.session_id == ChatSession.id)
        .outerjoin(User, ChatSession.user_id == User.id)
    )

    if user_id is not None:
        query = query.filter(ChatSession.user_id == user_id)
    if guests_only:
        query = query.filter(ChatSession.user_id.is_(None))
    if sender:
        query = query.filter(Message.sender == sender)

    total = query.count()
    offset = (page - 1) * per_page
    rows = query.order_by(desc(Message.created_at), desc(Message.id)).offset(offset).limit(per_page).all()

    items = [
        AdminMessageLogItem(
            id=message.id,
            session_id=session.id,
            session_title=session.title,
            user_id=session.user_id,
            user_email=user.email if user else None,
            guest_id=session.guest_id,
            text=message.text[:PREVIEW_LENGTH],
            sender=message.sender,
            has_image=bool(message.image_url or message.image_data),
            created_at=message.created_at,
        )
        for message, session, user in rows
    ]

    return AdminMessageLogResponse(
        messages=items,
        total=total,
        page=page,
        per_page=per_page,
        total_pages=(total + per_page - 1) // per_page,
    )
