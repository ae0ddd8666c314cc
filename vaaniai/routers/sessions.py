"""
Chat session routes for users and guests.

Callers are identified by bearer token or, for guests, the X-Guest-Id header.
Sessions of other owners are never visible: they answer 404 like missing ones.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import session_store
from ..database import get_db
from ..dependencies import get_current_owner, get_message_pipeline
from ..message_pipeline import MessagePipeline
from ..models import ChatSession
from ..owner import Owner
from ..schemas import (
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionDetail,
    SessionRename,
    SessionSummary,
)

router = APIRouter(tags=["Sessions"])


def _summary(session: ChatSession, active_id: int | None) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        title=session.title,
        created_at=session.created_at,
        updated_at=session.updated_at,
        is_active=session.id == active_id,
    )


def _detail(db: Session, owner: Owner, session: ChatSession, pipeline: MessagePipeline) -> SessionDetail:
    active_id = session_store.get_active_session_id(db, owner)
    return SessionDetail(
        **_summary(session, active_id).model_dump(),
        messages=[MessageResponse.model_validate(message) for message in session.messages],
        is_typing=pipeline.is_typing(session.id),
    )


@router.post("/sessions", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
async def create_session(
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """Start a new chat titled "नई चैट" and make it the active one."""
    session = session_store.create_session(db, owner)
    return _detail(db, owner, session, pipeline)


@router.get("/sessions", response_model=List[SessionSummary])
async def list_sessions(owner: Owner = Depends(get_current_owner), db: Session = Depends(get_db)):
    """The caller's sessions, most recently updated first."""
    sessions = session_store.list_sessions(db, owner)
    active_id = session_store.get_active_session_id(db, owner)
    return [_summary(session, active_id) for session in sessions]


@router.delete("/sessions", response_model=SessionDetail)
async def delete_all_sessions(
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """Delete the caller's whole chat history, leaving one empty session."""
    session = session_store.delete_all_sessions(db, owner)
    return _detail(db, owner, session, pipeline)


@router.get("/sessions/active", response_model=SessionDetail)
async def get_active_session(
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """The session the caller has open, creating one on first use."""
    session = session_store.get_active_session(db, owner)
    return _detail(db, owner, session, pipeline)


@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: int,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    session = session_store.get_session(db, owner, session_id)
    return _detail(db, owner, session, pipeline)


@router.post("/sessions/{session_id}/activate", response_model=SessionDetail)
async def activate_session(
    session_id: int,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """
    Switch the active session.

    Unknown ids are ignored; the response is always the active session.
    """
    session = session_store.switch_session(db, owner, session_id)
    if session is None:
        session = session_store.get_active_session(db, owner)
    return _detail(db, owner, session, pipeline)


@router.patch("/sessions/{session_id}", response_model=SessionSummary)
async def rename_session(
    session_id: int,
    rename: SessionRename,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    session = session_store.rename_session(db, owner, session_id, rename.title)
    return _summary(session, session_store.get_active_session_id(db, owner))


@router.delete("/sessions/{session_id}", response_model=SessionDetail)
async def delete_session(
    session_id: int,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """
    Delete a session and return the caller's active session afterwards.

    Deleting the last session replaces it with an empty one.
    """
    active = session_store.delete_session(db, owner, session_id)
    return _detail(db, owner, active, pipeline)


@router.delete("/sessions/{session_id}/messages", response_model=SessionDetail)
async def clear_session(
    session_id: int,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    session = session_store.clear_session(db, owner, session_id)
    return _detail(db, owner, session, pipeline)


@router.post("/sessions/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: int,
    request: SendMessageRequest,
    owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
):
    """
    Send a message and wait for the reply.

    Limit rejections and upstream failures still answer 200: the bot message
    in the response carries the notice, and state says what happened.
    """
    result = await pipeline.send(
        db,
        owner,
        session_id,
        request.text,
        image_url=request.image_url,
        image_data=request.image_data,
    )
    db.refresh(result.session)
    return SendMessageResponse(
        state=result.state.value,
        session=_detail(db, owner, result.session, pipeline),
        user_message=MessageResponse.model_validate(result.user_message) if result.user_message else None,
        bot_message=MessageResponse.model_validate(result.bot_message),
        error=result.error,
    )
