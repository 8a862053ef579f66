"""
Chat Router
===========
Conversations grounded in the caller's knowledge base.

POST /api/chat-sessions/{id}/messages answers as text/event-stream:
    data: {"content": "..."}   (repeated)
    data: {"done": true}       or   data: {"error": "..."}
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import require_user
from app.core.sse import sse_response
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import ChatMessage, ChatSession
from app.services import chat as chat_service
from app.services.ai_service import GenerativeTextService, get_ai_service


router = APIRouter(prefix="/api/chat-sessions", tags=["Chat"])


class SessionCreate(BaseModel):
    title: Optional[str] = None


class MessageCreate(BaseModel):
    content: str


class SessionResponse(BaseModel):
    id: int
    user_id: str
    title: str
    created_at: datetime


class MessageResponse(BaseModel):
    id: int
    session_id: int
    role: str
    content: str
    created_at: datetime


def session_to_response(session: ChatSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        user_id=session.user_id,
        title=session.title,
        created_at=to_utc(session.created_at),
    )


def message_to_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        session_id=message.session_id,
        role=message.role,
        content=message.content,
        created_at=to_utc(message.created_at),
    )


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return [session_to_response(s) for s in await chat_service.list_sessions(db, user.user_id)]


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    data: SessionCreate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    session = await chat_service.create_session(db, user.user_id, data.title)
    return session_to_response(session)


@router.get("/{session_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    session_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await chat_service.get_session(db, session_id, user.user_id)
    messages = await chat_service.list_messages(db, session_id, user.user_id)
    return [message_to_response(m) for m in messages]


@router.post("/{session_id}/messages")
async def send_message(
    session_id: int,
    data: MessageCreate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    ai_service: GenerativeTextService = Depends(get_ai_service),
    settings: Settings = Depends(get_settings),
):
    """Store the question, then stream the answer."""
    message = await chat_service.post_user_message(db, session_id, user.user_id, data.content)
    return sse_response(
        chat_service.reply_events(session_id, user.user_id, message.content, ai_service, settings)
    )
