"""
Chat over the knowledge base.

Every reply is grounded in the caller's own documents: the first
`knowledge_context_chars` characters of each knowledge file go into the system
prompt, followed by the most recent `chat_history_window` messages of the
session in creation order.

The assistant message and the `chat` activity entry are written only after
the model stream has completed. A mid-stream failure ends the stream with an
error event; a client disconnect cancels generation and persists nothing.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db_session
from app.core.errors import NotFoundError, ValidationError
from app.core.sse import sse_event
from app.models.models import ChatMessage, ChatRole, ChatSession, KnowledgeFile
from app.services.activity import record_activity
from app.services.ai_service import ChatTurn, GenerativeTextService

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New chat"

SYSTEM_PROMPT = """You are a professional sales assistant. Answer the user's questions based on their personal knowledge base.

Knowledge base contents:
{context}

Prefer information from the knowledge base and cite the document it came from. If the knowledge base has nothing relevant, say so honestly and still try to help. Keep answers professional, concise and useful."""

EMPTY_KNOWLEDGE_BASE = "(The user has not uploaded any files to the knowledge base yet.)"


# =============================================================================
# Sessions and messages
# =============================================================================

async def list_sessions(db: AsyncSession, user_id: str) -> list[ChatSession]:
    result = await db.execute(
        select(ChatSession)
        .where(ChatSession.user_id == user_id)
        .order_by(ChatSession.created_at.desc(), ChatSession.id.desc())
    )
    return list(result.scalars().all())


async def create_session(db: AsyncSession, user_id: str, title: Optional[str] = None) -> ChatSession:
    session = ChatSession(user_id=user_id, title=(title or "").strip() or DEFAULT_TITLE)
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session


async def get_session(db: AsyncSession, session_id: int, user_id: str) -> ChatSession:
    result = await db.execute(
        select(ChatSession).where(ChatSession.id == session_id, ChatSession.user_id == user_id)
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise NotFoundError("Chat session not found")
    return session


async def list_messages(db: AsyncSession, session_id: int, user_id: str) -> list[ChatMessage]:
    """Messages in creation order."""
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.session_id == session_id, ChatMessage.user_id == user_id)
        .order_by(ChatMessage.created_at, ChatMessage.id)
    )
    return list(result.scalars().all())


async def add_message(
    db: AsyncSession,
    session_id: int,
    user_id: str,
    role: str,
    content: str,
    commit: bool = True,
) -> ChatMessage:
    message = ChatMessage(session_id=session_id, user_id=user_id, role=role, content=content)
    db.add(message)
    if commit:
        await db.commit()
        await db.refresh(message)
    return message


async def post_user_message(db: AsyncSession, session_id: int, user_id: str, content: str) -> ChatMessage:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content is required")
    await get_session(db, session_id, user_id)
    return await add_message(db, session_id, user_id, ChatRole.user.value, content)


# =============================================================================
# Prompt building
# =============================================================================

def build_system_prompt(files: list[KnowledgeFile], max_chars: int) -> str:
    context = "\n\n".join(f"--- {f.file_name} ---\n{f.content[:max_chars]}" for f in files)
    return SYSTEM_PROMPT.format(context=context or EMPTY_KNOWLEDGE_BASE)


def history_window(messages: list[ChatMessage], size: int) -> list[ChatTurn]:
    return [ChatTurn(role=m.role, text=m.content) for m in messages[-size:]]


# =============================================================================
# Streaming reply
# =============================================================================

async def reply_events(
    session_id: int,
    user_id: str,
    question: str,
    ai_service: GenerativeTextService,
    settings: Optional[Settings] = None,
) -> AsyncIterator[str]:
    """SSE event stream for the assistant's answer to the latest user message."""
    settings = settings or get_settings()

    async with get_db_session() as db:
        result = await db.execute(
            select(KnowledgeFile)
            .where(KnowledgeFile.user_id == user_id)
            .order_by(KnowledgeFile.uploaded_at.desc(), KnowledgeFile.id.desc())
        )
        files = list(result.scalars().all())
        history = await list_messages(db, session_id, user_id)

    system = build_system_prompt(files, settings.knowledge_context_chars)
    turns = history_window(history, settings.chat_history_window)

    parts: list[str] = []
    try:
        async for chunk in ai_service.stream(turns, system=system):
            parts.append(chunk)
            yield sse_event({"content": chunk})

        async with get_db_session() as db:
            await add_message(db, session_id, user_id, ChatRole.assistant.value, "".join(parts), commit=False)
            await record_activity(
                db, user_id, "chat", "knowledge",
                detail=f"Knowledge base Q&A: {question[:100]}",
                commit=False,
            )
    except asyncio.CancelledError:
        logger.info("Client left chat session %s mid-stream; reply discarded", session_id)
        raise
    except Exception:
        logger.exception("Chat reply failed for session %s", session_id)
        yield sse_event({"error": "AI reply failed"})
        return

    yield sse_event({"done": True})
