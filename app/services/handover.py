"""
Asset Handover Engine

Moves everything a departing employee is still working on to a successor:
knowledge files, folders, chat sessions and messages, and open tasks.
Completed tasks stay with the original owner as their historical record.

The counts snapshot, the five reassignments and the audit log insert run in
one transaction: either all of it commits or none of it does. Handovers from
the same source user are serialized with an in-process lock so two
overlapping requests cannot race on the same asset set.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.models.models import (
    ChatMessage,
    ChatSession,
    Folder,
    HandoverLog,
    KnowledgeFile,
    Task,
    TaskStatus,
    User,
)

logger = logging.getLogger(__name__)

# from_user_id -> (lock, holders and waiters); entries exist only while in use
_transfer_locks: dict[str, tuple[asyncio.Lock, int]] = {}


@asynccontextmanager
async def transfer_lock(from_user_id: str):
    """Serialize handovers of the same source user."""
    lock, users = _transfer_locks.get(from_user_id, (None, 0))
    if lock is None:
        lock = asyncio.Lock()
    _transfer_locks[from_user_id] = (lock, users + 1)
    try:
        async with lock:
            yield
    finally:
        lock, users = _transfer_locks[from_user_id]
        if users == 1:
            del _transfer_locks[from_user_id]
        else:
            _transfer_locks[from_user_id] = (lock, users - 1)


async def _count(db: AsyncSession, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


async def get_user_asset_counts(db: AsyncSession, user_id: str) -> dict[str, int]:
    """What a handover of this user would move right now."""
    return {
        "files": await _count(db, KnowledgeFile, KnowledgeFile.user_id == user_id),
        "folders": await _count(db, Folder, Folder.user_id == user_id),
        "tasks": await _count(
            db, Task, Task.user_id == user_id, Task.status != TaskStatus.done.value
        ),
        "chat_sessions": await _count(db, ChatSession, ChatSession.user_id == user_id),
    }


async def transfer_assets(
    db: AsyncSession,
    from_user_id: str,
    to_user_id: str,
    operator_id: str,
    note: Optional[str] = None,
) -> HandoverLog:
    """
    Reassign all of from_user's open assets to to_user and write the audit log.

    Raises:
        ValidationError: from and to are the same user
        NotFoundError: either user does not exist
    """
    if from_user_id == to_user_id:
        raise ValidationError("Cannot hand over assets to the same user")

    async with transfer_lock(from_user_id):
        for user_id in (from_user_id, to_user_id):
            if await db.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")

        try:
            counts = await get_user_asset_counts(db, from_user_id)

            await db.execute(
                update(KnowledgeFile)
                .where(KnowledgeFile.user_id == from_user_id)
                .values(user_id=to_user_id)
            )
            await db.execute(
                update(Folder).where(Folder.user_id == from_user_id).values(user_id=to_user_id)
            )
            await db.execute(
                update(ChatSession)
                .where(ChatSession.user_id == from_user_id)
                .values(user_id=to_user_id)
            )
            await db.execute(
                update(ChatMessage)
                .where(ChatMessage.user_id == from_user_id)
                .values(user_id=to_user_id)
            )
            await db.execute(
                update(Task)
                .where(Task.user_id == from_user_id, Task.status != TaskStatus.done.value)
                .values(user_id=to_user_id)
            )

            log = HandoverLog(
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                operator_id=operator_id,
                files_transferred=counts["files"],
                folders_transferred=counts["folders"],
                tasks_transferred=counts["tasks"],
                chat_sessions_transferred=counts["chat_sessions"],
                note=note,
            )
            db.add(log)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception(
                "Handover %s -> %s failed; all changes rolled back", from_user_id, to_user_id
            )
            raise

    await db.refresh(log)
    logger.info(
        "Handover %s -> %s by %s: %s files, %s folders, %s tasks, %s chat sessions",
        from_user_id, to_user_id, operator_id,
        log.files_transferred, log.folders_transferred,
        log.tasks_transferred, log.chat_sessions_transferred,
    )
    return log


async def list_handover_logs(db: AsyncSession) -> list[HandoverLog]:
    result = await db.execute(
        select(HandoverLog).order_by(HandoverLog.created_at.desc(), HandoverLog.id.desc())
    )
    return list(result.scalars().all())
