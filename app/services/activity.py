"""
Activity log and notifications.

Activity entries feed the dashboard and the daily summary prompt.
Notifications are per-user inbox items (summary received, handover received).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.utc import start_of_today_utc
from app.models.models import ActivityLog, Notification, User

logger = logging.getLogger(__name__)

NOTIFICATION_LIST_LIMIT = 50


# =============================================================================
# Activity log
# =============================================================================

async def record_activity(
    db: AsyncSession,
    user_id: str,
    action: str,
    module: str,
    detail: Optional[str] = None,
    commit: bool = True,
) -> ActivityLog:
    entry = ActivityLog(user_id=user_id, action=action, module=module, detail=detail)
    db.add(entry)
    if commit:
        await db.commit()
    logger.debug("activity user=%s action=%s module=%s", user_id, action, module)
    return entry


async def activity_today(
    db: AsyncSession,
    user_id: str,
    now: Optional[datetime] = None,
) -> list[ActivityLog]:
    """Entries since local midnight, newest first."""
    result = await db.execute(
        select(ActivityLog)
        .where(
            ActivityLog.user_id == user_id,
            ActivityLog.created_at >= start_of_today_utc(now),
        )
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    )
    return list(result.scalars().all())


# =============================================================================
# Notifications
# =============================================================================

async def create_notification(
    db: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    content: Optional[str] = None,
    related_id: Optional[int] = None,
    related_type: Optional[str] = None,
    from_user_id: Optional[str] = None,
    commit: bool = True,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        content=content,
        related_id=related_id,
        related_type=related_type,
        from_user_id=from_user_id,
        is_read=False,
    )
    db.add(notification)
    if commit:
        await db.commit()
        await db.refresh(notification)
    return notification


async def list_notifications(db: AsyncSession, user_id: str) -> list[tuple[Notification, Optional[User]]]:
    """Latest notifications with the sending user (if any)."""
    result = await db.execute(
        select(Notification, User)
        .outerjoin(User, User.id == Notification.from_user_id)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(NOTIFICATION_LIST_LIMIT)
    )
    return [(row[0], row[1]) for row in result.all()]


async def unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar_one()


async def mark_read(db: AsyncSession, notification_id: int, user_id: str) -> None:
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
    )
    if result.rowcount == 0:
        raise NotFoundError("Notification not found")
    await db.commit()


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount


async def delete_notification(db: AsyncSession, notification_id: int, user_id: str) -> None:
    result = await db.execute(
        delete(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    if result.rowcount == 0:
        raise NotFoundError("Notification not found")
    await db.commit()
