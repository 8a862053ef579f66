"""
Notifications Router
Per-user inbox: summaries received, handovers received.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_user
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.services import activity


router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    content: Optional[str]
    related_id: Optional[int]
    related_type: Optional[str]
    from_user_id: Optional[str]
    from_user_name: Optional[str]
    is_read: bool
    created_at: datetime


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await activity.list_notifications(db, user.user_id)
    return [
        NotificationResponse(
            id=n.id,
            type=n.type,
            title=n.title,
            content=n.content,
            related_id=n.related_id,
            related_type=n.related_type,
            from_user_id=n.from_user_id,
            from_user_name=sender.display_name if sender else None,
            is_read=n.is_read,
            created_at=to_utc(n.created_at),
        )
        for n, sender in rows
    ]


@router.get("/unread-count")
async def unread_count(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return {"count": await activity.unread_count(db, user.user_id)}


@router.post("/read-all")
async def mark_all_read(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return {"updated": await activity.mark_all_read(db, user.user_id)}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await activity.mark_read(db, notification_id, user.user_id)
    return {"success": True}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await activity.delete_notification(db, notification_id, user.user_id)
    return {"status": "deleted", "id": notification_id}
