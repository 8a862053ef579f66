"""
Intelligence Radar Router
=========================
Global AI-generated industry news feed, per-user favorites, and the daily
generation scheduler (status for everyone, manual trigger for admins).
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_admin, require_user
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import IntelligencePost
from app.services import intelligence
from app.services.activity import record_activity
from app.services.ai_service import GenerativeTextService, get_ai_service
from app.services.intelligence_scheduler import IntelligenceScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Intelligence"])


# =============================================================================
# Response Models
# =============================================================================

class IntelligencePostResponse(BaseModel):
    id: int
    category: str
    title: str
    source: str
    summary: str
    ai_insight: Optional[str]
    tags: List[str]
    published_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class FavoriteToggleResponse(BaseModel):
    intel_id: int
    is_favorite: bool


class SchedulerStatusResponse(BaseModel):
    running: bool
    state: str
    next_update_at: str
    last_generated_at: Optional[str]
    schedule: str


def post_to_response(post: IntelligencePost) -> IntelligencePostResponse:
    return IntelligencePostResponse(
        id=post.id,
        category=post.category,
        title=post.title,
        source=post.source,
        summary=post.summary,
        ai_insight=post.ai_insight,
        tags=post.tags or [],
        published_at=to_utc(post.published_at),
        created_at=to_utc(post.created_at),
    )


def get_scheduler(request: Request) -> IntelligenceScheduler:
    return request.app.state.scheduler


# =============================================================================
# Feed
# =============================================================================

@router.get("/intelligence-posts", response_model=List[IntelligencePostResponse])
async def list_posts(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return [post_to_response(p) for p in await intelligence.list_posts(db)]


@router.get("/intelligence-posts/favorites", response_model=List[int])
async def list_favorites(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Ids of the caller's favorite posts."""
    return await intelligence.list_favorites(db, user.user_id)


@router.post("/intelligence-posts/{intel_id}/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    intel_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    is_favorite = await intelligence.toggle_favorite(db, user.user_id, intel_id)
    return FavoriteToggleResponse(intel_id=intel_id, is_favorite=is_favorite)


@router.post("/intelligence-posts/{intel_id}/view")
async def record_view(
    intel_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await intelligence.get_post(db, intel_id)
    await record_activity(
        db, user.user_id, "view_intelligence", "intelligence", detail=f"Viewed intelligence #{intel_id}"
    )
    return {"success": True}


# =============================================================================
# Scheduler
# =============================================================================

@router.get("/intelligence-scheduler/status", response_model=SchedulerStatusResponse)
async def scheduler_status(
    user: UserContext = Depends(require_user),
    scheduler: IntelligenceScheduler = Depends(get_scheduler),
):
    return scheduler.status()


@router.post("/intelligence-scheduler/trigger")
async def trigger_generation(
    user: UserContext = Depends(require_admin),
    scheduler: IntelligenceScheduler = Depends(get_scheduler),
    ai_service: GenerativeTextService = Depends(get_ai_service),
):
    """Generate a batch now. The daily timer is not affected; failures return 500."""
    logger.info("Admin %s triggered intelligence generation", user.user_id)
    count = await scheduler.trigger(ai_service)
    return {"success": True, "count": count}
