"""
Daily Summary Router
====================
- POST   /api/daily-summary              stream a generated recap (saved as today's draft)
- GET    /api/daily-summaries            own summaries, newest first
- POST   /api/daily-summaries            save edited content as a draft
- POST   /api/daily-summary/{id}/send    forward to the superior (draft -> sent)
- DELETE /api/daily-summary/{id}         drafts only
- GET    /api/daily-summaries/received   summaries sent to the caller
"""

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_user
from app.core.sse import sse_response
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import DailySummary, User
from app.services import summaries
from app.services.ai_service import GenerativeTextService, get_ai_service


router = APIRouter(prefix="/api", tags=["Daily Summaries"])


class SummarySave(BaseModel):
    content: str
    date: Optional[dt.date] = None


class SummaryResponse(BaseModel):
    id: int
    user_id: str
    content: str
    date: dt.date
    status: str
    sent_to_user_id: Optional[str]
    sent_at: Optional[dt.datetime]
    created_at: dt.datetime
    author_name: Optional[str] = None


def summary_to_response(summary: DailySummary, author: Optional[User] = None) -> SummaryResponse:
    return SummaryResponse(
        id=summary.id,
        user_id=summary.user_id,
        content=summary.content,
        date=summary.date,
        status=summary.status,
        sent_to_user_id=summary.sent_to_user_id,
        sent_at=to_utc(summary.sent_at) if summary.sent_at else None,
        created_at=to_utc(summary.created_at),
        author_name=author.display_name if author else None,
    )


@router.post("/daily-summary")
async def generate_summary(
    user: UserContext = Depends(require_user),
    ai_service: GenerativeTextService = Depends(get_ai_service),
):
    return sse_response(summaries.summary_events(user.user_id, ai_service))


@router.get("/daily-summaries", response_model=List[SummaryResponse])
async def list_summaries(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return [summary_to_response(s) for s in await summaries.list_summaries(db, user.user_id)]


@router.get("/daily-summaries/received", response_model=List[SummaryResponse])
async def received_summaries(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await summaries.received_summaries(db, user.user_id)
    return [summary_to_response(summary, author) for summary, author in rows]


@router.post("/daily-summaries", response_model=SummaryResponse, status_code=status.HTTP_201_CREATED)
async def save_summary(
    data: SummarySave,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    summary = await summaries.save_summary(db, user.user_id, data.content, data.date)
    return summary_to_response(summary)


@router.post("/daily-summary/{summary_id}/send", response_model=SummaryResponse)
async def send_summary(
    summary_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    summary = await summaries.send_summary(db, summary_id, user.user_id)
    return summary_to_response(summary)


@router.delete("/daily-summary/{summary_id}")
async def delete_summary(
    summary_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await summaries.delete_summary(db, summary_id, user.user_id)
    return {"status": "deleted", "id": summary_id}
