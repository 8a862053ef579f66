"""
Daily Summaries

AI-written recap of the caller's day (completed tasks, open tasks, today's
activity). Summaries start as drafts; sending one to the user's superior
makes it immutable.
"""

import asyncio
import logging
from datetime import date
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.errors import NotFoundError, ValidationError
from app.core.sse import sse_event
from app.core.utc import local_now, utc_now
from app.models.models import ActivityLog, DailySummary, SummaryStatus, Task, TaskStatus, User
from app.services.activity import activity_today, create_notification, record_activity
from app.services.ai_service import ChatTurn, GenerativeTextService
from app.services.tasks import completed_today, open_tasks

logger = logging.getLogger(__name__)


def build_summary_prompt(
    today: date,
    completed: list[Task],
    pending: list[Task],
    activity: list[ActivityLog],
) -> str:
    if completed:
        completed_info = "\n".join(
            f"- {t.title}" + (f": {t.description}" if t.description else "") for t in completed
        )
    else:
        completed_info = "No tasks completed today"

    if pending:
        pending_info = "\n".join(
            f"- [{'in progress' if t.status == TaskStatus.in_progress.value else 'todo'}] {t.title}"
            + (f" (due: {t.due_date.isoformat()})" if t.due_date else "")
            for t in pending
        )
    else:
        pending_info = "No open tasks"

    if activity:
        activity_info = "\n".join(f"- [{a.module}] {a.detail or a.action}" for a in activity)
    else:
        activity_info = "No activity recorded today"

    return f"""Write a structured daily sales report. Today is {today.isoformat()}.

Today's work data:

[Completed tasks]
{completed_info}

[Open / in-progress tasks]
{pending_info}

[Today's activity]
{activity_info}

Use this structure:
1. Summary of the day (main results in brief)
2. Completed items
3. In progress / follow-ups
4. Plan for tomorrow (based on the open tasks)
5. Risks and items needing coordination (e.g. tasks close to their due date)

Keep it professional and concise, suitable for reporting to a manager."""


async def summary_events(user_id: str, ai_service: GenerativeTextService) -> AsyncIterator[str]:
    """SSE event stream of a freshly generated summary; saved as today's draft on completion."""
    today = local_now().date()
    async with get_db_session() as db:
        prompt = build_summary_prompt(
            today,
            await completed_today(db, user_id),
            await open_tasks(db, user_id),
            list(reversed(await activity_today(db, user_id))),
        )

    parts: list[str] = []
    try:
        async for chunk in ai_service.stream([ChatTurn(role="user", text=prompt)]):
            parts.append(chunk)
            yield sse_event({"content": chunk})

        async with get_db_session() as db:
            db.add(DailySummary(
                user_id=user_id,
                content="".join(parts),
                date=today,
                status=SummaryStatus.draft.value,
            ))
            await record_activity(
                db, user_id, "generate_summary", "summary",
                detail="Generated daily work summary",
                commit=False,
            )
    except asyncio.CancelledError:
        logger.info("Client left summary generation for %s; draft discarded", user_id)
        raise
    except Exception:
        logger.exception("Daily summary generation failed for %s", user_id)
        yield sse_event({"error": "Failed to generate summary"})
        return

    yield sse_event({"done": True})


async def list_summaries(db: AsyncSession, user_id: str) -> list[DailySummary]:
    result = await db.execute(
        select(DailySummary)
        .where(DailySummary.user_id == user_id)
        .order_by(DailySummary.date.desc(), DailySummary.id.desc())
    )
    return list(result.scalars().all())


async def save_summary(
    db: AsyncSession,
    user_id: str,
    content: str,
    summary_date: Optional[date] = None,
) -> DailySummary:
    if not (content or "").strip():
        raise ValidationError("Summary content is required")
    summary = DailySummary(
        user_id=user_id,
        content=content,
        date=summary_date or local_now().date(),
        status=SummaryStatus.draft.value,
    )
    db.add(summary)
    await db.commit()
    await db.refresh(summary)
    return summary


async def _get_own(db: AsyncSession, summary_id: int, user_id: str) -> DailySummary:
    result = await db.execute(
        select(DailySummary).where(DailySummary.id == summary_id, DailySummary.user_id == user_id)
    )
    summary = result.scalar_one_or_none()
    if summary is None:
        raise NotFoundError("Summary not found")
    return summary


async def send_summary(db: AsyncSession, summary_id: int, user_id: str) -> DailySummary:
    """
    Forward a draft to the author's superior and notify them.

    Raises:
        ValidationError: no superior on record, or already sent
    """
    summary = await _get_own(db, summary_id, user_id)
    if summary.status == SummaryStatus.sent.value:
        raise ValidationError("Summary has already been sent")

    author = await db.get(User, user_id)
    if author is None or not author.superior_id:
        raise ValidationError("No superior is set for this user")

    summary.status = SummaryStatus.sent.value
    summary.sent_to_user_id = author.superior_id
    summary.sent_at = utc_now()
    await create_notification(
        db,
        user_id=author.superior_id,
        type="summary_received",
        title=f"{author.display_name} sent you a daily summary",
        content=summary.content[:200],
        related_id=summary.id,
        related_type="daily_summary",
        from_user_id=user_id,
        commit=False,
    )
    await db.commit()
    await db.refresh(summary)
    logger.info("Summary %s sent by %s to %s", summary.id, user_id, author.superior_id)
    return summary


async def delete_summary(db: AsyncSession, summary_id: int, user_id: str) -> None:
    summary = await _get_own(db, summary_id, user_id)
    if summary.status == SummaryStatus.sent.value:
        raise ValidationError("A sent summary cannot be deleted")
    await db.delete(summary)
    await db.commit()


async def received_summaries(db: AsyncSession, user_id: str) -> list[tuple[DailySummary, Optional[User]]]:
    """Summaries sent to this user, with their authors."""
    result = await db.execute(
        select(DailySummary, User)
        .outerjoin(User, User.id == DailySummary.user_id)
        .where(
            DailySummary.sent_to_user_id == user_id,
            DailySummary.status == SummaryStatus.sent.value,
        )
        .order_by(DailySummary.sent_at.desc(), DailySummary.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]
