"""
Task Board Store

Status transitions are unrestricted. The update call itself owns the
completion timestamp: entering `done` stamps `completed_at`, leaving `done`
clears it again.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.core.utc import start_of_today_utc, utc_now
from app.models.models import Task, TaskComment, TaskPriority, TaskStatus, User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"title", "description", "status", "priority", "assigned_by", "due_date"}


def _check_enum(value: str, enum_cls, field_name: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}' (allowed: {allowed})")


async def get_task(db: AsyncSession, task_id: int, user_id: str) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id, Task.user_id == user_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def list_tasks(db: AsyncSession, user_id: str) -> list[Task]:
    result = await db.execute(
        select(Task).where(Task.user_id == user_id).order_by(Task.created_at.desc(), Task.id.desc())
    )
    return list(result.scalars().all())


async def create_task(
    db: AsyncSession,
    user_id: str,
    title: str,
    description: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assigned_by: Optional[str] = None,
    due_date: Optional[date] = None,
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required")

    status = _check_enum(status or TaskStatus.todo.value, TaskStatus, "status")
    priority = _check_enum(priority or TaskPriority.medium.value, TaskPriority, "priority")
    task = Task(
        user_id=user_id,
        title=title,
        description=description,
        status=status,
        priority=priority,
        assigned_by=assigned_by,
        due_date=due_date,
        completed_at=utc_now() if status == TaskStatus.done.value else None,
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def update_task(
    db: AsyncSession,
    task_id: int,
    user_id: str,
    changes: dict[str, Any],
) -> tuple[Task, bool]:
    """
    Apply a partial update.

    Returns the task and whether this call moved it into `done`, so the
    caller can record a completion activity.
    """
    task = await get_task(db, task_id, user_id)
    previous_status = task.status

    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "title":
            value = (value or "").strip()
            if not value:
                raise ValidationError("Task title is required")
        elif key == "status":
            value = _check_enum(value, TaskStatus, "status")
        elif key == "priority":
            value = _check_enum(value, TaskPriority, "priority")
        setattr(task, key, value)

    became_done = task.status == TaskStatus.done.value and previous_status != TaskStatus.done.value
    if became_done:
        task.completed_at = utc_now()
    elif task.status != TaskStatus.done.value:
        task.completed_at = None

    await db.commit()
    await db.refresh(task)
    return task, became_done


async def delete_task(db: AsyncSession, task_id: int, user_id: str) -> None:
    task = await get_task(db, task_id, user_id)
    await db.execute(delete(TaskComment).where(TaskComment.task_id == task.id))
    await db.delete(task)
    await db.commit()


async def completed_today(
    db: AsyncSession,
    user_id: str,
    now: Optional[datetime] = None,
) -> list[Task]:
    result = await db.execute(
        select(Task)
        .where(
            Task.user_id == user_id,
            Task.status == TaskStatus.done.value,
            Task.completed_at >= start_of_today_utc(now),
        )
        .order_by(Task.completed_at)
    )
    return list(result.scalars().all())


async def open_tasks(db: AsyncSession, user_id: str) -> list[Task]:
    result = await db.execute(
        select(Task)
        .where(Task.user_id == user_id, Task.status != TaskStatus.done.value)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return list(result.scalars().all())


# =============================================================================
# Team view
# =============================================================================

async def team_tasks(db: AsyncSession, department_id: Optional[int]) -> list[tuple[Task, User]]:
    """Tasks of every member of a department, with their owner."""
    if department_id is None:
        return []
    result = await db.execute(
        select(Task, User)
        .join(User, User.id == Task.user_id)
        .where(User.department_id == department_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


# =============================================================================
# Comments
# =============================================================================

async def list_comments(db: AsyncSession, task_id: int, user_id: str) -> list[tuple[TaskComment, Optional[User]]]:
    await get_task(db, task_id, user_id)
    result = await db.execute(
        select(TaskComment, User)
        .outerjoin(User, User.id == TaskComment.user_id)
        .where(TaskComment.task_id == task_id)
        .order_by(TaskComment.created_at, TaskComment.id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def add_comment(db: AsyncSession, task_id: int, user_id: str, content: str) -> TaskComment:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment must not be empty")
    await get_task(db, task_id, user_id)

    comment = TaskComment(task_id=task_id, user_id=user_id, content=content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment
