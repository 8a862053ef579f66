"""
Task Board Router
=================
Kanban tasks (todo / in_progress / done) with comments, plus a team view for
department heads.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import ForbiddenError
from app.core.security import require_user
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import Task, TaskComment, User
from app.services import tasks as task_service
from app.services.activity import record_activity


router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


# =============================================================================
# Request/Response Models
# =============================================================================

class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    status: Optional[str] = None      # todo, in_progress, done (default todo)
    priority: Optional[str] = None    # low, medium, high (default medium)
    assigned_by: Optional[str] = None
    due_date: Optional[date] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_by: Optional[str] = None
    due_date: Optional[date] = None


class TaskResponse(BaseModel):
    id: int
    user_id: str
    title: str
    description: Optional[str]
    status: str
    priority: str
    assigned_by: Optional[str]
    due_date: Optional[date]
    completed_at: Optional[datetime]
    created_at: datetime
    owner_name: Optional[str] = None

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    id: int
    task_id: int
    user_id: str
    user_name: Optional[str] = None
    content: str
    created_at: datetime


def task_to_response(task: Task, owner: Optional[User] = None) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        assigned_by=task.assigned_by,
        due_date=task.due_date,
        completed_at=to_utc(task.completed_at) if task.completed_at else None,
        created_at=to_utc(task.created_at),
        owner_name=owner.display_name if owner else None,
    )


def comment_to_response(comment: TaskComment, author: Optional[User] = None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        task_id=comment.task_id,
        user_id=comment.user_id,
        user_name=author.display_name if author else None,
        content=comment.content,
        created_at=to_utc(comment.created_at),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return [task_to_response(t) for t in await task_service.list_tasks(db, user.user_id)]


@router.get("/team", response_model=List[TaskResponse])
async def list_team_tasks(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """All tasks of the caller's department. Department heads only."""
    if not user.is_department_head:
        raise ForbiddenError("Only department heads can view team tasks")
    rows = await task_service.team_tasks(db, user.department_id)
    return [task_to_response(task, owner) for task, owner in rows]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.create_task(db, user.user_id, **data.model_dump())
    return task_to_response(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    task, became_done = await task_service.update_task(
        db, task_id, user.user_id, data.model_dump(exclude_unset=True)
    )
    if became_done:
        await record_activity(db, user.user_id, "complete_task", "tasks", detail=f"Completed task: {task.title}")
    return task_to_response(task)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await task_service.delete_task(db, task_id, user.user_id)
    return {"status": "deleted", "id": task_id}


@router.get("/{task_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    task_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await task_service.list_comments(db, task_id, user.user_id)
    return [comment_to_response(comment, author) for comment, author in rows]


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: int,
    data: CommentCreate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await task_service.add_comment(db, task_id, user.user_id, data.content)
    return comment_to_response(comment)
