"""
Admin Router
============
Admin-only tooling. Every endpoint checks the role before touching data.

- Users:        GET /api/admin/users, PATCH /api/admin/users/{id}
- Handover:     GET /api/admin/users/{id}/assets, POST /api/admin/handover,
                GET /api/admin/handover-logs
- Departments:  GET/POST /api/admin/departments,
                PATCH/DELETE /api/admin/departments/{id}
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_admin
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import Department, HandoverLog, User
from app.services import handover, users
from app.services.activity import create_notification, record_activity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# =============================================================================
# Request/Response Models
# =============================================================================

class UserResponse(BaseModel):
    id: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    display_name: str
    profile_image_url: Optional[str]
    phone: Optional[str]
    job_title: Optional[str]
    role: str
    user_type: str
    department_id: Optional[int]
    superior_id: Optional[str]
    created_at: datetime


class AdminUserUpdate(BaseModel):
    role: Optional[str] = None
    user_type: Optional[str] = None
    department_id: Optional[int] = None
    superior_id: Optional[str] = None


class AssetCounts(BaseModel):
    files: int
    folders: int
    tasks: int
    chat_sessions: int


class HandoverRequest(BaseModel):
    from_user_id: str
    to_user_id: str
    note: Optional[str] = None


class HandoverLogResponse(BaseModel):
    id: int
    from_user_id: str
    to_user_id: str
    operator_id: str
    files_transferred: int
    folders_transferred: int
    tasks_transferred: int
    chat_sessions_transferred: int
    note: Optional[str]
    created_at: datetime


class DepartmentCreate(BaseModel):
    name: str
    parent_id: Optional[int] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = None
    parent_id: Optional[int] = None


class DepartmentResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        display_name=user.display_name,
        profile_image_url=user.profile_image_url,
        phone=user.phone,
        job_title=user.job_title,
        role=user.role,
        user_type=user.user_type,
        department_id=user.department_id,
        superior_id=user.superior_id,
        created_at=to_utc(user.created_at),
    )


def log_to_response(log: HandoverLog) -> HandoverLogResponse:
    return HandoverLogResponse(
        id=log.id,
        from_user_id=log.from_user_id,
        to_user_id=log.to_user_id,
        operator_id=log.operator_id,
        files_transferred=log.files_transferred,
        folders_transferred=log.folders_transferred,
        tasks_transferred=log.tasks_transferred,
        chat_sessions_transferred=log.chat_sessions_transferred,
        note=log.note,
        created_at=to_utc(log.created_at),
    )


def department_to_response(department: Department) -> DepartmentResponse:
    return DepartmentResponse(
        id=department.id,
        name=department.name,
        parent_id=department.parent_id,
        created_at=to_utc(department.created_at),
    )


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return [user_to_response(u) for u in await users.list_users(db)]


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await users.admin_update_user(db, user_id, data.model_dump(exclude_unset=True))
    return user_to_response(user)


# =============================================================================
# Asset Handover
# =============================================================================

@router.get("/users/{user_id}/assets", response_model=AssetCounts)
async def get_user_assets(
    user_id: str,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await users.get_user(db, user_id)
    return await handover.get_user_asset_counts(db, user_id)


@router.post("/handover", response_model=HandoverLogResponse, status_code=status.HTTP_201_CREATED)
async def transfer_assets(
    data: HandoverRequest,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Move every open asset of one user to another and record the handover."""
    log = await handover.transfer_assets(
        db, data.from_user_id, data.to_user_id, admin.user_id, note=data.note
    )

    from_user = await users.get_user(db, data.from_user_id)
    await record_activity(
        db, admin.user_id, "handover", "admin",
        detail=f"Handed over assets of {from_user.display_name} to {data.to_user_id}",
        commit=False,
    )
    await create_notification(
        db,
        user_id=data.to_user_id,
        type="handover_received",
        title=f"You received the work assets of {from_user.display_name}",
        content=(
            f"{log.files_transferred} files, {log.folders_transferred} folders, "
            f"{log.tasks_transferred} tasks, {log.chat_sessions_transferred} chat sessions"
        ),
        related_id=log.id,
        related_type="handover",
        from_user_id=admin.user_id,
        commit=False,
    )
    await db.commit()
    return log_to_response(log)


@router.get("/handover-logs", response_model=List[HandoverLogResponse])
async def list_handover_logs(
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return [log_to_response(log) for log in await handover.list_handover_logs(db)]


# =============================================================================
# Departments
# =============================================================================

@router.get("/departments", response_model=List[DepartmentResponse])
async def list_departments(
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return [department_to_response(d) for d in await users.list_departments(db)]


@router.post("/departments", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    data: DepartmentCreate,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    department = await users.create_department(db, data.name, data.parent_id)
    return department_to_response(department)


@router.patch("/departments/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    data: DepartmentUpdate,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    department = await users.update_department(db, department_id, data.model_dump(exclude_unset=True))
    return department_to_response(department)


@router.delete("/departments/{department_id}")
async def delete_department(
    department_id: int,
    admin: UserContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await users.delete_department(db, department_id)
    return {"status": "deleted", "id": department_id}
