"""
Users, profile and departments.
"""

import base64
import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.core.user_context import UserRole, UserType
from app.models.models import Department, User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"first_name", "last_name", "phone", "job_title"}
ADMIN_FIELDS = {"role", "user_type", "department_id", "superior_id"}


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at, User.id))
    return list(result.scalars().all())


# =============================================================================
# Self-service profile
# =============================================================================

async def update_profile(db: AsyncSession, user_id: str, changes: dict[str, Any]) -> User:
    user = await get_user(db, user_id)
    for key, value in changes.items():
        if key in PROFILE_FIELDS:
            setattr(user, key, value.strip() if isinstance(value, str) else value)
    await db.commit()
    await db.refresh(user)
    return user


def avatar_data_url(data: bytes, content_type: Optional[str], max_bytes: int) -> str:
    """Encode an uploaded image as a data: URL after type and size checks."""
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Avatar must be an image")
    if not data:
        raise ValidationError("Avatar file is empty")
    if len(data) > max_bytes:
        raise ValidationError(f"Avatar exceeds {max_bytes // (1024 * 1024)} MB")
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


async def set_avatar(db: AsyncSession, user_id: str, data_url: str) -> User:
    user = await get_user(db, user_id)
    user.profile_image_url = data_url
    await db.commit()
    await db.refresh(user)
    return user


# =============================================================================
# Admin edits
# =============================================================================

async def admin_update_user(db: AsyncSession, user_id: str, changes: dict[str, Any]) -> User:
    """
    Change role, user type, department and superior.

    Referenced departments and superiors must exist, and nobody can be
    their own superior.
    """
    user = await get_user(db, user_id)

    if "role" in changes:
        try:
            changes["role"] = UserRole(changes["role"]).value
        except ValueError:
            raise ValidationError(f"Invalid role '{changes['role']}'")
    if "user_type" in changes:
        try:
            changes["user_type"] = UserType(changes["user_type"]).value
        except ValueError:
            raise ValidationError(f"Invalid user type '{changes['user_type']}'")

    department_id = changes.get("department_id")
    if department_id is not None and await db.get(Department, department_id) is None:
        raise NotFoundError("Department not found")

    superior_id = changes.get("superior_id")
    if superior_id is not None:
        if superior_id == user_id:
            raise ValidationError("A user cannot be their own superior")
        if await db.get(User, superior_id) is None:
            raise NotFoundError("Superior not found")

    for key, value in changes.items():
        if key in ADMIN_FIELDS:
            setattr(user, key, value)
    await db.commit()
    await db.refresh(user)
    logger.info("User %s updated by admin: %s", user_id, sorted(k for k in changes if k in ADMIN_FIELDS))
    return user


# =============================================================================
# Departments
# =============================================================================

async def list_departments(db: AsyncSession) -> list[Department]:
    result = await db.execute(select(Department).order_by(Department.name, Department.id))
    return list(result.scalars().all())


async def _get_department(db: AsyncSession, department_id: int) -> Department:
    department = await db.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def _clean_department_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Department name must not be empty")
    return cleaned


async def create_department(db: AsyncSession, name: str, parent_id: Optional[int] = None) -> Department:
    name = _clean_department_name(name)
    if parent_id is not None:
        await _get_department(db, parent_id)
    department = Department(name=name, parent_id=parent_id)
    db.add(department)
    await db.commit()
    await db.refresh(department)
    return department


async def _is_ancestor(db: AsyncSession, candidate_id: int, department_id: int) -> bool:
    """True when department_id appears on candidate_id's parent chain (or equals it)."""
    seen: set[int] = set()
    current: Optional[int] = candidate_id
    while current is not None and current not in seen:
        if current == department_id:
            return True
        seen.add(current)
        parent = await db.get(Department, current)
        current = parent.parent_id if parent else None
    return False


async def update_department(db: AsyncSession, department_id: int, changes: dict[str, Any]) -> Department:
    department = await _get_department(db, department_id)

    if "name" in changes:
        department.name = _clean_department_name(changes["name"])

    if "parent_id" in changes:
        parent_id = changes["parent_id"]
        if parent_id is not None:
            await _get_department(db, parent_id)
            if await _is_ancestor(db, parent_id, department_id):
                raise ValidationError("A department cannot be moved under itself or its sub-department")
        department.parent_id = parent_id

    await db.commit()
    await db.refresh(department)
    return department


async def delete_department(db: AsyncSession, department_id: int) -> None:
    """Child departments move to the top level and members lose their department."""
    department = await _get_department(db, department_id)
    await db.execute(
        update(Department).where(Department.parent_id == department_id).values(parent_id=None)
    )
    await db.execute(
        update(User).where(User.department_id == department_id).values(department_id=None)
    )
    await db.delete(department)
    await db.commit()
    logger.info("Department %s deleted", department_id)
