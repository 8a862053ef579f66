"""
Profile Router
Self-service profile edits and avatar upload.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import require_user
from app.core.user_context import UserContext
from app.routers.admin import UserResponse, user_to_response
from app.services import users


router = APIRouter(prefix="/api/users", tags=["Profile"])


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    job_title: Optional[str] = None


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return user_to_response(await users.get_user(db, user.user_id))


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: ProfileUpdate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await users.update_profile(db, user.user_id, data.model_dump(exclude_unset=True))
    return user_to_response(updated)


@router.post("/me/avatar", response_model=UserResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Store the image inline as a data: URL (max MAX_AVATAR_SIZE_MB)."""
    data = await file.read()
    data_url = users.avatar_data_url(data, file.content_type, settings.max_avatar_bytes)
    return user_to_response(await users.set_avatar(db, user.user_id, data_url))
