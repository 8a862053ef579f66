"""
Folder Router
=============
Per-user knowledge base folders, at most three levels deep.

- GET    /api/folders              flat list (sort order, then name)
- GET    /api/folders/tree         nested view
- POST   /api/folders              create at root or under a parent
- PATCH  /api/folders/{id}/rename
- PATCH  /api/folders/{id}/move    re-parent (null = root)
- DELETE /api/folders/{id}         delete subtree, files move to root
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_user
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import Folder
from app.services import folder_tree


router = APIRouter(prefix="/api/folders", tags=["Folders"])


# =============================================================================
# Request/Response Models
# =============================================================================

class FolderCreate(BaseModel):
    name: str
    parent_id: Optional[int] = None


class FolderRename(BaseModel):
    name: str


class FolderMove(BaseModel):
    parent_id: Optional[int] = None


class FolderResponse(BaseModel):
    id: int
    user_id: str
    name: str
    parent_id: Optional[int]
    level: int
    sort_order: int
    created_at: datetime

    class Config:
        from_attributes = True


class FolderNode(BaseModel):
    id: int
    name: str
    parent_id: Optional[int]
    level: int
    sort_order: int
    children: List["FolderNode"] = []


def folder_to_response(folder: Folder) -> FolderResponse:
    return FolderResponse(
        id=folder.id,
        user_id=folder.user_id,
        name=folder.name,
        parent_id=folder.parent_id,
        level=folder.level,
        sort_order=folder.sort_order,
        created_at=to_utc(folder.created_at),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=List[FolderResponse])
async def list_folders(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    folders = await folder_tree.list_folders(db, user.user_id)
    return [folder_to_response(f) for f in folders]


@router.get("/tree", response_model=List[FolderNode])
async def get_folder_tree(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Nested folder tree; folders whose parent is gone show up as roots."""
    return await folder_tree.folder_tree(db, user.user_id)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await folder_tree.create_folder(db, user.user_id, data.name, data.parent_id)
    return folder_to_response(folder)


@router.patch("/{folder_id}/rename", response_model=FolderResponse)
async def rename_folder(
    folder_id: int,
    data: FolderRename,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await folder_tree.rename_folder(db, folder_id, user.user_id, data.name)
    return folder_to_response(folder)


@router.patch("/{folder_id}/move", response_model=FolderResponse)
async def move_folder(
    folder_id: int,
    data: FolderMove,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await folder_tree.move_folder(db, folder_id, user.user_id, data.parent_id)
    return folder_to_response(folder)


@router.delete("/{folder_id}")
async def delete_folder(
    folder_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await folder_tree.delete_folder(db, folder_id, user.user_id)
    return {"status": "deleted", "id": folder_id, "folders_removed": removed}
