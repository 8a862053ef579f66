"""
Knowledge File Router
=====================
Upload documents into the personal knowledge base. Text is extracted on
upload and stored with the file record so chat can use it as context.

Accepted: .txt, .pdf, .docx up to MAX_UPLOAD_SIZE_MB (10 MB by default).
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import ValidationError
from app.core.security import require_user, sanitize_filename
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.models.models import KnowledgeFile
from app.services import knowledge_files
from app.services.activity import record_activity
from app.services.text_extraction import TextExtractor, file_extension, get_text_extractor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/knowledge-files", tags=["Knowledge Base"])


# =============================================================================
# Request/Response Models
# =============================================================================

class FileMove(BaseModel):
    folder_id: Optional[int] = None


class KnowledgeFileResponse(BaseModel):
    id: int
    user_id: str
    folder_id: Optional[int]
    file_name: str
    file_type: str
    file_size: int
    content: str
    uploaded_at: datetime

    class Config:
        from_attributes = True


def file_to_response(record: KnowledgeFile) -> KnowledgeFileResponse:
    return KnowledgeFileResponse(
        id=record.id,
        user_id=record.user_id,
        folder_id=record.folder_id,
        file_name=record.file_name,
        file_type=record.file_type,
        file_size=record.file_size,
        content=record.content,
        uploaded_at=to_utc(record.uploaded_at),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=List[KnowledgeFileResponse])
async def list_files(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    records = await knowledge_files.list_files(db, user.user_id)
    return [file_to_response(r) for r in records]


@router.post("/upload", response_model=KnowledgeFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder_id: Optional[int] = Form(None),
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    extractor: TextExtractor = Depends(get_text_extractor),
):
    """
    Upload a document.

    Extraction failures never reject the upload; the stored content then
    names the file and its size instead.
    """
    file_name = sanitize_filename(file.filename or "")
    if not file_name:
        raise ValidationError("No file uploaded")

    file_type = file_extension(file_name)
    if file_type not in settings.allowed_extensions_set:
        raise ValidationError(
            f"Unsupported file type '.{file_type}'",
            details={"allowed": sorted(settings.allowed_extensions_set)},
        )

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(f"File exceeds the {settings.max_upload_size_mb} MB limit")

    content = knowledge_files.build_content(extractor, data, file_name, file_type)
    record = await knowledge_files.create_file(
        db,
        user.user_id,
        file_name=file_name,
        file_type=file_type,
        file_size=len(data),
        content=content,
        folder_id=folder_id,
    )
    await record_activity(db, user.user_id, "upload_file", "knowledge", detail=f"Uploaded file: {file_name}")
    return file_to_response(record)


@router.patch("/{file_id}/move", response_model=KnowledgeFileResponse)
async def move_file(
    file_id: int,
    data: FileMove,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    record = await knowledge_files.move_to_folder(db, file_id, user.user_id, data.folder_id)
    return file_to_response(record)


@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await knowledge_files.delete_file(db, file_id, user.user_id)
    return {"status": "deleted", "id": file_id}
