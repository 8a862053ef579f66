"""
Knowledge File Store
Uploaded documents: metadata plus the extracted full text that feeds chat context.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.models.models import Folder, KnowledgeFile
from app.services.text_extraction import TextExtractor

logger = logging.getLogger(__name__)

# Shorter extracted text is replaced by a placeholder so the chat context
# always keeps a reference to the upload.
MIN_CONTENT_CHARS = 5


def build_content(extractor: TextExtractor, data: bytes, file_name: str, file_type: str) -> str:
    """
    Extracted text for an upload, never empty.

    A failed extraction yields a fallback naming the file and its byte size;
    the upload itself is still accepted.
    """
    size = len(data)
    try:
        content = extractor.extract(data, file_type).text
    except Exception as e:
        logger.warning("Text extraction failed for %s (%s bytes): %s", file_name, size, e)
        content = (
            f"[{file_type.upper()} file: {file_name}] "
            f"Text could not be extracted. File uploaded, size: {size} bytes."
        )

    if len(content.strip()) < MIN_CONTENT_CHARS:
        content = (
            f"[File: {file_name}] No readable text was found in this document. "
            f"File size: {size} bytes."
        )
    return content


async def _owned_folder_exists(db: AsyncSession, folder_id: int, user_id: str) -> bool:
    result = await db.execute(
        select(Folder.id).where(Folder.id == folder_id, Folder.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def list_files(db: AsyncSession, user_id: str) -> list[KnowledgeFile]:
    result = await db.execute(
        select(KnowledgeFile)
        .where(KnowledgeFile.user_id == user_id)
        .order_by(KnowledgeFile.uploaded_at.desc(), KnowledgeFile.id.desc())
    )
    return list(result.scalars().all())


async def create_file(
    db: AsyncSession,
    user_id: str,
    file_name: str,
    file_type: str,
    file_size: int,
    content: str,
    folder_id: Optional[int] = None,
) -> KnowledgeFile:
    if not content:
        raise ValidationError("File content is required")
    if folder_id is not None and not await _owned_folder_exists(db, folder_id, user_id):
        raise NotFoundError("Folder not found")

    record = KnowledgeFile(
        user_id=user_id,
        folder_id=folder_id,
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        content=content,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info("User %s stored %s (%s bytes) as file %s", user_id, file_name, file_size, record.id)
    return record


async def delete_file(db: AsyncSession, file_id: int, user_id: str) -> None:
    result = await db.execute(
        select(KnowledgeFile).where(KnowledgeFile.id == file_id, KnowledgeFile.user_id == user_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("File not found")
    await db.delete(record)
    await db.commit()


async def move_to_folder(
    db: AsyncSession,
    file_id: int,
    user_id: str,
    folder_id: Optional[int],
) -> KnowledgeFile:
    """Move a file into one of the caller's folders, or to the root with None."""
    result = await db.execute(
        select(KnowledgeFile).where(KnowledgeFile.id == file_id, KnowledgeFile.user_id == user_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("File not found")
    if folder_id is not None and not await _owned_folder_exists(db, folder_id, user_id):
        raise NotFoundError("Folder not found")

    record.folder_id = folder_id
    await db.commit()
    await db.refresh(record)
    return record
