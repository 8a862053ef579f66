"""
Folder Tree Manager

Per-user folder hierarchy capped at MAX_FOLDER_LEVEL (3) levels.

Invariants enforced here (the client also checks depth, but the server is the
authority):
- root folders have level 1, every other folder has parent.level + 1
- no folder is its own parent, and no folder is moved under its own descendant
- no create or move leaves any folder deeper than MAX_FOLDER_LEVEL
- a folder whose parent no longer exists is treated as a root

Moves cascade the level recomputation to the whole moved subtree, so the
level invariant holds transitively. Deletes remove the subtree depth-first and
re-parent every contained knowledge file to the root; both run as a single
transaction.
"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DepthExceededError, NotFoundError, ValidationError
from app.models.models import MAX_FOLDER_LEVEL, Folder, KnowledgeFile

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name must not be empty")
    if len(cleaned) > 255:
        raise ValidationError("Folder name is too long")
    return cleaned


async def _get_owned(db: AsyncSession, folder_id: int, user_id: str) -> Optional[Folder]:
    result = await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_folders(db: AsyncSession, user_id: str) -> list[Folder]:
    result = await db.execute(
        select(Folder)
        .where(Folder.user_id == user_id)
        .order_by(Folder.sort_order, Folder.name)
    )
    return list(result.scalars().all())


def _children_index(folders: list[Folder]) -> dict[Optional[int], list[Folder]]:
    """parent id -> children, with orphans filed under None (root)."""
    ids = {f.id for f in folders}
    index: dict[Optional[int], list[Folder]] = defaultdict(list)
    for folder in folders:
        parent = folder.parent_id if folder.parent_id in ids else None
        index[parent].append(folder)
    return index


def _descendants(index: dict[Optional[int], list[Folder]], folder_id: int) -> list[Folder]:
    """All descendants of folder_id, parents before children."""
    found: list[Folder] = []
    stack = list(index.get(folder_id, []))
    while stack:
        folder = stack.pop()
        found.append(folder)
        stack.extend(index.get(folder.id, []))
    return found


def _subtree_height(index: dict[Optional[int], list[Folder]], folder_id: int) -> int:
    """1 for a leaf, 2 for a folder with children only, ..."""
    children = index.get(folder_id, [])
    if not children:
        return 1
    return 1 + max(_subtree_height(index, child.id) for child in children)


async def folder_tree(db: AsyncSession, user_id: str) -> list[dict]:
    """Nested view of the user's folders. Orphans appear as roots."""
    folders = await list_folders(db, user_id)
    index = _children_index(folders)

    def build(folder: Folder) -> dict:
        return {
            "id": folder.id,
            "name": folder.name,
            "parent_id": folder.parent_id,
            "level": folder.level,
            "sort_order": folder.sort_order,
            "children": [build(child) for child in index.get(folder.id, [])],
        }

    return [build(root) for root in index.get(None, [])]


async def create_folder(
    db: AsyncSession,
    user_id: str,
    name: str,
    parent_id: Optional[int] = None,
) -> Folder:
    """
    Create a folder at the root or under one of the user's folders.

    Raises:
        NotFoundError: parent missing or owned by someone else
        DepthExceededError: the new folder would sit below level 3
    """
    name = _clean_name(name)
    level = 1
    if parent_id is not None:
        parent = await _get_owned(db, parent_id, user_id)
        if parent is None:
            raise NotFoundError("Parent folder not found")
        level = parent.level + 1
        if level > MAX_FOLDER_LEVEL:
            raise DepthExceededError(f"Maximum folder depth is {MAX_FOLDER_LEVEL} levels")

    folder = Folder(user_id=user_id, name=name, parent_id=parent_id, level=level, sort_order=0)
    db.add(folder)
    await db.commit()
    await db.refresh(folder)
    logger.info("User %s created folder %s at level %s", user_id, folder.id, level)
    return folder


async def rename_folder(db: AsyncSession, folder_id: int, user_id: str, name: str) -> Folder:
    name = _clean_name(name)
    folder = await _get_owned(db, folder_id, user_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    folder.name = name
    await db.commit()
    await db.refresh(folder)
    return folder


async def move_folder(
    db: AsyncSession,
    folder_id: int,
    user_id: str,
    new_parent_id: Optional[int],
) -> Folder:
    """
    Re-parent a folder and recompute the level of it and its whole subtree.

    Rejected (no state change) when the target is the folder itself, is
    missing or foreign, lies inside the moved subtree, or when the deepest
    descendant would end up below level 3.
    """
    if new_parent_id is not None and new_parent_id == folder_id:
        raise ValidationError("A folder cannot be its own parent")

    folder = await _get_owned(db, folder_id, user_id)
    if folder is None:
        raise NotFoundError("Folder not found")

    folders = await list_folders(db, user_id)
    index = _children_index(folders)
    subtree = _descendants(index, folder_id)

    new_level = 1
    if new_parent_id is not None:
        parent = await _get_owned(db, new_parent_id, user_id)
        if parent is None:
            raise NotFoundError("Target folder not found")
        if any(d.id == new_parent_id for d in subtree):
            raise ValidationError("A folder cannot be moved into its own subfolder")
        new_level = parent.level + 1

    deepest = new_level + _subtree_height(index, folder_id) - 1
    if deepest > MAX_FOLDER_LEVEL:
        raise DepthExceededError(f"Maximum folder depth is {MAX_FOLDER_LEVEL} levels")

    folder.parent_id = new_parent_id
    folder.level = new_level
    by_id = {f.id: f for f in folders}
    by_id[folder.id] = folder
    for descendant in subtree:  # parents come before children
        by_id[descendant.id].level = by_id[descendant.parent_id].level + 1

    await db.commit()
    await db.refresh(folder)
    logger.info(
        "User %s moved folder %s under %s (level %s, %s descendants relevelled)",
        user_id, folder_id, new_parent_id, new_level, len(subtree),
    )
    return folder


async def delete_folder(db: AsyncSession, folder_id: int, user_id: str) -> int:
    """
    Delete a folder and all of its descendants.

    Files inside any deleted folder move to the root; none are deleted.
    Returns the number of folders removed.
    """
    folder = await _get_owned(db, folder_id, user_id)
    if folder is None:
        raise NotFoundError("Folder not found")

    index = _children_index(await list_folders(db, user_id))
    # children first, the folder itself last
    doomed = [f.id for f in reversed(_descendants(index, folder_id))] + [folder_id]

    try:
        for doomed_id in doomed:
            await db.execute(
                update(KnowledgeFile)
                .where(KnowledgeFile.folder_id == doomed_id, KnowledgeFile.user_id == user_id)
                .values(folder_id=None)
            )
            await db.execute(
                delete(Folder).where(Folder.id == doomed_id, Folder.user_id == user_id)
            )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Deleting folder %s for user %s failed; rolled back", folder_id, user_id)
        raise

    logger.info("User %s deleted folder %s (%s folders total)", user_id, folder_id, len(doomed))
    return len(doomed)
