"""
Intelligence Feed Store
Append-only, globally visible news posts plus per-user favorites.
"""

import logging
from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.models import IntelligencePost, UserFavorite

logger = logging.getLogger(__name__)


async def list_posts(db: AsyncSession, limit: Optional[int] = None) -> list[IntelligencePost]:
    """Newest published first."""
    stmt = select(IntelligencePost).order_by(
        IntelligencePost.published_at.desc(), IntelligencePost.id.desc()
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def bulk_insert(db: AsyncSession, rows: list[dict]) -> int:
    """
    Insert all rows in one statement. Nothing is written when it fails.
    The caller owns the commit.
    """
    if not rows:
        return 0
    await db.execute(insert(IntelligencePost), rows)
    return len(rows)


async def list_favorites(db: AsyncSession, user_id: str) -> list[int]:
    result = await db.execute(
        select(UserFavorite.intel_id)
        .where(UserFavorite.user_id == user_id)
        .order_by(UserFavorite.created_at.desc(), UserFavorite.id.desc())
    )
    return list(result.scalars().all())


async def get_post(db: AsyncSession, intel_id: int) -> IntelligencePost:
    post = await db.get(IntelligencePost, intel_id)
    if post is None:
        raise NotFoundError("Intelligence post not found")
    return post


async def toggle_favorite(db: AsyncSession, user_id: str, intel_id: int) -> bool:
    """
    Insert the favorite if absent, delete it if present.

    Returns the new membership. The unique (user_id, intel_id) constraint
    settles a concurrent double insert: the loser sees "already favorited".
    """
    await get_post(db, intel_id)

    result = await db.execute(
        delete(UserFavorite).where(
            UserFavorite.user_id == user_id,
            UserFavorite.intel_id == intel_id,
        )
    )
    if result.rowcount:
        await db.commit()
        return False

    db.add(UserFavorite(user_id=user_id, intel_id=intel_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Favorite %s/%s inserted concurrently", user_id, intel_id)
    return True
