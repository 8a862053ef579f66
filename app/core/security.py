"""
DocuMind - Security Module

Login is delegated to an external OAuth-style identity provider. Once the
provider's callback has run, the browser carries the user id in the session
cookie; every API request resolves it back to a `users` row here.

Provides:
- `upsert_user_from_profile` for the provider callback (first login creates the user)
- FastAPI dependencies `get_current_user`, `require_user`, `require_admin`
- Upload filename sanitization
"""

import logging
import re
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.user_context import UserContext, UserRole, UserType
from app.models.models import User

logger = logging.getLogger(__name__)

security_bearer = HTTPBearer(auto_error=False)


# =============================================================================
# Identity provider callback
# =============================================================================

async def upsert_user_from_profile(db: AsyncSession, profile: dict[str, Any]) -> User:
    """
    Create the user on first login, refresh profile fields afterwards.

    Expected profile keys: id (required), email, first_name, last_name,
    profile_image_url. Role and org fields are never taken from the provider.
    """
    user_id = str(profile.get("id") or "").strip()
    if not user_id:
        raise ValueError("identity profile has no id")

    user = await db.get(User, user_id)
    if user is None:
        user = User(
            id=user_id,
            role=UserRole.USER.value,
            user_type=UserType.USER.value,
        )
        db.add(user)
        logger.info("Created user %s on first login", user_id)

    for field in ("email", "first_name", "last_name", "profile_image_url"):
        value = profile.get(field)
        if value:
            setattr(user, field, value)

    await db.flush()
    return user


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_bearer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[UserContext]:
    """
    Resolve the caller.

    Authentication sources (priority order):
    1. session cookie (set by the login callback)
    2. Authorization: Bearer <user id>
    """
    user_id = request.cookies.get(settings.session_cookie_name)
    if not user_id and credentials:
        user_id = credentials.credentials
    if not user_id:
        return None

    user = await db.get(User, user_id)
    if user is None:
        logger.info("Session refers to unknown user %s", user_id)
        return None
    return UserContext.from_user(user)


async def require_user(
    user: Optional[UserContext] = Depends(get_current_user),
) -> UserContext:
    """Require an authenticated user."""
    if user:
        return user
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_admin(
    user: UserContext = Depends(require_user),
) -> UserContext:
    """Require role == admin. Checked before any admin route touches data."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


# =============================================================================
# Input Sanitization
# =============================================================================

def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename to prevent path traversal.
    Removes path components and control characters.
    """
    if not filename:
        return ""

    filename = str(filename).replace("\\", "/").split("/")[-1]
    filename = re.sub(r'[\x00-\x1f\x7f]', '', filename)
    filename = re.sub(r'[<>:"|?*]', '', filename)

    if len(filename) > 255:
        filename = filename[:255]
    return filename
