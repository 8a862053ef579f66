"""
Dashboard Router
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_user
from app.core.user_context import UserContext
from app.core.utc import to_utc
from app.routers.intelligence import post_to_response
from app.routers.knowledge_files import file_to_response
from app.routers.tasks import task_to_response
from app.services.dashboard import get_dashboard


router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("")
async def dashboard(
    user: UserContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Counts and recent items for the home screen, computed fresh on every call."""
    data = await get_dashboard(db, user.user_id)
    return {
        "stats": data["stats"],
        "recent_files": [
            file_to_response(f).model_dump(exclude={"content"}) for f in data["recent_files"]
        ],
        "open_tasks": [task_to_response(t) for t in data["open_tasks"]],
        "recent_intelligence": [post_to_response(p) for p in data["recent_intelligence"]],
        "recent_activity": [
            {
                "id": a.id,
                "action": a.action,
                "detail": a.detail,
                "module": a.module,
                "created_at": to_utc(a.created_at),
            }
            for a in data["recent_activity"]
        ],
    }
