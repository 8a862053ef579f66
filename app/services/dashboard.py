"""
Dashboard Aggregator
Read-only, recomputed on every request.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import Folder, KnowledgeFile, Task, TaskStatus
from app.services.activity import activity_today
from app.services.intelligence import list_posts
from app.services.knowledge_files import list_files
from app.services.tasks import list_tasks

RECENT_FILES = 5
RECENT_OPEN_TASKS = 5
RECENT_INTEL = 4
RECENT_ACTIVITY = 8


async def get_dashboard(db: AsyncSession, user_id: str) -> dict:
    files: list[KnowledgeFile] = await list_files(db, user_id)
    folders = (await db.execute(select(Folder.id).where(Folder.user_id == user_id))).scalars().all()
    tasks: list[Task] = await list_tasks(db, user_id)
    posts = await list_posts(db)
    today = await activity_today(db, user_id)

    by_status = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1

    open_tasks = [t for t in tasks if t.status != TaskStatus.done.value]

    return {
        "stats": {
            "files": len(files),
            "folders": len(folders),
            "tasks": {
                "total": len(tasks),
                "done": by_status[TaskStatus.done.value],
                "todo": by_status[TaskStatus.todo.value],
                "in_progress": by_status[TaskStatus.in_progress.value],
            },
            "intelligence": len(posts),
            "activity_today": len(today),
        },
        "recent_files": files[:RECENT_FILES],
        "open_tasks": open_tasks[:RECENT_OPEN_TASKS],
        "recent_intelligence": posts[:RECENT_INTEL],
        "recent_activity": today[:RECENT_ACTIVITY],
    }
