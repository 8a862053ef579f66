"""
DocuMind - FastAPI Application
Enterprise knowledge workspace: knowledge base, AI chat, intelligence radar,
task board, daily summaries and admin tooling.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import close_db, init_db
from app.core.errors import setup_exception_handlers
from app.routers import (
    admin,
    chat,
    dashboard,
    folders,
    intelligence,
    knowledge_files,
    notifications,
    profile,
    summaries,
    tasks,
)
from app.services.intelligence_scheduler import IntelligenceScheduler


# =============================================================================
# Logging Setup
# =============================================================================

def setup_logging():
    """Configure logging based on settings."""
    from app.core.logging_config import setup_logging as configure_logging
    settings = get_settings()
    configure_logging(
        level=settings.log_level.upper(),
        json_format=settings.log_json_format,
        log_file=Path(settings.log_file) if settings.log_file else None,
    )


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables, start the daily intelligence scheduler.
    Shutdown: stop the scheduler, close database connections.
    """
    settings = get_settings()
    logger = logging.getLogger(__name__)

    await init_db()
    logger.info("Database ready")

    scheduler: IntelligenceScheduler = app.state.scheduler
    if settings.intelligence_scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Intelligence scheduler disabled by configuration")

    logger.info("%s %s started", settings.app_name, settings.app_version)

    yield  # Application runs here

    logger.info("Shutting down")
    await scheduler.stop()
    await close_db()
    logger.info("Database connections closed")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory.
    Creates and configures the FastAPI application.
    """
    settings = get_settings()
    setup_logging()

    tags_metadata = [
        {"name": "Health", "description": "Liveness check."},
        {"name": "Folders", "description": "Three-level knowledge base folder tree."},
        {"name": "Knowledge Base", "description": "Document upload with text extraction."},
        {"name": "Chat", "description": "Questions answered from your own documents (SSE)."},
        {"name": "Tasks", "description": "Kanban task board, comments and team view."},
        {"name": "Intelligence", "description": "AI industry news feed and its daily scheduler."},
        {"name": "Daily Summaries", "description": "AI work recaps forwarded to your superior."},
        {"name": "Dashboard", "description": "Home screen statistics."},
        {"name": "Notifications", "description": "Per-user inbox."},
        {"name": "Profile", "description": "Self-service profile and avatar."},
        {"name": "Admin", "description": "Users, departments and asset handover."},
    ]

    app = FastAPI(
        title=settings.app_name,
        description=f"""{settings.app_description}

## Authentication
Login is handled by the external identity provider. API calls carry the
session cookie (`{settings.session_cookie_name}`) or `Authorization: Bearer <user id>`.

## Error Responses
All errors return JSON with a `detail` field and an `error` code.
""",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.enable_docs else None,
        redoc_url="/api/redoc" if settings.enable_docs else None,
        openapi_url="/api/openapi.json" if settings.enable_docs else None,
        openapi_tags=tags_metadata,
    )

    # Started by the lifespan, so importing the app never spawns the timer.
    app.state.scheduler = IntelligenceScheduler(settings=settings)

    # =========================================================================
    # Middleware (order matters - first added = last to run)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # =========================================================================
    # Exception Handlers
    # =========================================================================
    setup_exception_handlers(app)

    # =========================================================================
    # Register Routers
    # =========================================================================

    @app.get("/api/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    app.include_router(folders.router)
    app.include_router(knowledge_files.router)
    app.include_router(chat.router)
    app.include_router(tasks.router)
    app.include_router(intelligence.router)
    app.include_router(summaries.router)
    app.include_router(dashboard.router)
    app.include_router(notifications.router)
    app.include_router(profile.router)
    app.include_router(admin.router)

    return app


# Create the app instance
app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
