"""
DocuMind Database Models
SQLAlchemy ORM models for all entities.

All datetime columns use DateTime(timezone=True) for proper UTC handling.
Use utc_now() from app.core.utc for all timestamp defaults.
"""

import enum
from datetime import date, datetime
from typing import Optional
from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.utc import utc_now


# Type alias for timezone-aware DateTime columns
DateTimeTZ = DateTime(timezone=True)

MAX_FOLDER_LEVEL = 3


# =============================================================================
# Enums
# =============================================================================

class TaskStatus(str, enum.Enum):
    todo = "todo"
    in_progress = "in_progress"
    done = "done"


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class IntelCategory(str, enum.Enum):
    industry = "industry"            # Industry news
    competitor = "competitor"        # Competitor moves
    supply_chain = "supply_chain"    # Raw materials, logistics, pricing


class SummaryStatus(str, enum.Enum):
    draft = "draft"
    sent = "sent"      # Forwarded to the superior; immutable from here on


class ChatRole(str, enum.Enum):
    user = "user"
    assistant = "assistant"


# =============================================================================
# Organization
# =============================================================================

class Department(Base):
    """
    Org-chart node. Unlike folders the department tree has no depth cap,
    but it must stay acyclic.
    """
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class User(Base):
    """
    User account. Identity comes from the external login provider; the row is
    created on the first login callback and never hard-deleted.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # URL or data: URL
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    role: Mapped[str] = mapped_column(String(20), default="user")            # user, admin
    user_type: Mapped[str] = mapped_column(String(20), default="user")       # user, department_head
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    superior_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)  # direct manager

    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now, onupdate=utc_now)

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email or self.id


# =============================================================================
# Knowledge Base
# =============================================================================

class Folder(Base):
    """
    Per-user folder, at most MAX_FOLDER_LEVEL deep.

    level == 1 for roots, parent.level + 1 otherwise. parent_id is not a
    foreign key: a folder whose parent vanished is treated as a root.
    """
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    level: Mapped[int] = mapped_column(Integer, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class KnowledgeFile(Base):
    """Uploaded document: metadata plus the extracted full text used as chat context."""
    __tablename__ = "knowledge_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    folder_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    file_name: Mapped[str] = mapped_column(String(255))
    file_type: Mapped[str] = mapped_column(String(20))   # txt, pdf, docx
    file_size: Mapped[int] = mapped_column(Integer)
    content: Mapped[str] = mapped_column(Text)
    uploaded_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


# =============================================================================
# Tasks
# =============================================================================

class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=TaskStatus.todo.value, index=True)
    priority: Mapped[str] = mapped_column(String(20), default=TaskPriority.medium.value)
    assigned_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTimeTZ, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class TaskComment(Base):
    __tablename__ = "task_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


# =============================================================================
# Intelligence Radar
# =============================================================================

class IntelligencePost(Base):
    """AI-generated industry news item. Append-only and globally visible."""
    __tablename__ = "intelligence_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(20), index=True)
    title: Mapped[str] = mapped_column(String(255))
    source: Mapped[str] = mapped_column(String(255))
    summary: Mapped[str] = mapped_column(Text)
    ai_insight: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    published_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class UserFavorite(Base):
    __tablename__ = "user_favorites"
    __table_args__ = (UniqueConstraint("user_id", "intel_id", name="uq_user_favorites_user_intel"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    intel_id: Mapped[int] = mapped_column(Integer, ForeignKey("intelligence_posts.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


# =============================================================================
# Chat
# =============================================================================

class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(255), default="New chat")
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class ChatMessage(Base):
    """Immutable once written; replayed to the model in creation order."""
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(20))    # user, assistant
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


# =============================================================================
# Daily Summaries
# =============================================================================

class DailySummary(Base):
    __tablename__ = "daily_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), index=True)
    content: Mapped[str] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default=SummaryStatus.draft.value)
    sent_to_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTimeTZ, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


# =============================================================================
# Audit / Activity
# =============================================================================

class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[str] = mapped_column(String(50))      # upload_file, chat, complete_task, ...
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    module: Mapped[str] = mapped_column(String(30))      # knowledge, tasks, intelligence, summary, admin
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now, index=True)


class HandoverLog(Base):
    """Immutable audit record, written exactly once per handover."""
    __tablename__ = "handover_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    from_user_id: Mapped[str] = mapped_column(String(64), index=True)
    to_user_id: Mapped[str] = mapped_column(String(64), index=True)
    operator_id: Mapped[str] = mapped_column(String(64))
    files_transferred: Mapped[int] = mapped_column(Integer, default=0)
    folders_transferred: Mapped[int] = mapped_column(Integer, default=0)
    tasks_transferred: Mapped[int] = mapped_column(Integer, default=0)
    chat_sessions_transferred: Mapped[int] = mapped_column(Integer, default=0)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    type: Mapped[str] = mapped_column(String(30))          # summary_received, handover_received
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    related_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    related_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    from_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTimeTZ, default=utc_now)
