"""Initial DocuMind schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-01-15

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tz():
    return sa.DateTime(timezone=True)


def upgrade() -> None:
    """Create users, knowledge base, tasks, intelligence, chat, summaries and audit tables."""

    op.create_table(
        'departments',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('parent_id', sa.Integer, nullable=True),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_departments_parent_id', 'departments', ['parent_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('profile_image_url', sa.Text, nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('job_title', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('user_type', sa.String(20), nullable=False, server_default='user'),
        sa.Column('department_id', sa.Integer, nullable=True),
        sa.Column('superior_id', sa.String(64), nullable=True),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
        sa.Column('updated_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_users_department_id', 'users', ['department_id'])

    # Knowledge base
    op.create_table(
        'folders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('parent_id', sa.Integer, nullable=True),
        sa.Column('level', sa.Integer, nullable=False, server_default='1'),  # 1..3
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_folders_user_id', 'folders', ['user_id'])
    op.create_index('ix_folders_parent_id', 'folders', ['parent_id'])

    op.create_table(
        'knowledge_files',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('folder_id', sa.Integer, nullable=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(20), nullable=False),
        sa.Column('file_size', sa.Integer, nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('uploaded_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_knowledge_files_user_id', 'knowledge_files', ['user_id'])
    op.create_index('ix_knowledge_files_folder_id', 'knowledge_files', ['folder_id'])

    # Tasks
    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='todo'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('assigned_by', sa.String(100), nullable=True),
        sa.Column('due_date', sa.Date, nullable=True),
        sa.Column('completed_at', _tz(), nullable=True),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])

    op.create_table(
        'task_comments',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('task_id', sa.Integer, sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_task_comments_task_id', 'task_comments', ['task_id'])

    # Intelligence radar
    op.create_table(
        'intelligence_posts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('source', sa.String(255), nullable=False),
        sa.Column('summary', sa.Text, nullable=False),
        sa.Column('ai_insight', sa.Text, nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
        sa.Column('published_at', _tz(), server_default=sa.func.now()),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_intelligence_posts_category', 'intelligence_posts', ['category'])
    op.create_index('ix_intelligence_posts_published_at', 'intelligence_posts', ['published_at'])

    op.create_table(
        'user_favorites',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('intel_id', sa.Integer, sa.ForeignKey('intelligence_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'intel_id', name='uq_user_favorites_user_intel'),
    )
    op.create_index('ix_user_favorites_user_id', 'user_favorites', ['user_id'])

    # Chat
    op.create_table(
        'chat_sessions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False, server_default='New chat'),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_chat_sessions_user_id', 'chat_sessions', ['user_id'])

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.Integer, sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),  # user, assistant
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_chat_messages_session_id', 'chat_messages', ['session_id'])
    op.create_index('ix_chat_messages_user_id', 'chat_messages', ['user_id'])

    # Daily summaries
    op.create_table(
        'daily_summaries',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('sent_to_user_id', sa.String(64), nullable=True),
        sa.Column('sent_at', _tz(), nullable=True),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_daily_summaries_user_id', 'daily_summaries', ['user_id'])
    op.create_index('ix_daily_summaries_sent_to_user_id', 'daily_summaries', ['sent_to_user_id'])

    # Audit and inbox
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('detail', sa.Text, nullable=True),
        sa.Column('module', sa.String(30), nullable=False),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'])
    op.create_index('ix_activity_logs_created_at', 'activity_logs', ['created_at'])

    op.create_table(
        'handover_logs',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('from_user_id', sa.String(64), nullable=False),
        sa.Column('to_user_id', sa.String(64), nullable=False),
        sa.Column('operator_id', sa.String(64), nullable=False),
        sa.Column('files_transferred', sa.Integer, nullable=False, server_default='0'),
        sa.Column('folders_transferred', sa.Integer, nullable=False, server_default='0'),
        sa.Column('tasks_transferred', sa.Integer, nullable=False, server_default='0'),
        sa.Column('chat_sessions_transferred', sa.Integer, nullable=False, server_default='0'),
        sa.Column('note', sa.Text, nullable=True),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_handover_logs_from_user_id', 'handover_logs', ['from_user_id'])
    op.create_index('ix_handover_logs_to_user_id', 'handover_logs', ['to_user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),  # summary_received, handover_received
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text, nullable=True),
        sa.Column('related_id', sa.Integer, nullable=True),
        sa.Column('related_type', sa.String(30), nullable=True),
        sa.Column('from_user_id', sa.String(64), nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', _tz(), server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    """Drop every table, dependents first."""
    for table in (
        'notifications',
        'handover_logs',
        'activity_logs',
        'daily_summaries',
        'chat_messages',
        'chat_sessions',
        'user_favorites',
        'intelligence_posts',
        'task_comments',
        'tasks',
        'knowledge_files',
        'folders',
        'users',
        'departments',
    ):
        op.drop_table(table)
