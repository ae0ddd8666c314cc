"""Initial schema - baseline migration

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates every table the VaaniAI backend needs: accounts, chat sessions and
messages, the active-session pointer, the admin API configuration and the
usage/audit logs.

For databases created by init_db(), mark this migration as applied:
    alembic stamp 0001_initial
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""

    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('plan', sa.String(50), nullable=False, server_default='free'),
        sa.Column('messages_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('messages_limit', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime()),
        sa.Column('last_login_at', sa.DateTime()),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Chat sessions
    op.create_table(
        'chat_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('guest_id', sa.String(64), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_chat_sessions_id', 'chat_sessions', ['id'])
    op.create_index('ix_chat_sessions_user_id', 'chat_sessions', ['user_id'])
    op.create_index('ix_chat_sessions_guest_id', 'chat_sessions', ['guest_id'])
    op.create_index('ix_chat_sessions_updated_at', 'chat_sessions', ['updated_at'])

    # Messages
    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('sender', sa.String(10), nullable=False),
        sa.Column('image_url', sa.Text()),
        sa.Column('image_data', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('ix_messages_session_id', 'messages', ['session_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    # Active session pointer, one row per owner
    op.create_table(
        'active_session_pointers',
        sa.Column('owner_key', sa.String(80), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('chat_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('updated_at', sa.DateTime()),
    )

    # Admin API configuration (single row, id=1)
    op.create_table(
        'admin_api_config',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('api_key', sa.Text()),
        sa.Column('selected_model', sa.String(255), nullable=False),
        sa.Column('vision_model', sa.String(255), nullable=False),
        sa.Column('rate_limit', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('max_tokens', sa.Integer(), nullable=False, server_default='500'),
        sa.Column('temperature', sa.Float(), nullable=False, server_default='0.7'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime()),
    )

    # Completion API usage
    op.create_table(
        'usage_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('guest_id', sa.String(64), nullable=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('chat_sessions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('model_used', sa.String(255)),
        sa.Column('tokens_estimate', sa.Integer()),
        sa.Column('response_time_ms', sa.Integer()),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_usage_logs_id', 'usage_logs', ['id'])
    op.create_index('ix_usage_logs_user_id', 'usage_logs', ['user_id'])
    op.create_index('ix_usage_logs_created_at', 'usage_logs', ['created_at'])

    # Admin audit trail
    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('admin_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('target_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action_type', sa.String(100), nullable=False),
        sa.Column('action_description', sa.Text(), nullable=False),
        sa.Column('details', sa.Text()),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('user_agent', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_admin_action_logs_id', 'admin_action_logs', ['id'])
    op.create_index('ix_admin_action_logs_admin_user_id', 'admin_action_logs', ['admin_user_id'])
    op.create_index('ix_admin_action_logs_target_user_id', 'admin_action_logs', ['target_user_id'])
    op.create_index('ix_admin_action_logs_created_at', 'admin_action_logs', ['created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('admin_action_logs')
    op.drop_table('usage_logs')
    op.drop_table('admin_api_config')
    op.drop_table('active_session_pointers')
    op.drop_table('messages')
    op.drop_table('chat_sessions')
    op.drop_table('users')
