"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

成就核心读写的表：
- users / glucose_readings / friendships / activity_feed / notifications
- achievements / user_achievements / achievement_processing_logs
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), primary_key=True)


def _now(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _user_fk(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=nullable)


def upgrade() -> None:
    # users 表
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(200), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('xp', sa.Integer, server_default='0', nullable=False),
        sa.Column('level', sa.Integer, server_default='1', nullable=False),
        sa.Column('streak', sa.Integer, server_default='0', nullable=False),
        sa.Column('is_premium', sa.Boolean, server_default='false', nullable=False),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=True),
        _now('created_at'),
        _now('updated_at'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # glucose_readings 表
    op.create_table(
        'glucose_readings',
        _id(),
        _user_fk('user_id'),
        sa.Column('value', sa.Integer, nullable=False, comment='mg/dL'),
        sa.Column('context', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        _now('recorded_at'),
        _now('created_at'),
    )
    op.create_index('ix_glucose_readings_user_recorded', 'glucose_readings', ['user_id', 'recorded_at'])
    op.create_index('ix_glucose_readings_user_context', 'glucose_readings', ['user_id', 'context'])

    # friendships 表
    op.create_table(
        'friendships',
        _id(),
        _user_fk('requester_id'),
        _user_fk('receiver_id'),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        _now('created_at'),
    )
    op.create_index('ix_friendships_pair', 'friendships', ['requester_id', 'receiver_id'], unique=True)
    op.create_index('ix_friendships_receiver', 'friendships', ['receiver_id'])

    # activity_feed 表
    op.create_table(
        'activity_feed',
        _id(),
        _user_fk('sender_id'),
        _user_fk('receiver_id', nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('data', JSONB, server_default='{}', nullable=False),
        _now('created_at'),
    )
    op.create_index('ix_activity_feed_sender_type', 'activity_feed', ['sender_id', 'type'])
    op.create_index('ix_activity_feed_created', 'activity_feed', ['created_at'])

    # notifications 表
    op.create_table(
        'notifications',
        _id(),
        _user_fk('user_id'),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('data', JSONB, server_default='{}', nullable=False),
        sa.Column('is_read', sa.Boolean, server_default='false', nullable=False),
        _now('created_at'),
    )
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])

    # achievements 表
    op.create_table(
        'achievements',
        _id(),
        sa.Column('code', sa.String(100), nullable=False, comment='唯一标识码'),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, server_default='', nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('tier', sa.String(20), server_default='bronze', nullable=False),
        sa.Column('xp_reward', sa.Integer, server_default='0', nullable=False),
        sa.Column('condition', JSONB, server_default='{}', nullable=False),
        _now('created_at'),
        _now('updated_at'),
    )
    op.create_unique_constraint('uq_achievements_code', 'achievements', ['code'])
    op.create_index('ix_achievements_category', 'achievements', ['category'])

    # user_achievements 表
    op.create_table(
        'user_achievements',
        _id(),
        _user_fk('user_id'),
        sa.Column('achievement_id', UUID(as_uuid=True), sa.ForeignKey('achievements.id', ondelete='CASCADE'), nullable=False),
        _now('unlocked_at'),
    )
    # 唯一约束：同一用户同一成就只能解锁一次
    op.create_index(
        'ix_user_achievements_unique',
        'user_achievements',
        ['user_id', 'achievement_id'],
        unique=True,
    )
    op.create_index('ix_user_achievements_achievement_id', 'user_achievements', ['achievement_id'])
    op.create_index('ix_user_achievements_unlocked', 'user_achievements', ['unlocked_at'])

    # achievement_processing_logs 表
    op.create_table(
        'achievement_processing_logs',
        _id(),
        sa.Column('achievement_id', UUID(as_uuid=True), sa.ForeignKey('achievements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('total_users', sa.Integer, server_default='0', nullable=False),
        sa.Column('processed_users', sa.Integer, server_default='0', nullable=False),
        sa.Column('awarded_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        _now('created_at'),
        sa.Column('error_message', sa.Text, nullable=True),
    )
    op.create_index('ix_achievement_processing_logs_achievement_id', 'achievement_processing_logs', ['achievement_id'])
    op.create_index('ix_achievement_processing_logs_status', 'achievement_processing_logs', ['status'])


def downgrade() -> None:
    op.drop_table('achievement_processing_logs')
    op.drop_table('user_achievements')
    op.drop_table('achievements')
    op.drop_table('notifications')
    op.drop_table('activity_feed')
    op.drop_table('friendships')
    op.drop_table('glucose_readings')
    op.drop_table('users')
