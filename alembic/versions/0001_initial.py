"""Initial achievements tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000
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
    # Каталог ачивок
    op.create_table(
        'achievements',
        sa.Column('id', sa.String(length=64), primary_key=True, comment="Stable achievement slug"),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.String(length=512), nullable=False, server_default=''),
        sa.Column('icon', sa.String(length=64), nullable=True),
        sa.Column('badge_image', sa.String(length=255), nullable=True),
        sa.Column('criteria_type', sa.String(length=32), nullable=False),
        sa.Column('criteria_value', sa.Integer(), nullable=False),
        sa.Column('xp_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('criteria_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_achievements_criteria_type', 'achievements', ['criteria_type'])

    # Прогресс (удаляется при выдаче)
    op.create_table(
        'achievement_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('achievement_id', sa.String(length=64), sa.ForeignKey('achievements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('current_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('target_value', sa.Integer(), nullable=False),
        sa.Column('percent_complete', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_achievement_progress_user_achievement'),
    )
    op.create_index('ix_achievement_progress_user_id', 'achievement_progress', ['user_id'])
    op.create_index('ix_achievement_progress_achievement_id', 'achievement_progress', ['achievement_id'])

    # Выданные ачивки
    op.create_table(
        'user_achievements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('achievement_id', sa.String(length=64), sa.ForeignKey('achievements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('awarded_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('award_metadata', sa.JSON(), nullable=True),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )
    op.create_index('ix_user_achievements_user_id', 'user_achievements', ['user_id'])
    op.create_index('ix_user_achievements_achievement_id', 'user_achievements', ['achievement_id'])

    # Журнал очков и баланс
    op.create_table(
        'points_ledger',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='ACHIEVEMENT_REWARD'),
        sa.Column('description', sa.String(length=512), nullable=False, server_default=''),
        sa.Column('source_type', sa.String(length=32), nullable=True),
        sa.Column('source_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_points_ledger_user_id', 'points_ledger', ['user_id'])
    op.create_index('ix_points_ledger_user_created', 'points_ledger', ['user_id', 'created_at'])

    op.create_table(
        'user_points_balances',
        sa.Column('user_id', sa.String(length=64), primary_key=True),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Уведомления
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('related_id', sa.String(length=64), nullable=True),
        sa.Column('action_url', sa.String(length=255), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('user_points_balances')
    op.drop_table('points_ledger')
    op.drop_table('user_achievements')
    op.drop_table('achievement_progress')
    op.drop_table('achievements')
