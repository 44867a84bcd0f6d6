"""Initial co-parent scheduler schema

Revision ID: 3f7a9c2e1b40
Revises:
Create Date: 2026-10-19

Creates families, members, blocked periods, schedule events, weekly
proposals (with the one-pending-per-week partial unique index), family
activity and notification webhooks.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from src.models.base import GUID, IsoDate


# revision identifiers, used by Alembic.
revision: str = '3f7a9c2e1b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _audit_columns() -> list:
    return [
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('families',
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('member_ids', JSON_TYPE, nullable=False),
        sa.Column('plan', sa.String(length=20), nullable=False, server_default='free'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('parent_a_name', sa.String(length=100), nullable=True),
        sa.Column('parent_b_name', sa.String(length=100), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('families', schema=None) as batch_op:
        batch_op.create_index('idx_family_plan', ['plan'], unique=False)
        batch_op.create_index('idx_family_active', ['active'], unique=False)

    op.create_table('family_members',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('parent_role', sa.String(length=20), nullable=True),
        sa.Column('family_id', GUID(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['family_id'], ['families.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    with op.batch_alter_table('family_members', schema=None) as batch_op:
        batch_op.create_index('idx_family_member_email', ['email'], unique=False)
        batch_op.create_index('idx_family_member_family', ['family_id'], unique=False)

    op.create_table('blocked_periods',
        sa.Column('family_id', GUID(), nullable=False),
        sa.Column('user_id', GUID(), nullable=False),
        sa.Column('parent_role', sa.String(length=20), nullable=False),
        sa.Column('start_date', IsoDate(), nullable=False),
        sa.Column('end_date', IsoDate(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('start_date <= end_date', name='ck_blocked_period_range'),
        sa.ForeignKeyConstraint(['family_id'], ['families.id']),
        sa.ForeignKeyConstraint(['user_id'], ['family_members.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('blocked_periods', schema=None) as batch_op:
        batch_op.create_index('idx_blocked_family', ['family_id'], unique=False)
        batch_op.create_index('idx_blocked_user', ['user_id'], unique=False)
        batch_op.create_index('idx_blocked_range', ['family_id', 'start_date', 'end_date'], unique=False)

    op.create_table('schedule_events',
        sa.Column('family_id', GUID(), nullable=False),
        sa.Column('date', IsoDate(), nullable=False),
        sa.Column('parent', sa.String(length=20), nullable=False),
        sa.Column('location', sa.String(length=20), nullable=False),
        sa.Column('location_label', sa.String(length=200), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('start_time', sa.String(length=5), nullable=True),
        sa.Column('end_time', sa.String(length=5), nullable=True),
        sa.Column('created_by', GUID(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['family_id'], ['families.id']),
        sa.ForeignKeyConstraint(['created_by'], ['family_members.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('schedule_events', schema=None) as batch_op:
        batch_op.create_index('idx_schedule_event_family_date', ['family_id', 'date'], unique=False)

    op.create_table('week_proposals',
        sa.Column('family_id', GUID(), nullable=False),
        sa.Column('week_start', IsoDate(), nullable=False),
        sa.Column('days', JSON_TYPE, nullable=False),
        sa.Column('approved_by', JSON_TYPE, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['family_id'], ['families.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('week_proposals', schema=None) as batch_op:
        batch_op.create_index(
            'uq_week_proposal_pending',
            ['family_id', 'week_start'],
            unique=True,
            sqlite_where=sa.text("status = 'pending'"),
            postgresql_where=sa.text("status = 'pending'"),
        )
        batch_op.create_index('idx_week_proposal_family_status', ['family_id', 'status'], unique=False)

    op.create_table('family_activity',
        sa.Column('family_id', GUID(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('user_label', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('payload', JSON_TYPE, nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['family_id'], ['families.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('family_activity', schema=None) as batch_op:
        batch_op.create_index('idx_activity_family_created', ['family_id', 'created_at'], unique=False)

    op.create_table('webhooks',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('secret', sa.String(length=255), nullable=False),
        sa.Column('event_types', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_triggered', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_count', sa.Integer(), nullable=False, server_default='0'),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('webhooks', schema=None) as batch_op:
        batch_op.create_index('ix_webhooks_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_webhooks_user_active', ['user_id', 'active'], unique=False)


def downgrade() -> None:
    op.drop_table('webhooks')
    op.drop_table('family_activity')
    op.drop_table('week_proposals')
    op.drop_table('schedule_events')
    op.drop_table('blocked_periods')
    op.drop_table('family_members')
    op.drop_table('families')
