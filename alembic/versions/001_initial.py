"""users, inventory, events and resource claims

Revision ID: 001_initial
Revises:
Create Date: 2025-02-03 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ('COORDINATOR', 'HOD', 'DEAN', 'HEAD', 'ADMIN')
EVENT_STATUSES = (
    'DRAFT',
    'SUBMITTED',
    'HOD_APPROVED',
    'DEAN_APPROVED',
    'HEAD_APPROVED',
    'REJECTED',
    'RUNNING',
    'COMPLETED',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('role', sa.Enum(*USER_ROLES, name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('idx_user_active_role', 'users', ['is_active', 'role'])

    op.create_table(
        'venues',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('capacity > 0', name='ck_venue_capacity'),
    )
    op.create_index('ix_venues_id', 'venues', ['id'])

    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('total_quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('total_quantity >= 0', name='ck_resource_total_quantity'),
    )
    op.create_index('ix_resources_id', 'resources', ['id'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('department', sa.String(length=200), nullable=False),
        sa.Column('coordinator_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('venue_id', sa.Integer(), sa.ForeignKey('venues.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('participant_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(*EVENT_STATUSES, name='eventstatus'), nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_coordinator_id', 'events', ['coordinator_id'])
    op.create_index('idx_event_venue_status', 'events', ['venue_id', 'status'])
    op.create_index('idx_event_status_window', 'events', ['status', 'start_time', 'end_time'])

    op.create_table(
        'event_resources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource_id', sa.Integer(), sa.ForeignKey('resources.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('event_id', 'resource_id', name='uq_event_resource'),
    )
    op.create_index('ix_event_resources_id', 'event_resources', ['id'])
    op.create_index('ix_event_resources_event_id', 'event_resources', ['event_id'])
    op.create_index('ix_event_resources_resource_id', 'event_resources', ['resource_id'])


def downgrade() -> None:
    op.drop_table('event_resources')
    op.drop_table('events')
    op.drop_table('resources')
    op.drop_table('venues')
    op.drop_table('users')
    sa.Enum(name='eventstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
