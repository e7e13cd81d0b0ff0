"""Baseline scheduling schema

Creates availability, portal override, tenant restriction, service offering,
booking, schedule lock and practice settings tables.

Revision ID: 202610180000
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '202610180000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BOOKING_STATUSES = "'pending', 'requested', 'confirmed', 'completed', 'cancelled', 'no-show', 'declined'"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('practitioner_availability',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('location_id', sa.Integer(), nullable=True),
    sa.Column('day_of_week', sa.String(length=10), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('start_time < end_time', name='check_availability_time_range'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_practitioner_availability_id'), 'practitioner_availability', ['id'], unique=False)
    op.create_index('idx_practitioner_availability_tenant_practitioner_day', 'practitioner_availability',
                    ['tenant_id', 'practitioner_id', 'day_of_week'], unique=False)

    op.create_table('practitioner_portal_availability',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('location_id', sa.Integer(), nullable=True),
    sa.Column('day_of_week', sa.String(length=10), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    sa.Column('is_enabled', sa.Boolean(), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('start_time < end_time', name='check_portal_availability_time_range'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_practitioner_portal_availability_id'), 'practitioner_portal_availability', ['id'], unique=False)
    op.create_index('idx_portal_availability_tenant_practitioner', 'practitioner_portal_availability',
                    ['tenant_id', 'practitioner_id', 'location_id'], unique=False)

    op.create_table('practitioner_tenant_settings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('available_days', sa.JSON(), nullable=False),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('tenant_id', 'practitioner_id', name='uq_tenant_settings_practitioner')
    )
    op.create_index(op.f('ix_practitioner_tenant_settings_id'), 'practitioner_tenant_settings', ['id'], unique=False)

    op.create_table('practitioner_services',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('service_id', sa.Integer(), nullable=False),
    sa.Column('is_offered', sa.Boolean(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('tenant_id', 'practitioner_id', 'service_id', name='uq_practitioner_service')
    )
    op.create_index(op.f('ix_practitioner_services_id'), 'practitioner_services', ['id'], unique=False)
    op.create_index('idx_practitioner_services_tenant_service', 'practitioner_services',
                    ['tenant_id', 'service_id'], unique=False)

    op.create_table('bookings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('location_id', sa.Integer(), nullable=True),
    sa.Column('service_id', sa.Integer(), nullable=True),
    sa.Column('mode', sa.String(length=20), nullable=False),
    sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('start_time < end_time', name='check_booking_time_range'),
    sa.CheckConstraint(f'status IN ({BOOKING_STATUSES})', name='check_booking_status'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_id'), 'bookings', ['id'], unique=False)
    op.create_index('idx_bookings_tenant_start', 'bookings', ['tenant_id', 'start_time'], unique=False)

    op.create_table('booking_practitioners',
    sa.Column('booking_id', sa.Integer(), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.CheckConstraint(
        'start_time IS NULL OR end_time IS NULL OR start_time < end_time',
        name='check_booking_practitioner_time_range'
    ),
    sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('booking_id', 'practitioner_id')
    )
    op.create_index('idx_booking_practitioners_practitioner', 'booking_practitioners', ['practitioner_id'], unique=False)

    op.create_table('practitioner_schedule_locks',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('locked_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('tenant_id', 'practitioner_id', name='uq_schedule_lock_practitioner')
    )

    op.create_table('practice_settings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.String(length=64), nullable=False),
    sa.Column('key', sa.String(length=100), nullable=False),
    sa.Column('value', sa.Text(), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('tenant_id', 'key', name='uq_practice_settings_tenant_key')
    )
    op.create_index(op.f('ix_practice_settings_id'), 'practice_settings', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_practice_settings_id'), table_name='practice_settings')
    op.drop_table('practice_settings')
    op.drop_table('practitioner_schedule_locks')
    op.drop_index('idx_booking_practitioners_practitioner', table_name='booking_practitioners')
    op.drop_table('booking_practitioners')
    op.drop_index('idx_bookings_tenant_start', table_name='bookings')
    op.drop_index(op.f('ix_bookings_id'), table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('idx_practitioner_services_tenant_service', table_name='practitioner_services')
    op.drop_index(op.f('ix_practitioner_services_id'), table_name='practitioner_services')
    op.drop_table('practitioner_services')
    op.drop_index(op.f('ix_practitioner_tenant_settings_id'), table_name='practitioner_tenant_settings')
    op.drop_table('practitioner_tenant_settings')
    op.drop_index('idx_portal_availability_tenant_practitioner', table_name='practitioner_portal_availability')
    op.drop_index(op.f('ix_practitioner_portal_availability_id'), table_name='practitioner_portal_availability')
    op.drop_table('practitioner_portal_availability')
    op.drop_index('idx_practitioner_availability_tenant_practitioner_day', table_name='practitioner_availability')
    op.drop_index(op.f('ix_practitioner_availability_id'), table_name='practitioner_availability')
    op.drop_table('practitioner_availability')
