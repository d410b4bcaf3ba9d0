"""booking core schema

Revision ID: 5b2f0c9d1a7e
Revises:
Create Date: 2026-10-19 10:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b2f0c9d1a7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_PREDICATE = sa.text("status IN ('booked', 'confirmed')")


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Tenants and their calendar
    op.create_table(
        'establishments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('owner_user_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='trial'),
        sa.Column('trial_ends_at', sa.DateTime(), nullable=True),
        sa.Column('booking_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reschedule_min_hours', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('max_future_days', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('slot_interval_minutes', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('buffer_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.String(300), nullable=True),
        sa.Column('cancellation_policy_text', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_establishments_slug', 'establishments', ['slug'], unique=True)
    op.create_index('ix_establishments_owner_user_id', 'establishments', ['owner_user_id'])

    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.Time(), nullable=True),
        sa.Column('close_time', sa.Time(), nullable=True),
        sa.Column('closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('establishment_id', 'weekday', name='uq_business_hours_weekday'),
    )

    op.create_table(
        'professionals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_professionals_establishment_id', 'professionals', ['establishment_id'])
    op.create_index('ix_professionals_user_id', 'professionals', ['user_id'])

    op.create_table(
        'professional_hours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('professional_id', 'weekday', name='uq_professional_hours_weekday'),
    )

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_services_establishment_id', 'services', ['establishment_id'])
    op.create_index('ix_services_active', 'services', ['active'])

    # 2. Closures
    op.create_table(
        'recurring_time_blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), nullable=True),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reason', sa.String(), nullable=True),
    )
    op.create_index('ix_recurring_time_blocks_establishment_id', 'recurring_time_blocks', ['establishment_id'])

    op.create_table(
        'time_blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id', ondelete='CASCADE'), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
    )
    op.create_index('ix_time_blocks_establishment_id', 'time_blocks', ['establishment_id'])
    op.create_index('ix_time_blocks_start_at', 'time_blocks', ['start_at'])

    # 3. Customers and appointments
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('establishment_id', 'phone', name='uq_customers_establishment_phone'),
    )
    op.create_index('ix_customers_establishment_id', 'customers', ['establishment_id'])
    op.create_index('ix_customers_user_id', 'customers', ['user_id'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('professional_id', sa.Uuid(), sa.ForeignKey('professionals.id'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('seat', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='booked'),
        sa.Column('manage_token_hash', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('canceled_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', sa.String(20), nullable=True),
    )
    op.create_index('ix_appointments_establishment_id', 'appointments', ['establishment_id'])
    op.create_index('ix_appointments_manage_token_hash', 'appointments', ['manage_token_hash'], unique=True)
    op.create_index('ix_appointments_professional_start', 'appointments', ['professional_id', 'start_at'])
    # Last line of defence against double booking: one live row per seat
    op.create_index(
        'uq_appointments_active_seat',
        'appointments',
        ['professional_id', 'start_at', 'seat'],
        unique=True,
        postgresql_where=ACTIVE_PREDICATE,
        sqlite_where=ACTIVE_PREDICATE,
    )

    # 4. Outbox
    op.create_table(
        'appointment_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('establishment_id', sa.Uuid(), sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_appointment_events_appointment_id', 'appointment_events', ['appointment_id'])
    op.create_index('ix_appointment_events_status', 'appointment_events', ['status'])

    # 5. Billing (written by the billing service)
    op.create_table(
        'plans',
        sa.Column('code', sa.String(50), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('max_professionals', sa.Integer(), nullable=True),
        sa.Column('max_appointments_month', sa.Integer(), nullable=True),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_user_id', sa.Uuid(), nullable=False),
        sa.Column('plan_code', sa.String(50), sa.ForeignKey('plans.code'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('current_period_end', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_subscriptions_owner_user_id', 'subscriptions', ['owner_user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_subscriptions_owner_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_table('plans')

    op.drop_index('ix_appointment_events_status', table_name='appointment_events')
    op.drop_index('ix_appointment_events_appointment_id', table_name='appointment_events')
    op.drop_table('appointment_events')

    op.drop_index('uq_appointments_active_seat', table_name='appointments')
    op.drop_index('ix_appointments_professional_start', table_name='appointments')
    op.drop_index('ix_appointments_manage_token_hash', table_name='appointments')
    op.drop_index('ix_appointments_establishment_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_customers_user_id', table_name='customers')
    op.drop_index('ix_customers_establishment_id', table_name='customers')
    op.drop_table('customers')

    op.drop_index('ix_time_blocks_start_at', table_name='time_blocks')
    op.drop_index('ix_time_blocks_establishment_id', table_name='time_blocks')
    op.drop_table('time_blocks')
    op.drop_index('ix_recurring_time_blocks_establishment_id', table_name='recurring_time_blocks')
    op.drop_table('recurring_time_blocks')

    op.drop_index('ix_services_active', table_name='services')
    op.drop_index('ix_services_establishment_id', table_name='services')
    op.drop_table('services')
    op.drop_table('professional_hours')
    op.drop_index('ix_professionals_user_id', table_name='professionals')
    op.drop_index('ix_professionals_establishment_id', table_name='professionals')
    op.drop_table('professionals')
    op.drop_table('business_hours')
    op.drop_index('ix_establishments_owner_user_id', table_name='establishments')
    op.drop_index('ix_establishments_slug', table_name='establishments')
    op.drop_table('establishments')
