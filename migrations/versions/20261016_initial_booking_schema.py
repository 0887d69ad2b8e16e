"""
Initial booking schema: users, children, locations, class types, weekly
templates, class instances, session packages, credit ledger and bookings.

Revision ID: 20261016_initial_booking_schema
Revises:
Create Date: 2026-10-16 00:00:00
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'c7a1e5b2d9f0'
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum('admin', 'coach', 'member', name='userrole')
transaction_type = sa.Enum('purchase', 'booking', 'refund', 'expiry', name='transactiontype')
booking_status = sa.Enum('confirmed', 'attended', 'no_show', 'cancelled', name='bookingstatus')


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_user_id', 'user', ['id'])
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'child',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_child_id', 'child', ['id'])
    op.create_index('ix_child_parent_id', 'child', ['parent_id'])

    op.create_table(
        'location',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_location_id', 'location', ['id'])

    op.create_table(
        'class_type',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('duration_minutes > 0', name='check_class_type_duration_positive'),
    )
    op.create_index('ix_class_type_id', 'class_type', ['id'])

    op.create_table(
        'session_package',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('session_count', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('expiry_days', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('session_count > 0', name='check_package_session_count_positive'),
        sa.CheckConstraint('expiry_days > 0', name='check_package_expiry_days_positive'),
    )
    op.create_index('ix_session_package_id', 'session_package', ['id'])

    op.create_table(
        'schedule_template',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('class_type_id', sa.Integer(), sa.ForeignKey('class_type.id'), nullable=False),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_override', sa.Boolean(), nullable=False),
        sa.Column('override_start_date', sa.Date(), nullable=True),
        sa.Column('override_end_date', sa.Date(), nullable=True),
        sa.Column('base_template_id', sa.Integer(), sa.ForeignKey('schedule_template.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_template_day_of_week'),
        sa.CheckConstraint('capacity > 0', name='check_template_capacity_positive'),
        sa.CheckConstraint('duration_minutes > 0', name='check_template_duration_positive'),
    )
    op.create_index('ix_schedule_template_id', 'schedule_template', ['id'])

    op.create_table(
        'class_instance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('template_id', sa.Integer(), sa.ForeignKey('schedule_template.id'), nullable=True),
        sa.Column('schedule_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('class_type_id', sa.Integer(), sa.ForeignKey('class_type.id'), nullable=False),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('booked_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('template_id', 'schedule_date', name='uq_class_instance_template_date'),
        sa.CheckConstraint('booked_count >= 0 AND booked_count <= capacity',
                           name='check_class_instance_booked_count'),
    )
    op.create_index('ix_class_instance_id', 'class_instance', ['id'])
    op.create_index('ix_class_instance_template_id', 'class_instance', ['template_id'])
    op.create_index('ix_class_instance_start_time', 'class_instance', ['start_time'])
    op.create_index('ix_class_instance_coach_id', 'class_instance', ['coach_id'])
    op.create_index('ix_class_instance_location_start', 'class_instance', ['location_id', 'start_time'])

    op.create_table(
        'member_package',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('session_package.id'), nullable=False),
        sa.Column('sessions_remaining', sa.Integer(), nullable=False),
        sa.Column('sessions_total', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_expired', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('sessions_remaining >= 0 AND sessions_remaining <= sessions_total',
                           name='check_member_package_remaining_range'),
    )
    op.create_index('ix_member_package_id', 'member_package', ['id'])
    op.create_index('ix_member_package_member_expiry', 'member_package', ['member_id', 'expiry_date'])

    op.create_table(
        'booking',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('class_instance_id', sa.Integer(), sa.ForeignKey('class_instance.id'), nullable=False),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('child_id', sa.Integer(), sa.ForeignKey('child.id'), nullable=True),
        sa.Column('beneficiary_key', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('member_package_id', sa.Integer(), sa.ForeignKey('member_package.id'), nullable=False),
        sa.Column('status', booking_status, nullable=False),
        sa.Column('booked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attendance_marked_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_booking_id', 'booking', ['id'])
    op.create_index('ix_booking_class_instance_id', 'booking', ['class_instance_id'])
    op.create_index('ix_booking_member_id', 'booking', ['member_id'])
    # Una sola reserva activa por (clase, miembro, beneficiario)
    op.create_index(
        'uq_booking_active_beneficiary',
        'booking',
        ['class_instance_id', 'member_id', 'beneficiary_key'],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled'"),
        sqlite_where=sa.text("status != 'cancelled'"),
    )

    op.create_table(
        'credit_transaction',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('member_package_id', sa.Integer(), sa.ForeignKey('member_package.id'), nullable=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('booking.id'), nullable=True),
        sa.Column('transaction_type', transaction_type, nullable=False),
        sa.Column('credits_change', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_credit_transaction_id', 'credit_transaction', ['id'])
    op.create_index('ix_credit_transaction_member_id', 'credit_transaction', ['member_id'])


def downgrade():
    op.drop_table('credit_transaction')
    op.drop_index('uq_booking_active_beneficiary', table_name='booking')
    op.drop_table('booking')
    op.drop_table('member_package')
    op.drop_table('class_instance')
    op.drop_table('schedule_template')
    op.drop_table('session_package')
    op.drop_table('class_type')
    op.drop_table('location')
    op.drop_table('child')
    op.drop_table('user')

    bind = op.get_bind()
    booking_status.drop(bind, checkfirst=True)
    transaction_type.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
