"""initial schema: users, stations, time_slots, bookings

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), unique=True),
        sa.Column('role', sa.Enum('user', 'admin', name='user_role'), nullable=False, server_default=sa.text("'user'")),
        sa.Column('vehicle_model', sa.Text()),
        sa.Column('battery_capacity_kwh', sa.Float()),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    op.create_table(
        'stations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('address', sa.Text()),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('opening_time', sa.Text(), nullable=False, server_default=sa.text("'08:00'")),
        sa.Column('closing_time', sa.Text(), nullable=False, server_default=sa.text("'20:00'")),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('rate_per_hour', sa.Float(), nullable=False, server_default=sa.text('0')),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column('created_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('capacity >= 1', name='ck_stations_capacity'),
        sa.CheckConstraint(
            "status IN ('active', 'maintenance', 'inactive', 'deleted')",
            name='ck_stations_status',
        ),
    )

    op.create_table(
        'time_slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('station_id', sa.Integer(), sa.ForeignKey('stations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('start_time', sa.Text(), nullable=False),
        sa.Column('end_time', sa.Text(), nullable=False),
        sa.Column('total_spots', sa.Integer(), nullable=False),
        sa.Column('available_spots', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'Available'")),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.Text(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('station_id', 'date', 'start_time', name='uq_time_slots_station_date_start'),
        sa.CheckConstraint(
            'available_spots >= 0 AND available_spots <= total_spots',
            name='ck_time_slots_capacity',
        ),
        sa.CheckConstraint("status IN ('Available', 'Booked')", name='ck_time_slots_status'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('station_id', sa.Integer(), sa.ForeignKey('stations.id'), nullable=False),
        sa.Column('time_slot_id', sa.Integer(), sa.ForeignKey('time_slots.id'), nullable=False),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'Confirmed'")),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default=sa.text('0')),
        sa.Column('advance_amount', sa.Float(), nullable=False, server_default=sa.text('0')),
        sa.Column(
            'payment_status',
            sa.Enum('Pending', 'Advance Paid', 'Fully Paid', name='payment_status'),
            nullable=False,
            server_default=sa.text("'Pending'"),
        ),
        sa.Column('payment_id', sa.Text()),
        sa.Column('cancel_reason', sa.Text()),
        sa.Column('created_at', sa.Text(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.Text(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint(
            "status IN ('Confirmed', 'Cancelled', 'Checked-in', 'Completed', 'No-show')",
            name='ck_bookings_status',
        ),
    )
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_station_id', 'bookings', ['station_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])


def downgrade():
    op.drop_index('ix_bookings_status', table_name='bookings')
    op.drop_index('ix_bookings_station_id', table_name='bookings')
    op.drop_index('ix_bookings_user_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('time_slots')
    op.drop_table('stations')
    op.drop_table('users')
