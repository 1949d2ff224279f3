"""Create room, room_photo, booking and payment_event tables

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c1e9a7b5d20'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # btree_gist lets the exclusion constraint compare room_id with =
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # Create room table
    op.create_table('room',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('hourly_price_cents', sa.Integer(), nullable=False),
        sa.Column('min_hours', sa.Integer(), nullable=True),
        sa.Column('max_hours', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('auto_accept', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('hourly_price_cents > 0', name='check_room_price_positive'),
        sa.CheckConstraint('min_hours IS NULL OR min_hours > 0', name='check_room_min_hours'),
        sa.CheckConstraint('max_hours IS NULL OR max_hours >= COALESCE(min_hours, 1)', name='check_room_max_hours'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_room_city_active', 'room', ['city'], unique=False,
        postgresql_where=sa.text('is_active = true'),
    )

    # Create room_photo table
    op.create_table('room_photo',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('room_id', sa.UUID(), nullable=False),
        sa.Column('url', sa.String(length=500), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['room.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_room_photo_room_id', 'room_photo', ['room_id'], unique=False)

    # Create booking table
    op.create_table('booking',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('room_id', sa.UUID(), nullable=False),
        sa.Column('guest_id', sa.UUID(), nullable=False),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'confirmed', 'cancelled', name='booking_status'), nullable=False),
        sa.Column('payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='check_booking_end_after_start'),
        sa.CheckConstraint('total_price_cents >= 0', name='check_booking_price_non_negative'),
        sa.ForeignKeyConstraint(['room_id'], ['room.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_intent_id')
    )
    op.create_index('ix_booking_room_id', 'booking', ['room_id'], unique=False)
    op.create_index('ix_booking_guest_id', 'booking', ['guest_id'], unique=False)
    op.create_index('ix_booking_status', 'booking', ['status'], unique=False)

    # No two non-cancelled bookings of a room may overlap on [start, end)
    op.execute("""
        ALTER TABLE booking
        ADD CONSTRAINT booking_no_overlap
        EXCLUDE USING gist (
            room_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        )
        WHERE (status <> 'cancelled')
    """)

    # Create payment_event table
    op.create_table('payment_event',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('outcome', sa.String(length=50), nullable=False),
        sa.Column('received_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payment_event_booking_id', 'payment_event', ['booking_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_payment_event_booking_id', table_name='payment_event')
    op.drop_table('payment_event')

    op.execute("ALTER TABLE booking DROP CONSTRAINT IF EXISTS booking_no_overlap")
    op.drop_index('ix_booking_status', table_name='booking')
    op.drop_index('ix_booking_guest_id', table_name='booking')
    op.drop_index('ix_booking_room_id', table_name='booking')
    op.drop_table('booking')
    op.execute("DROP TYPE IF EXISTS booking_status")

    op.drop_index('ix_room_photo_room_id', table_name='room_photo')
    op.drop_table('room_photo')

    op.drop_index('idx_room_city_active', table_name='room')
    op.drop_table('room')
