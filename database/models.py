"""
SQLAlchemy ORM models for core database tables.

This module defines the core tables:
- rooms: Bookable rooms with hourly pricing policy (owned by the catalog)
- room_photos: Photo URLs attached to a room
- bookings: Hourly reservations tied to a Stripe PaymentIntent
- payment_events: Ledger of processed Stripe webhook events

All models use:
- UUID primary keys (auto-generated)
- TIMESTAMP WITH TIME ZONE for datetime fields
- Proper indexes and constraints

The bookings table carries the exclusion constraint ``booking_no_overlap``:
two non-cancelled bookings of the same room can never have overlapping
[start_time, end_time) ranges. PostgreSQL enforces it, including between
concurrent transactions.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.dialects.postgresql import ExcludeConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

OVERLAP_CONSTRAINT_NAME = "booking_no_overlap"

# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ============================================================================
# Enums
# ============================================================================


class BookingStatus(PyEnum):
    """Booking lifecycle status."""

    PENDING = "pending"        # Reserved, waiting for the payment webhook
    CONFIRMED = "confirmed"    # Payment succeeded
    CANCELLED = "cancelled"    # Payment failed

    def __str__(self):
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is not BookingStatus.PENDING


# ============================================================================
# Catalog Models
# ============================================================================


class Room(Base):
    """
    Room model - Bookable space with an hourly rate.

    min_hours / max_hours bound the billable duration of a single booking.
    Inactive rooms are hidden from listings and cannot be reserved.
    """

    __tablename__ = "room"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)

    # Pricing policy
    hourly_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    min_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    auto_accept: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    photos: Mapped[list["RoomPhoto"]] = relationship(
        "RoomPhoto",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="RoomPhoto.position",
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="room")

    __table_args__ = (
        CheckConstraint("hourly_price_cents > 0", name="check_room_price_positive"),
        CheckConstraint("min_hours IS NULL OR min_hours > 0", name="check_room_min_hours"),
        CheckConstraint(
            "max_hours IS NULL OR max_hours >= COALESCE(min_hours, 1)",
            name="check_room_max_hours",
        ),
        Index(
            "idx_room_city_active",
            "city",
            postgresql_where=text("is_active = true"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, title='{self.title}', city='{self.city}')>"


class RoomPhoto(Base):
    """Photo attached to a room, ordered by position."""

    __tablename__ = "room_photo"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    room_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("room.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    room: Mapped["Room"] = relationship("Room", back_populates="photos")

    def __repr__(self) -> str:
        return f"<RoomPhoto(id={self.id}, room_id={self.room_id})>"


# ============================================================================
# Transactional Models
# ============================================================================


class Booking(Base):
    """
    Booking model - Hourly reservation of a room.

    Created PENDING by the reservation transaction together with its Stripe
    PaymentIntent; moved to CONFIRMED or CANCELLED exactly once by the payment
    webhook reconciler.
    """

    __tablename__ = "booking"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )

    room_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("room.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    guest_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), nullable=False, index=True
    )

    # Scheduling (end_time is exclusive)
    start_time: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )
    end_time: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )

    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # values_callable stores the enum .value ("pending") instead of .name
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(
            BookingStatus,
            name="booking_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Stripe PaymentIntent id, set in the same transaction as the insert
    payment_intent_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    room: Mapped[Optional["Room"]] = relationship("Room", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_booking_end_after_start"),
        CheckConstraint("total_price_cents >= 0", name="check_booking_price_non_negative"),
        # Requires the btree_gist extension (room_id WITH =)
        ExcludeConstraint(
            ("room_id", "="),
            (text("tstzrange(start_time, end_time, '[)')"), "&&"),
            name=OVERLAP_CONSTRAINT_NAME,
            using="gist",
            where=text("status <> 'cancelled'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, room_id={self.room_id}, "
            f"start={self.start_time}, end={self.end_time}, status={self.status})>"
        )


class PaymentEvent(Base):
    """
    Processed Stripe webhook event.

    The primary key is Stripe's event id, so a redelivered event cannot be
    recorded twice.
    """

    __tablename__ = "payment_event"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    booking_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True), nullable=True, index=True
    )
    outcome: Mapped[str] = mapped_column(String(50), nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<PaymentEvent(id='{self.id}', type='{self.event_type}', outcome='{self.outcome}')>"
