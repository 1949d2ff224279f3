"""
Overlap-safe reservation store.

All writes that touch the booking table go through ``ReservationStore``.
Every method takes the caller's ``AsyncSession``: the caller owns the
transaction boundary (commit / rollback), the store only issues statements.

Double booking is prevented by the ``booking_no_overlap`` exclusion
constraint, not by a read-then-insert check. A concurrent insert of an
overlapping range waits for the other transaction and then fails with
SQLSTATE 23P01, which is surfaced as ``SlotTaken``.
"""

import logging
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import (
    OVERLAP_CONSTRAINT_NAME,
    Booking,
    BookingStatus,
    PaymentEvent,
    Room,
)
from shared.errors import BookingAlreadyFinalized, RoomNotFound, SlotTaken

logger = logging.getLogger(__name__)

# PostgreSQL exclusion_violation
EXCLUSION_VIOLATION_SQLSTATE = "23P01"


class RoomPolicy(BaseModel):
    """Pricing policy of a room, as read by the pricing engine."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    hourly_price_cents: int
    min_hours: int | None = None
    max_hours: int | None = None
    is_active: bool = True


class StatusChange(str, Enum):
    """Result of ReservationStore.set_status()."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"


def is_overlap_violation(error: IntegrityError) -> bool:
    """Tell an exclusion-constraint violation apart from other integrity errors."""
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == EXCLUSION_VIOLATION_SQLSTATE:
        return True
    return OVERLAP_CONSTRAINT_NAME in str(orig)


class ReservationStore:
    """Datastore operations of the booking workflow."""

    async def lookup_room(self, session: AsyncSession, room_id: UUID) -> RoomPolicy:
        """
        Read the pricing policy of an active room.

        Raises:
            RoomNotFound: Room does not exist or is inactive
        """
        room = await session.get(Room, room_id)
        if room is None or not room.is_active:
            raise RoomNotFound()

        return RoomPolicy(
            id=room.id,
            hourly_price_cents=room.hourly_price_cents,
            min_hours=room.min_hours,
            max_hours=room.max_hours,
            is_active=room.is_active,
        )

    async def try_reserve(
        self,
        session: AsyncSession,
        room_id: UUID,
        guest_id: UUID,
        start: datetime,
        end: datetime,
        total_price_cents: int,
    ) -> UUID:
        """
        Insert a PENDING booking iff no live booking of the room overlaps it.

        The row is flushed, not committed. On SlotTaken the session is unusable
        until the caller rolls it back.

        Returns:
            The new booking id

        Raises:
            SlotTaken: The exclusion constraint rejected the insert
        """
        booking = Booking(
            id=uuid4(),
            room_id=room_id,
            guest_id=guest_id,
            start_time=start,
            end_time=end,
            total_price_cents=total_price_cents,
            status=BookingStatus.PENDING,
        )
        session.add(booking)

        try:
            await session.flush()
        except IntegrityError as e:
            if is_overlap_violation(e):
                logger.info(
                    f"Overlapping booking rejected: {start.isoformat()} - {end.isoformat()}",
                    extra={"room_id": room_id},
                )
                raise SlotTaken() from e
            raise

        return booking.id

    async def attach_payment_session(
        self, session: AsyncSession, booking_id: UUID, session_id: str
    ) -> None:
        """Store the Stripe PaymentIntent id on the booking."""
        await session.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(payment_intent_id=session_id)
            .execution_options(synchronize_session=False)
        )

    async def discard(self, session: AsyncSession, booking_id: UUID) -> None:
        """Delete a booking row (compensation for an already committed insert)."""
        await session.execute(
            delete(Booking)
            .where(Booking.id == booking_id)
            .execution_options(synchronize_session=False)
        )
        logger.info("Booking discarded", extra={"booking_id": booking_id})

    async def get_booking(self, session: AsyncSession, booking_id: UUID) -> Booking | None:
        result = await session.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    async def set_status(
        self, session: AsyncSession, booking_id: UUID, status: BookingStatus
    ) -> StatusChange:
        """
        Move a PENDING booking to a terminal status.

        The update is conditional on the row still being PENDING, so two
        concurrent callers cannot both apply a transition.

        Returns:
            APPLIED if the transition happened, UNCHANGED if the booking already
            has this status, NOT_FOUND if there is no such booking

        Raises:
            BookingAlreadyFinalized: The booking holds the other terminal status
            ValueError: ``status`` is PENDING (bookings never move back)
        """
        if not status.is_terminal:
            raise ValueError("Bookings can only be moved to a terminal status")

        result = await session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.PENDING)
            .values(status=status)
            .returning(Booking.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is not None:
            return StatusChange.APPLIED

        current = (
            await session.execute(select(Booking.status).where(Booking.id == booking_id))
        ).scalar_one_or_none()

        if current is None:
            return StatusChange.NOT_FOUND
        if current == status:
            return StatusChange.UNCHANGED

        raise BookingAlreadyFinalized(
            f"Booking {booking_id} is already {current.value}"
        )

    async def record_event(
        self,
        session: AsyncSession,
        event_id: str,
        event_type: str,
        booking_id: UUID | None,
        outcome: str,
    ) -> bool:
        """
        Add a webhook event to the processed-event ledger.

        Returns:
            False if the event id was already recorded
        """
        result = await session.execute(
            pg_insert(PaymentEvent)
            .values(
                id=event_id,
                event_type=event_type,
                booking_id=booking_id,
                outcome=outcome,
            )
            .on_conflict_do_nothing(index_elements=[PaymentEvent.id])
            .returning(PaymentEvent.id)
        )
        return result.scalar_one_or_none() is not None
