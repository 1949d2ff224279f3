"""
Reservation transaction handler.

Sequences one reservation request through its states:

    QUOTING          look up the room, compute the total (no state created)
    RESERVING        insert the PENDING booking; the exclusion constraint
                     decides between racing requests
    PAYMENT_LINKING  create the Stripe PaymentIntent for the stored total
    LINKED           store the PaymentIntent id on the booking and commit

Steps RESERVING to LINKED share one database transaction: either a fully
linked PENDING booking is committed, or nothing is. Every failure branch
performs its compensation explicitly (rollback, PaymentIntent cancellation,
booking discard) and returns a ReservationResult instead of raising, except
for unexpected datastore errors, which are re-raised after compensation.

ReservationTransaction.execute() is the single entry point, called by the
POST /bookings route.
"""

import logging
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking.services.pricing_service import UTC, parse_interval, quote
from database.reservation_store import ReservationStore
from shared.errors import BookingError, PaymentSetupFailed, SlotTaken
from shared.stripe_client import PaymentSession, StripePaymentBridge

logger = logging.getLogger(__name__)


class ReservationState(str, Enum):
    QUOTING = "quoting"
    RESERVING = "reserving"
    PAYMENT_LINKING = "payment_linking"
    LINKED = "linked"


class ReservationResult(BaseModel):
    """Outcome of ReservationTransaction.execute()."""

    success: bool
    state: ReservationState
    booking_id: UUID | None = None
    client_handle: str | None = None
    total_price_cents: int | None = None
    error_code: str | None = None
    error_message: str | None = None
    status_code: int = 200

    @classmethod
    def failure(cls, state: ReservationState, error: BookingError) -> "ReservationResult":
        return cls(
            success=False,
            state=state,
            error_code=error.error_code,
            error_message=str(error),
            status_code=error.status_code,
        )


class ReservationTransaction:
    """
    Atomic reservation of a room interval linked to a Stripe PaymentIntent.

    Usage:
        transaction = ReservationTransaction(session_factory, store, bridge)
        result = await transaction.execute(room_id, "2025-06-01T10:00:00Z",
                                           "2025-06-01T12:00:00Z", guest_id)
        if result.success:
            client_secret = result.client_handle
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        store: ReservationStore,
        payments: StripePaymentBridge,
        default_tz: tzinfo = UTC,
    ):
        self.session_factory = session_factory
        self.store = store
        self.payments = payments
        self.default_tz = default_tz

    async def execute(
        self,
        room_id: UUID,
        start: str | datetime,
        end: str | datetime,
        guest_id: UUID,
    ) -> ReservationResult:
        """
        Reserve [start, end) on a room for a guest.

        Args:
            room_id: Room to reserve
            start: Start timestamp (ISO 8601 string or datetime)
            end: Exclusive end timestamp (ISO 8601 string or datetime)
            guest_id: Identity of the caller placing the booking

        Returns:
            ReservationResult. On success: state LINKED, booking_id,
            client_handle (PaymentIntent client secret) and the authoritative
            total_price_cents. On failure: the state the request stopped in,
            error_code, error_message and the HTTP status to surface.

        Raises:
            SQLAlchemyError: Unexpected datastore failure (after rollback)
        """
        trace_id = f"{room_id}:{start}"
        logger.info(
            f"[{trace_id}] Starting reservation transaction",
            extra={"room_id": room_id, "guest_id": guest_id},
        )

        session = self.session_factory()
        state = ReservationState.QUOTING
        payment: PaymentSession | None = None
        booking_id: UUID | None = None

        try:
            # Step 1: QUOTING - nothing is written before the quote succeeds
            try:
                room = await self.store.lookup_room(session, room_id)
                start_dt, end_dt = parse_interval(start, end, self.default_tz)
                total = quote(room, start_dt, end_dt)
            except BookingError as e:
                logger.info(f"[{trace_id}] Quote rejected: {e.error_code}")
                await session.rollback()
                return ReservationResult.failure(state, e)

            # Step 2: RESERVING - conflict is a final business answer, no retry
            state = ReservationState.RESERVING
            try:
                booking_id = await self.store.try_reserve(
                    session, room_id, guest_id, start_dt, end_dt, total
                )
            except SlotTaken as e:
                logger.info(f"[{trace_id}] Slot taken", extra={"room_id": room_id})
                await session.rollback()
                return ReservationResult.failure(state, e)

            logger.info(
                f"[{trace_id}] Booking row inserted (PENDING, uncommitted)",
                extra={"booking_id": booking_id, "room_id": room_id},
            )

            # Step 3: PAYMENT_LINKING - amount is the stored total, never client input
            state = ReservationState.PAYMENT_LINKING
            try:
                payment = await self.payments.create_session(total, booking_id, guest_id)
            except PaymentSetupFailed as e:
                logger.warning(
                    f"[{trace_id}] Payment setup failed, rolling back booking",
                    extra={"booking_id": booking_id},
                )
                await session.rollback()
                return ReservationResult.failure(state, e)

            # Step 4: LINKED
            await self.store.attach_payment_session(session, booking_id, payment.session_id)
            await session.commit()

        except SQLAlchemyError:
            logger.error(
                f"[{trace_id}] Database error in state {state.value}",
                extra={"booking_id": booking_id, "room_id": room_id},
                exc_info=True,
            )
            await session.rollback()
            if payment is not None:
                await self._compensate_linking(trace_id, booking_id, payment)
            raise

        finally:
            await session.close()

        logger.info(
            f"[{trace_id}] Reservation linked and committed",
            extra={"booking_id": booking_id, "room_id": room_id},
        )
        return ReservationResult(
            success=True,
            state=ReservationState.LINKED,
            booking_id=booking_id,
            client_handle=payment.client_handle,
            total_price_cents=total,
        )

    async def _compensate_linking(
        self, trace_id: str, booking_id: UUID | None, payment: PaymentSession
    ) -> None:
        """
        Undo a reservation whose commit failed after the PaymentIntent exists.

        The commit outcome is unknown when the connection drops mid-commit, so
        the booking is also deleted in a fresh transaction (no-op if it was
        never committed).
        """
        await self.payments.cancel_session(payment.session_id)

        if booking_id is None:
            return

        cleanup = self.session_factory()
        try:
            await self.store.discard(cleanup, booking_id)
            await cleanup.commit()
        except SQLAlchemyError as cleanup_error:
            logger.error(
                f"[{trace_id}] Failed to discard booking after commit failure: {cleanup_error}",
                extra={"booking_id": booking_id},
            )
            await cleanup.rollback()
        finally:
            await cleanup.close()

