"""
Payment notification reconciler.

Applies Stripe webhook events to booking status:
- payment_intent.succeeded: PENDING -> CONFIRMED
- payment_intent.payment_failed / payment_intent.canceled: PENDING -> CANCELLED

Delivery is at-least-once with no ordering guarantee, so every path is
idempotent: a booking already in a terminal status is never changed again,
redelivered event ids are recognised through the payment_event ledger, and
events about bookings this service does not know are acknowledged without
any state change. Only signature failures are rejected; only datastore
failures surface as errors (so Stripe retries them).
"""

import logging
from enum import Enum
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import BookingStatus
from database.reservation_store import ReservationStore, StatusChange
from shared.errors import BookingAlreadyFinalized
from shared.stripe_client import (
    PaymentEventKind,
    PaymentNotification,
    StripePaymentBridge,
)

logger = logging.getLogger(__name__)

TARGET_STATUS = {
    PaymentEventKind.SUCCEEDED: BookingStatus.CONFIRMED,
    PaymentEventKind.FAILED: BookingStatus.CANCELLED,
}


class ReconcileOutcome(str, Enum):
    """How an authenticated event was handled. Every outcome is acknowledged."""

    APPLIED = "applied"
    NOOP = "noop"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNKNOWN_BOOKING = "unknown_booking"


def parse_booking_ref(booking_ref: str | None) -> UUID | None:
    if not booking_ref:
        return None
    try:
        return UUID(booking_ref)
    except ValueError:
        return None


class NotificationReconciler:
    """Verifies, deduplicates and applies payment webhook events."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        store: ReservationStore,
        payments: StripePaymentBridge,
    ):
        self.session_factory = session_factory
        self.store = store
        self.payments = payments

    async def handle(self, raw_payload: bytes, signature_header: str | None) -> ReconcileOutcome:
        """
        Process one webhook delivery.

        Args:
            raw_payload: Unparsed request body
            signature_header: Stripe-Signature header value

        Returns:
            ReconcileOutcome (all values mean "acknowledge")

        Raises:
            InvalidSignature: The payload could not be authenticated
            SQLAlchemyError: Datastore failure; nothing was committed
        """
        notification = self.payments.verify_and_parse_event(raw_payload, signature_header)
        log_extra = {"event_id": notification.event_id, "event_type": notification.event_type}

        if notification.kind is PaymentEventKind.IGNORED:
            logger.debug(f"Ignoring Stripe event type: {notification.event_type}", extra=log_extra)
            return ReconcileOutcome.IGNORED

        booking_id = parse_booking_ref(notification.booking_ref)
        if booking_id is None:
            logger.warning(
                f"Payment event without a valid booking reference: {notification.booking_ref!r}",
                extra=log_extra,
            )
            return ReconcileOutcome.UNKNOWN_BOOKING

        session = self.session_factory()
        try:
            outcome = await self._apply(session, booking_id, notification)

            # Unknown bookings are not recorded so a later replay can still apply
            if outcome is ReconcileOutcome.UNKNOWN_BOOKING:
                await session.rollback()
                return outcome

            recorded = await self.store.record_event(
                session,
                notification.event_id,
                notification.event_type,
                booking_id,
                outcome.value,
            )
            if not recorded:
                logger.info("Duplicate payment event delivery", extra=log_extra)
                await session.rollback()
                return ReconcileOutcome.DUPLICATE

            await session.commit()

        except SQLAlchemyError:
            logger.error(
                "Database error while reconciling payment event",
                extra={**log_extra, "booking_id": booking_id},
                exc_info=True,
            )
            await session.rollback()
            raise

        finally:
            await session.close()

        logger.info(
            f"Payment event reconciled: {outcome.value}",
            extra={**log_extra, "booking_id": booking_id},
        )
        return outcome

    async def _apply(
        self,
        session: AsyncSession,
        booking_id: UUID,
        notification: PaymentNotification,
    ) -> ReconcileOutcome:
        log_extra = {"event_id": notification.event_id, "booking_id": booking_id}

        booking = await self.store.get_booking(session, booking_id)
        if booking is None:
            logger.warning("Payment event for unknown booking", extra=log_extra)
            return ReconcileOutcome.UNKNOWN_BOOKING

        if (
            booking.payment_intent_id
            and notification.session_id
            and booking.payment_intent_id != notification.session_id
        ):
            logger.warning(
                f"Payment event for {notification.session_id} does not match "
                f"booking PaymentIntent {booking.payment_intent_id}",
                extra=log_extra,
            )
            return ReconcileOutcome.IGNORED

        target = TARGET_STATUS[notification.kind]
        try:
            change = await self.store.set_status(session, booking_id, target)
        except BookingAlreadyFinalized as e:
            logger.info(f"Out-of-order payment event left unapplied: {e}", extra=log_extra)
            return ReconcileOutcome.NOOP

        if change is StatusChange.APPLIED:
            return ReconcileOutcome.APPLIED
        if change is StatusChange.NOT_FOUND:
            return ReconcileOutcome.UNKNOWN_BOOKING
        return ReconcileOutcome.NOOP
