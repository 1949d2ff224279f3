"""
Stripe payment bridge.

Creates one PaymentIntent per booking and authenticates the asynchronous
webhook events Stripe delivers about it. The bridge is built once at process
start and handed to the components that need it; it never touches the
module-level ``stripe.api_key``.
"""

import asyncio
import logging
from enum import Enum
from typing import Any
from uuid import UUID

import stripe
from pydantic import BaseModel
from stripe import SignatureVerificationError

from shared.errors import InvalidSignature, PaymentSetupFailed

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Stripe-Signature"

SUCCEEDED_EVENT_TYPES = {"payment_intent.succeeded"}
FAILED_EVENT_TYPES = {"payment_intent.payment_failed", "payment_intent.canceled"}


class PaymentSession(BaseModel):
    """Handle of a created PaymentIntent."""

    session_id: str
    client_handle: str


class PaymentEventKind(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    IGNORED = "ignored"


class PaymentNotification(BaseModel):
    """Verified webhook event reduced to what the reconciler needs."""

    event_id: str
    event_type: str
    kind: PaymentEventKind
    session_id: str | None = None
    booking_ref: str | None = None


class StripePaymentBridge:
    """
    Thin wrapper around the Stripe SDK for booking payments.

    Usage:
        bridge = StripePaymentBridge(settings.STRIPE_SECRET_KEY,
                                     settings.STRIPE_WEBHOOK_SECRET)
        session = await bridge.create_session(3000, booking_id, guest_id)
    """

    def __init__(self, secret_key: str, webhook_secret: str, currency: str = "eur"):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency.lower()

    async def create_session(
        self,
        amount_cents: int,
        booking_id: UUID,
        guest_id: UUID | None = None,
    ) -> PaymentSession:
        """
        Create a Stripe PaymentIntent for a pending booking.

        Args:
            amount_cents: Stored booking total in minor units. Never taken from
                client input.
            booking_id: Booking the intent pays for (stored in metadata)
            guest_id: Guest placing the booking (stored in metadata)

        Returns:
            PaymentSession with the PaymentIntent id and its client secret

        Raises:
            PaymentSetupFailed: If the amount is invalid or Stripe rejects the call
        """
        if not isinstance(amount_cents, int) or amount_cents <= 0:
            raise PaymentSetupFailed(f"Invalid payment amount: {amount_cents}")

        metadata = {"booking_id": str(booking_id)}
        if guest_id is not None:
            metadata["guest_id"] = str(guest_id)

        logger.info(
            f"Creating Stripe PaymentIntent for booking {booking_id}, "
            f"amount: {amount_cents} {self.currency}",
            extra={"booking_id": booking_id},
        )

        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                api_key=self.secret_key,
                idempotency_key=f"booking-{booking_id}",
                amount=amount_cents,
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(
                f"Stripe API error creating PaymentIntent for booking {booking_id}: {e}",
                extra={"booking_id": booking_id},
            )
            raise PaymentSetupFailed(
                getattr(e, "user_message", None) or "Payment could not be initialised"
            ) from e

        logger.info(
            f"PaymentIntent created: {intent.id}",
            extra={"booking_id": booking_id},
        )
        return PaymentSession(session_id=intent.id, client_handle=intent.client_secret)

    async def cancel_session(self, session_id: str) -> bool:
        """
        Cancel a PaymentIntent whose booking could not be persisted.

        Returns:
            bool: True if cancelled, False if Stripe refused (already cancelled,
            unknown id, network failure). Failures are logged, never raised.
        """
        try:
            await asyncio.to_thread(
                stripe.PaymentIntent.cancel,
                session_id,
                api_key=self.secret_key,
            )
            logger.info(f"PaymentIntent cancelled: {session_id}")
            return True
        except stripe.StripeError as e:
            logger.warning(f"Could not cancel PaymentIntent {session_id}: {e}")
            return False

    def verify_and_parse_event(
        self, raw_payload: bytes, signature_header: str | None
    ) -> PaymentNotification:
        """
        Authenticate a webhook delivery and reduce it to a PaymentNotification.

        Args:
            raw_payload: Unparsed request body (byte-exact)
            signature_header: Value of the Stripe-Signature header

        Raises:
            InvalidSignature: Missing header, bad signature or malformed payload
        """
        if not signature_header:
            logger.warning("Stripe webhook received without signature header")
            raise InvalidSignature("Missing signature")

        try:
            event = stripe.Webhook.construct_event(
                payload=raw_payload,
                sig_header=signature_header,
                secret=self.webhook_secret,
            )
        except SignatureVerificationError as e:
            logger.warning(f"Stripe signature verification failed: {e}")
            raise InvalidSignature(f"Webhook Error: {e}") from e
        except ValueError as e:
            logger.warning(f"Stripe webhook payload is malformed: {e}")
            raise InvalidSignature(f"Webhook Error: {e}") from e

        return self._to_notification(event)

    @staticmethod
    def _to_notification(event: Any) -> PaymentNotification:
        # StripeObject supports item access but not dict methods such as get()
        event_type = event["type"]
        obj = event["data"]["object"]
        metadata = _field(obj, "metadata")

        if event_type in SUCCEEDED_EVENT_TYPES:
            kind = PaymentEventKind.SUCCEEDED
        elif event_type in FAILED_EVENT_TYPES:
            kind = PaymentEventKind.FAILED
        else:
            kind = PaymentEventKind.IGNORED

        booking_ref = _field(metadata, "booking_id") if metadata is not None else None
        return PaymentNotification(
            event_id=event["id"],
            event_type=event_type,
            kind=kind,
            session_id=_field(obj, "id"),
            booking_ref=str(booking_ref) if booking_ref else None,
        )


def _field(obj: Any, key: str) -> Any:
    """Optional key of a StripeObject (or plain mapping), None when absent."""
    try:
        return obj[key]
    except KeyError:
        return None
