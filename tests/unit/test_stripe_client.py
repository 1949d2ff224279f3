"""Unit tests for the Stripe payment bridge."""

from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
import stripe
from stripe import SignatureVerificationError

from shared.errors import InvalidSignature, PaymentSetupFailed
from shared.stripe_client import PaymentEventKind, StripePaymentBridge

BOOKING_ID = UUID("770e8400-e29b-41d4-a716-446655440002")
GUEST_ID = UUID("550e8400-e29b-41d4-a716-446655440000")


@pytest.fixture
def bridge():
    return StripePaymentBridge("sk_test_123", "whsec_test_123", currency="EUR")


def stripe_event(event_type, metadata=None, event_id="evt_123", intent_id="pi_123"):
    return {
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": intent_id, "metadata": metadata or {}}},
    }


class TestCreateSession:
    """PaymentIntent creation."""

    @pytest.mark.asyncio
    async def test_creates_payment_intent(self, bridge):
        intent = MagicMock(id="pi_123", client_secret="pi_123_secret_456")

        with patch("shared.stripe_client.stripe.PaymentIntent.create", return_value=intent) as mock_create:
            session = await bridge.create_session(3000, BOOKING_ID, GUEST_ID)

        assert session.session_id == "pi_123"
        assert session.client_handle == "pi_123_secret_456"

        kwargs = mock_create.call_args.kwargs
        assert kwargs["amount"] == 3000
        assert kwargs["currency"] == "eur"
        assert kwargs["api_key"] == "sk_test_123"
        assert kwargs["idempotency_key"] == f"booking-{BOOKING_ID}"
        assert kwargs["metadata"] == {"booking_id": str(BOOKING_ID), "guest_id": str(GUEST_ID)}

    @pytest.mark.parametrize("amount", [0, -100, 10.5])
    @pytest.mark.asyncio
    async def test_invalid_amount_rejected_without_api_call(self, bridge, amount):
        with patch("shared.stripe_client.stripe.PaymentIntent.create") as mock_create:
            with pytest.raises(PaymentSetupFailed):
                await bridge.create_session(amount, BOOKING_ID)

        mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_stripe_error_becomes_payment_setup_failed(self, bridge):
        error = stripe.CardError("declined", None, "card_declined")

        with patch("shared.stripe_client.stripe.PaymentIntent.create", side_effect=error):
            with pytest.raises(PaymentSetupFailed) as exc_info:
                await bridge.create_session(3000, BOOKING_ID)

        assert exc_info.value.status_code == 400
        assert exc_info.value.__cause__ is error


class TestCancelSession:
    """PaymentIntent cancellation (compensation)."""

    @pytest.mark.asyncio
    async def test_cancel_success(self, bridge):
        with patch("shared.stripe_client.stripe.PaymentIntent.cancel") as mock_cancel:
            assert await bridge.cancel_session("pi_123") is True

        mock_cancel.assert_called_once_with("pi_123", api_key="sk_test_123")

    @pytest.mark.asyncio
    async def test_cancel_failure_is_logged_not_raised(self, bridge):
        error = stripe.InvalidRequestError("already canceled", "intent")

        with patch("shared.stripe_client.stripe.PaymentIntent.cancel", side_effect=error):
            assert await bridge.cancel_session("pi_123") is False


class TestVerifyAndParseEvent:
    """Webhook authentication and event mapping."""

    def test_valid_succeeded_event(self, bridge):
        event = stripe_event("payment_intent.succeeded", {"booking_id": str(BOOKING_ID)})

        with patch("shared.stripe_client.stripe.Webhook.construct_event", return_value=event) as mock_construct:
            notification = bridge.verify_and_parse_event(b'{"id":"evt_123"}', "t=1,v1=abc")

        mock_construct.assert_called_once_with(
            payload=b'{"id":"evt_123"}', sig_header="t=1,v1=abc", secret="whsec_test_123"
        )
        assert notification.event_id == "evt_123"
        assert notification.kind is PaymentEventKind.SUCCEEDED
        assert notification.session_id == "pi_123"
        assert notification.booking_ref == str(BOOKING_ID)

    @pytest.mark.parametrize(
        "event_type,kind",
        [
            ("payment_intent.payment_failed", PaymentEventKind.FAILED),
            ("payment_intent.canceled", PaymentEventKind.FAILED),
            ("checkout.session.completed", PaymentEventKind.IGNORED),
        ],
    )
    def test_event_kind_mapping(self, bridge, event_type, kind):
        with patch("shared.stripe_client.stripe.Webhook.construct_event", return_value=stripe_event(event_type)):
            notification = bridge.verify_and_parse_event(b"{}", "t=1,v1=abc")

        assert notification.kind is kind
        assert notification.booking_ref is None

    def test_missing_signature_header(self, bridge):
        with patch("shared.stripe_client.stripe.Webhook.construct_event") as mock_construct:
            with pytest.raises(InvalidSignature):
                bridge.verify_and_parse_event(b"{}", None)

        mock_construct.assert_not_called()

    def test_bad_signature(self, bridge):
        error = SignatureVerificationError("No signatures found", "t=1,v1=bad")

        with patch("shared.stripe_client.stripe.Webhook.construct_event", side_effect=error):
            with pytest.raises(InvalidSignature) as exc_info:
                bridge.verify_and_parse_event(b"{}", "t=1,v1=bad")

        assert str(exc_info.value).startswith("Webhook Error:")
        assert exc_info.value.status_code == 400

    def test_malformed_payload(self, bridge):
        with patch("shared.stripe_client.stripe.Webhook.construct_event", side_effect=ValueError("bad json")):
            with pytest.raises(InvalidSignature):
                bridge.verify_and_parse_event(b"not json", "t=1,v1=abc")


class TestVerifyAndParseSignedEvent:
    """Events signed with the webhook secret and parsed by the Stripe SDK (no patching)."""

    @pytest.fixture
    def bridge(self):
        return StripePaymentBridge("sk_test_123", "whsec_unit")

    def test_signed_succeeded_event(self, bridge, event_payload, sign):
        payload = event_payload("payment_intent.succeeded", BOOKING_ID, intent_id="pi_real_1")

        notification = bridge.verify_and_parse_event(payload, sign(payload))

        assert notification.event_id == "evt_1"
        assert notification.kind is PaymentEventKind.SUCCEEDED
        assert notification.session_id == "pi_real_1"
        assert notification.booking_ref == str(BOOKING_ID)

    def test_signed_event_without_booking_metadata(self, bridge, event_payload, sign):
        payload = event_payload("payment_intent.payment_failed", None)

        notification = bridge.verify_and_parse_event(payload, sign(payload))

        assert notification.kind is PaymentEventKind.FAILED
        assert notification.booking_ref is None

    def test_signed_event_without_metadata_key(self, bridge, sign):
        payload = (
            b'{"id": "evt_2", "object": "event", "type": "payment_intent.canceled",'
            b' "data": {"object": {"id": "pi_2", "object": "payment_intent"}}}'
        )

        notification = bridge.verify_and_parse_event(payload, sign(payload))

        assert notification.kind is PaymentEventKind.FAILED
        assert notification.session_id == "pi_2"
        assert notification.booking_ref is None

    def test_signed_with_other_secret_rejected(self, bridge, event_payload, sign):
        payload = event_payload("payment_intent.succeeded", BOOKING_ID)

        with pytest.raises(InvalidSignature):
            bridge.verify_and_parse_event(payload, sign(payload, secret="whsec_other"))

    def test_tampered_payload_rejected(self, bridge, event_payload, sign):
        payload = event_payload("payment_intent.succeeded", BOOKING_ID)
        header = sign(payload)

        with pytest.raises(InvalidSignature):
            bridge.verify_and_parse_event(payload.replace(b"succeeded", b"canceled"), header)
