"""Booking quote and reservation routes."""

import logging
from datetime import tzinfo
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_db_session,
    get_default_tz,
    get_guest_id,
    get_reservation_transaction,
    get_store,
)
from api.models.bookings import BookingIntervalRequest, QuoteResponse, ReservationResponse
from booking.services.pricing_service import quote_room
from booking.transactions.reservation_transaction import ReservationTransaction
from database.reservation_store import ReservationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings")


@router.post("/quote", response_model=QuoteResponse)
async def quote_booking(
    request: BookingIntervalRequest,
    session: AsyncSession = Depends(get_db_session),
    store: ReservationStore = Depends(get_store),
    default_tz: tzinfo = Depends(get_default_tz),
) -> QuoteResponse:
    """
    Price a room interval without reserving it.

    Errors (InvalidInterval, DurationExceeded -> 400, RoomNotFound -> 404) are
    rendered by the BookingError handler in api.main.
    """
    total = await quote_room(
        session,
        store,
        request.room_id,
        request.start_iso,
        request.end_iso,
        default_tz=default_tz,
    )
    return QuoteResponse(total_cents=total)


@router.post("", response_model=ReservationResponse, response_model_by_alias=True)
async def create_booking(
    request: BookingIntervalRequest,
    guest_id: UUID = Depends(get_guest_id),
    transaction: ReservationTransaction = Depends(get_reservation_transaction),
):
    """
    Reserve a room interval and return the PaymentIntent client secret.

    Returns:
        200 {bookingId, client_secret, total_cents}
        409 {error: "Time slot already booked"} on overlap
        400/404 {error} on validation or payment setup failure
    """
    result = await transaction.execute(
        room_id=request.room_id,
        start=request.start_iso,
        end=request.end_iso,
        guest_id=guest_id,
    )

    if not result.success:
        return JSONResponse(
            status_code=result.status_code,
            content={"error": result.error_message, "code": result.error_code},
        )

    return ReservationResponse(
        booking_id=result.booking_id,
        client_secret=result.client_handle,
        total_cents=result.total_price_cents,
    )
