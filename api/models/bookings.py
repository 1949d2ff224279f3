"""Pydantic models for booking request and response bodies."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookingIntervalRequest(BaseModel):
    """Body of POST /bookings/quote and POST /bookings."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: UUID = Field(alias="roomId")
    start_iso: str = Field(alias="startISO", min_length=1)
    end_iso: str = Field(alias="endISO", min_length=1)


class QuoteResponse(BaseModel):
    total_cents: int


class ReservationResponse(BaseModel):
    """Successful reservation: booking id plus the PaymentIntent client secret."""

    model_config = ConfigDict(populate_by_name=True)

    booking_id: UUID = Field(serialization_alias="bookingId")
    client_secret: str
    total_cents: int
