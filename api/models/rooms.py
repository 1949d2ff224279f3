"""Pydantic models for room catalog responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class RoomPhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    position: int = 0


class RoomOut(BaseModel):
    """Room with its nested photo list."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    city: str
    hourly_price_cents: int
    min_hours: int | None = None
    max_hours: int | None = None
    is_active: bool
    created_at: datetime | None = None
    photos: list[RoomPhotoOut] = []
