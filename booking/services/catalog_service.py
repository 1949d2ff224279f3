"""
Room catalog queries (read-only).

Listing and detail lookups for the public room endpoints. Rooms are owned by
the catalog; the booking workflow only reads their pricing policy through
ReservationStore.lookup_room().
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database.models import Room

logger = logging.getLogger(__name__)


async def list_rooms(
    session: AsyncSession,
    city: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    limit: int = 50,
) -> list[Room]:
    """
    List active rooms, newest first, with their photos loaded.

    Args:
        session: Database session
        city: Case-insensitive exact city match
        min_price: Lower bound on hourly_price_cents (inclusive)
        max_price: Upper bound on hourly_price_cents (inclusive)
        limit: Maximum number of rooms returned
    """
    stmt = (
        select(Room)
        .options(selectinload(Room.photos))
        .where(Room.is_active.is_(True))
    )
    if city:
        stmt = stmt.where(func.lower(Room.city) == city.lower())
    if min_price is not None:
        stmt = stmt.where(Room.hourly_price_cents >= min_price)
    if max_price is not None:
        stmt = stmt.where(Room.hourly_price_cents <= max_price)

    stmt = stmt.order_by(Room.created_at.desc()).limit(limit)

    result = await session.execute(stmt)
    rooms = list(result.scalars().all())
    logger.debug(f"Listed {len(rooms)} rooms (city={city}, min={min_price}, max={max_price})")
    return rooms


async def get_room(session: AsyncSession, room_id: UUID) -> Room | None:
    """Single room with photos, or None."""
    result = await session.execute(
        select(Room).options(selectinload(Room.photos)).where(Room.id == room_id)
    )
    return result.scalar_one_or_none()
