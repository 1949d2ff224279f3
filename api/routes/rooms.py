"""Room catalog routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db_session
from api.models.rooms import RoomOut
from booking.services.catalog_service import get_room, list_rooms
from shared.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/rooms", response_model=list[RoomOut])
async def list_active_rooms(
    city: str | None = Query(default=None),
    min_price: int | None = Query(default=None, alias="minPrice", ge=0),
    max_price: int | None = Query(default=None, alias="maxPrice", ge=0),
    session: AsyncSession = Depends(get_db_session),
) -> list[RoomOut]:
    """List active rooms filtered by city and hourly price (cents)."""
    rooms = await list_rooms(
        session,
        city=city,
        min_price=min_price,
        max_price=max_price,
        limit=get_settings().ROOM_LIST_LIMIT,
    )
    return [RoomOut.model_validate(room) for room in rooms]


@router.get("/rooms/{room_id}", response_model=RoomOut)
async def get_single_room(
    room_id: str,
    session: AsyncSession = Depends(get_db_session),
):
    """Single room with photos, or 404."""
    try:
        room_uuid = UUID(room_id)
    except ValueError:
        return JSONResponse(status_code=404, content={"error": "Not found"})

    room = await get_room(session, room_uuid)
    if room is None:
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return RoomOut.model_validate(room)
