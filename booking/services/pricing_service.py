"""
Pricing engine.

Pure functions mapping a time range and a room's pricing policy to a total
charge in minor currency units. Used for standalone quotes and, with the same
code path, inside the reservation transaction.
"""

import logging
from datetime import datetime, timedelta, tzinfo
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from database.reservation_store import ReservationStore, RoomPolicy
from shared.errors import DurationExceeded, InvalidInterval

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")

_MICROSECONDS_PER_HOUR = 3_600_000_000


def parse_timestamp(value: str | datetime, default_tz: tzinfo = UTC) -> datetime:
    """
    Parse an ISO 8601 timestamp.

    Naive values are interpreted in ``default_tz``. The result is in UTC.

    Raises:
        InvalidInterval: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise InvalidInterval()
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise InvalidInterval() from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    # Durations are computed between UTC instants
    return parsed.astimezone(UTC)


def parse_interval(
    start: str | datetime,
    end: str | datetime,
    default_tz: tzinfo = UTC,
) -> tuple[datetime, datetime]:
    """
    Parse a [start, end) interval.

    Raises:
        InvalidInterval: Unparsable timestamps or end not strictly after start
    """
    start_dt = parse_timestamp(start, default_tz)
    end_dt = parse_timestamp(end, default_tz)
    if end_dt <= start_dt:
        raise InvalidInterval()
    return start_dt, end_dt


def billable_hours(start: datetime, end: datetime) -> int:
    """Duration of [start, end) rounded up to whole hours (exact arithmetic)."""
    delta = end.astimezone(UTC) - start.astimezone(UTC)
    if delta <= timedelta(0):
        raise InvalidInterval()
    micros = delta // timedelta(microseconds=1)
    return -(-micros // _MICROSECONDS_PER_HOUR)


def quote(room: RoomPolicy, start: datetime, end: datetime) -> int:
    """
    Compute the total charge of booking ``room`` for [start, end).

    billed = max(ceil(hours), room.min_hours or 1); rejected when it exceeds
    room.max_hours.

    Returns:
        Total in minor currency units

    Raises:
        InvalidInterval: end is not strictly after start
        DurationExceeded: billed hours exceed the room's maximum
    """
    hours = billable_hours(start, end)
    billed_hours = max(hours, room.min_hours or 1)

    if room.max_hours and billed_hours > room.max_hours:
        raise DurationExceeded()

    return billed_hours * room.hourly_price_cents


async def quote_room(
    session: AsyncSession,
    store: ReservationStore,
    room_id: UUID,
    start: str | datetime,
    end: str | datetime,
    default_tz: tzinfo = UTC,
) -> int:
    """
    Read-only quote for the quote endpoint: look up the room, then price it.

    Raises:
        RoomNotFound, InvalidInterval, DurationExceeded
    """
    room = await store.lookup_room(session, room_id)
    start_dt, end_dt = parse_interval(start, end, default_tz)
    total = quote(room, start_dt, end_dt)

    logger.debug(
        f"Quote computed: {start_dt.isoformat()} - {end_dt.isoformat()} = {total}",
        extra={"room_id": room_id},
    )
    return total
