"""
Seed script for the room catalog.

Populates the database with a handful of demo rooms and their photos:
- Studio Lumière (Paris)
- Atelier Canal (Paris)
- Loft Ribera (Madrid)
- Sala Prado (Madrid, inactive)
"""

import asyncio
from typing import Any

from sqlalchemy import select

from database.connection import get_async_session
from database.models import Room, RoomPhoto

ROOMS_DATA: list[dict[str, Any]] = [
    {
        "title": "Studio Lumière",
        "city": "Paris",
        "hourly_price_cents": 1000,
        "min_hours": 1,
        "max_hours": 8,
        "is_active": True,
        "photos": [
            "https://images.example.com/rooms/studio-lumiere-1.jpg",
            "https://images.example.com/rooms/studio-lumiere-2.jpg",
        ],
    },
    {
        "title": "Atelier Canal",
        "city": "Paris",
        "hourly_price_cents": 2500,
        "min_hours": 2,
        "max_hours": 12,
        "is_active": True,
        "photos": ["https://images.example.com/rooms/atelier-canal-1.jpg"],
    },
    {
        "title": "Loft Ribera",
        "city": "Madrid",
        "hourly_price_cents": 1800,
        "min_hours": None,
        "max_hours": None,
        "is_active": True,
        "photos": [],
    },
    {
        "title": "Sala Prado",
        "city": "Madrid",
        "hourly_price_cents": 1500,
        "min_hours": 1,
        "max_hours": 4,
        "is_active": False,
        "photos": [],
    },
]


async def seed_rooms() -> None:
    """
    Seed the room table.

    Rooms are matched on (title, city); existing ones are left untouched so
    the script can be re-run safely.
    """
    created = 0
    async with get_async_session() as session:
        async with session.begin():
            for room_data in ROOMS_DATA:
                data = dict(room_data)
                photo_urls = data.pop("photos")

                result = await session.execute(
                    select(Room).where(
                        Room.title == data["title"],
                        Room.city == data["city"],
                    )
                )
                if result.scalar_one_or_none() is not None:
                    print(f"⊙ Room already exists: {data['title']} ({data['city']})")
                    continue

                room = Room(**data)
                room.photos = [
                    RoomPhoto(url=url, position=position)
                    for position, url in enumerate(photo_urls)
                ]
                session.add(room)
                created += 1
                print(f"✓ Created room: {data['title']} ({data['city']})")

    print(f"\n✓ Seeding complete! Rooms created: {created}/{len(ROOMS_DATA)}")


if __name__ == "__main__":
    print("Seeding room table...")
    print("=" * 60)
    asyncio.run(seed_rooms())
