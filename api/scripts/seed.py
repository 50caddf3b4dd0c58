"""Seed the database with sample sports centres.

Run with: python -m scripts.seed
Creates the venues and their courts, then prints development bearer tokens
for a user, a venue admin and a super admin.
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from polibook.core.auth import CallerRole, create_access_token
from polibook.core.database import async_session_factory, engine
from polibook.models import Base, Court, CourtType, Venue

# Municipal sports centres and their courts.
# Pista 4 at Polideportivo Norte is closed for resurfacing.
VENUES = [
    {
        "name": "Polideportivo Centro",
        "address": "Calle Mayor 12, Madrid",
        "phone": "910 000 001",
        "courts": [
            {"name": "Pista 1", "court_type": CourtType.TENNIS, "hourly_price": "10.00"},
            {"name": "Pista 2", "court_type": CourtType.TENNIS, "hourly_price": "10.00"},
            {"name": "Pista 3", "court_type": CourtType.PADEL, "hourly_price": "12.50"},
            {"name": "Pabellón A", "court_type": CourtType.BASKETBALL, "hourly_price": "25.00"},
        ],
    },
    {
        "name": "Polideportivo Norte",
        "address": "Avenida de la Ilustración 40, Madrid",
        "phone": "910 000 002",
        "courts": [
            {"name": "Pista 1", "court_type": CourtType.PADEL, "hourly_price": "12.00"},
            {"name": "Pista 2", "court_type": CourtType.PADEL, "hourly_price": "12.00"},
            {"name": "Pista 3", "court_type": CourtType.FUTSAL, "hourly_price": "30.00"},
            {"name": "Pista 4", "court_type": CourtType.TENNIS, "hourly_price": "9.00", "under_maintenance": True},
        ],
    },
    {
        "name": "Polideportivo Vallecas",
        "address": "Calle del Puerto 8, Madrid",
        "phone": None,
        "courts": [
            {"name": "Campo 1", "court_type": CourtType.SOCCER, "hourly_price": "45.00"},
            {"name": "Pista Voley", "court_type": CourtType.VOLLEYBALL, "hourly_price": "15.00"},
        ],
    },
]


async def seed():
    # Create tables (in dev; production manages the schema separately)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        result = await db.execute(select(Venue).where(Venue.name == VENUES[0]["name"]))
        if result.scalar_one_or_none():
            print("Database already seeded, skipping.")
            return

        total_courts = 0
        closed_courts = 0
        first_venue_id = None
        for venue_data in VENUES:
            venue = Venue(name=venue_data["name"], address=venue_data["address"], phone=venue_data["phone"])
            db.add(venue)
            await db.flush()
            first_venue_id = first_venue_id or venue.id

            for court_data in venue_data["courts"]:
                court = Court(
                    venue_id=venue.id,
                    name=court_data["name"],
                    court_type=court_data["court_type"],
                    hourly_price=Decimal(court_data["hourly_price"]),
                    under_maintenance=court_data.get("under_maintenance", False),
                )
                db.add(court)
                total_courts += 1
                if court.under_maintenance:
                    closed_courts += 1

        await db.commit()

    print(f"Seeded {len(VENUES)} venues")
    print(f"  {total_courts} courts ({closed_courts} under maintenance)")
    print("Development tokens:")
    user_token = create_access_token(
        "user-1", {"name": "Lucía Martín", "role": CallerRole.USER.value, "email": "lucia@example.com"}
    )
    admin_token = create_access_token(
        "admin-1", {"name": "Centro Admin", "role": CallerRole.VENUE_ADMIN.value, "venue_id": first_venue_id}
    )
    root_token = create_access_token("root", {"name": "Super Admin", "role": CallerRole.SUPER_ADMIN.value})
    print(f"  user:        {user_token}")
    print(f"  venue admin: {admin_token}")
    print(f"  super admin: {root_token}")


if __name__ == "__main__":
    asyncio.run(seed())
