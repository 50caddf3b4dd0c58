"""Venue and court catalog.

Plain CRUD with the catalog's uniqueness and dependency rules:
- venue names are unique (exact, case-sensitive match);
- court names are unique within a venue;
- a venue with courts cannot be deleted;
- a court with pending/confirmed/paid reservations cannot be deleted.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.errors import DuplicateName, HasDependents, NotFound, ResourceUnavailable
from polibook.models.venue import Court, CourtType, Venue
from polibook.services import store
from polibook.services.store import store_errors

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Venues
# ---------------------------------------------------------------------------


async def list_venues(db: AsyncSession) -> list[Venue]:
    with store_errors("fetch"):
        result = await db.execute(select(Venue).order_by(Venue.name))
        return list(result.scalars().all())


async def get_venue(db: AsyncSession, venue_id: int) -> Venue:
    with store_errors("fetch"):
        result = await db.execute(select(Venue).where(Venue.id == venue_id))
        venue = result.scalar_one_or_none()
    if venue is None:
        raise NotFound("Venue not found.")
    return venue


async def _ensure_venue_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(Venue.id).where(Venue.name == name)
    if exclude_id is not None:
        query = query.where(Venue.id != exclude_id)
    with store_errors("fetch"):
        result = await db.execute(query)
    if result.first() is not None:
        raise DuplicateName(f"A venue named '{name}' already exists.")


async def create_venue(db: AsyncSession, name: str, address: str, phone: str | None = None) -> Venue:
    name = name.strip()
    await _ensure_venue_name_free(db, name)

    venue = Venue(name=name, address=address.strip(), phone=phone)
    db.add(venue)
    with store_errors("insert"):
        await db.flush()
    logger.info("Venue %s created (%s)", venue.id, venue.name)
    return venue


async def update_venue(db: AsyncSession, venue_id: int, **changes) -> Venue:
    venue = await get_venue(db, venue_id)

    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
        await _ensure_venue_name_free(db, changes["name"], exclude_id=venue_id)

    for field, value in changes.items():
        if value is not None:
            setattr(venue, field, value)

    with store_errors("update"):
        await db.flush()
    return venue


async def delete_venue(db: AsyncSession, venue_id: int) -> None:
    """Delete a venue. Its courts must be deleted first."""
    venue = await get_venue(db, venue_id)

    with store_errors("fetch"):
        result = await db.execute(select(Court.name).where(Court.venue_id == venue_id).order_by(Court.name))
        court_names = list(result.scalars().all())
    if court_names:
        raise HasDependents(
            f"Venue has {len(court_names)} court(s): {', '.join(court_names)}. Delete the courts first."
        )

    with store_errors("delete"):
        await db.delete(venue)
        await db.flush()
    logger.info("Venue %s deleted", venue_id)


# ---------------------------------------------------------------------------
# Courts
# ---------------------------------------------------------------------------


async def list_courts(
    db: AsyncSession,
    venue_id: int | None = None,
    court_type: CourtType | None = None,
    include_maintenance: bool = False,
) -> list[Court]:
    query = select(Court)
    if venue_id is not None:
        query = query.where(Court.venue_id == venue_id)
    if court_type is not None:
        query = query.where(Court.court_type == court_type)
    if not include_maintenance:
        query = query.where(Court.under_maintenance.is_(False))

    with store_errors("fetch"):
        result = await db.execute(query.order_by(Court.court_type, Court.name))
        return list(result.scalars().all())


async def get_court(db: AsyncSession, court_id: int, for_update: bool = False) -> Court:
    query = select(Court).where(Court.id == court_id)
    if for_update:
        query = query.with_for_update()

    with store_errors("fetch"):
        result = await db.execute(query)
        court = result.scalar_one_or_none()
    if court is None:
        raise NotFound("Court not found.")
    return court


async def get_bookable_court(db: AsyncSession, court_id: int, for_update: bool = False) -> Court:
    """Load a court for booking. Missing or under-maintenance courts are unavailable.

    With for_update the court row stays locked until the transaction ends,
    which serialises concurrent creates on that court across processes.
    """
    query = select(Court).where(Court.id == court_id)
    if for_update:
        query = query.with_for_update()

    with store_errors("fetch"):
        result = await db.execute(query)
        court = result.scalar_one_or_none()

    if court is None:
        raise ResourceUnavailable("Court not found.")
    if court.under_maintenance:
        raise ResourceUnavailable(f"{court.name} is under maintenance.")
    return court


async def _ensure_court_name_free(
    db: AsyncSession, venue_id: int, name: str, exclude_id: int | None = None
) -> None:
    query = select(Court.id).where(Court.venue_id == venue_id, Court.name == name)
    if exclude_id is not None:
        query = query.where(Court.id != exclude_id)
    with store_errors("fetch"):
        result = await db.execute(query)
    if result.first() is not None:
        raise DuplicateName(f"A court named '{name}' already exists in this venue.")


async def create_court(
    db: AsyncSession,
    venue_id: int,
    name: str,
    court_type: CourtType,
    hourly_price: Decimal,
    description: str | None = None,
) -> Court:
    await get_venue(db, venue_id)
    name = name.strip()
    await _ensure_court_name_free(db, venue_id, name)

    court = Court(
        venue_id=venue_id,
        name=name,
        court_type=court_type,
        hourly_price=hourly_price,
        description=description,
    )
    db.add(court)
    with store_errors("insert"):
        await db.flush()
    logger.info("Court %s created at venue %s", court.id, venue_id)
    return court


async def update_court(db: AsyncSession, court_id: int, **changes) -> Court:
    court = await get_court(db, court_id)

    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
        await _ensure_court_name_free(db, court.venue_id, changes["name"], exclude_id=court_id)

    for field, value in changes.items():
        if value is not None:
            setattr(court, field, value)

    with store_errors("update"):
        await db.flush()
    return court


async def set_maintenance(db: AsyncSession, court_id: int, under_maintenance: bool) -> Court:
    """Toggle maintenance. Existing reservations are left untouched."""
    court = await get_court(db, court_id)
    court.under_maintenance = under_maintenance
    with store_errors("update"):
        await db.flush()
    logger.info("Court %s maintenance=%s", court_id, under_maintenance)
    return court


async def set_price(db: AsyncSession, court_id: int, hourly_price: Decimal) -> Court:
    """Change the hourly rate. Already-priced reservations keep their price."""
    court = await get_court(db, court_id)
    court.hourly_price = hourly_price
    with store_errors("update"):
        await db.flush()
    return court


async def delete_court(db: AsyncSession, court_id: int) -> None:
    """Delete a court with no active reservations; its cancelled ones go with it.

    The court row is locked the same way creates lock it, so a create on
    this court waits for the delete and then finds the court gone. Active
    reservations are counted again once the delete is flushed, which catches
    a create committed before the lock was taken (SQLite has no row locks).
    """
    court = await get_court(db, court_id, for_update=True)
    await _ensure_no_active_reservations(db, court_id)

    await store.delete_cancelled_for_court(db, court_id)
    with store_errors("delete"):
        try:
            await db.delete(court)
            await db.flush()
        except IntegrityError as exc:
            # Still referenced by a reservation the count did not see
            await db.rollback()
            raise HasDependents("Court has active reservations. Cancel them before deleting it.") from exc

    try:
        await _ensure_no_active_reservations(db, court_id)
    except HasDependents:
        await db.rollback()
        raise
    logger.info("Court %s deleted", court_id)


async def _ensure_no_active_reservations(db: AsyncSession, court_id: int) -> None:
    active = await store.count_active_for_court(db, court_id)
    if active:
        raise HasDependents(f"Court has {active} active reservation(s). Cancel them before deleting it.")


async def list_bookable_types(db: AsyncSession) -> list[CourtType]:
    """Distinct types of the courts currently open for booking."""
    with store_errors("fetch"):
        result = await db.execute(select(Court.court_type).where(Court.under_maintenance.is_(False)).distinct())
        types = set(result.scalars().all())
    return sorted(types, key=lambda t: t.value)


async def count_courts(db: AsyncSession, venue_id: int) -> tuple[int, int]:
    """(total courts, courts open for booking) at a venue."""
    with store_errors("fetch"):
        result = await db.execute(
            select(func.count(Court.id), func.count(Court.id).filter(Court.under_maintenance.is_(False))).where(
                Court.venue_id == venue_id
            )
        )
        total, open_ = result.one()
    return total, open_
