"""Venue routes: public listing, super-admin CRUD, per-venue statistics."""

from collections import Counter
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.auth import Caller
from polibook.core.clock import Clock
from polibook.core.database import get_db
from polibook.core.dependencies import ensure_manages_venue, get_clock, require_admin, require_super_admin
from polibook.models.reservation import ReservationStatus
from polibook.schemas import VenueIn, VenueOut, VenueStatsOut, VenueUpdate
from polibook.services import catalog, store
from polibook.services.booking_rules import effective_status

router = APIRouter(prefix="/venues", tags=["venues"])


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=list[VenueOut])
async def list_venues(db: AsyncSession = Depends(get_db)):
    return await catalog.list_venues(db)


@router.get("/{venue_id}", response_model=VenueOut)
async def get_venue(venue_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.get_venue(db, venue_id)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=VenueOut, status_code=status.HTTP_201_CREATED)
async def create_venue(
    body: VenueIn,
    caller: Caller = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await catalog.create_venue(db, body.name, body.address, body.phone)


@router.put("/{venue_id}", response_model=VenueOut)
async def update_venue(
    venue_id: int,
    body: VenueUpdate,
    caller: Caller = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await catalog.update_venue(db, venue_id, **body.model_dump(exclude_unset=True))


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(
    venue_id: int,
    caller: Caller = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await catalog.delete_venue(db, venue_id)


@router.get("/{venue_id}/stats", response_model=VenueStatsOut)
async def venue_stats(
    venue_id: int,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Reservation counts by effective status and paid revenue for one venue."""
    ensure_manages_venue(caller, venue_id)
    await catalog.get_venue(db, venue_id)

    total_courts, open_courts = await catalog.count_courts(db, venue_id)
    reservations = await store.list_for_venue(db, venue_id)

    now = clock.now()
    by_status = Counter(effective_status(r, now) for r in reservations)
    revenue = sum((r.price for r in reservations if r.status == ReservationStatus.PAID), Decimal("0.00"))

    return VenueStatsOut(
        venue_id=venue_id,
        total_courts=total_courts,
        open_courts=open_courts,
        total_reservations=len(reservations),
        by_status=dict(by_status),
        paid_revenue=revenue,
    )
