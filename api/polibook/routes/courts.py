"""Court routes: public listing and availability, admin management."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.auth import Caller
from polibook.core.clock import Clock
from polibook.core.database import get_db
from polibook.core.dependencies import ensure_manages_venue, get_clock, require_admin, require_super_admin
from polibook.core.errors import Forbidden
from polibook.models.venue import CourtType
from polibook.schemas import AvailabilityOut, CourtIn, CourtOut, CourtUpdate, MaintenanceIn, PriceIn, SlotOut
from polibook.services import catalog, store
from polibook.services.conflicts import generate_slots

router = APIRouter(prefix="/courts", tags=["courts"])


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=list[CourtOut])
async def list_courts(
    venue_id: int | None = None,
    court_type: CourtType | None = None,
    include_maintenance: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """Bookable courts, optionally filtered by venue and type."""
    return await catalog.list_courts(db, venue_id, court_type, include_maintenance)


@router.get("/types", response_model=list[CourtType])
async def list_bookable_types(db: AsyncSession = Depends(get_db)):
    """Court types with at least one court open for booking."""
    return await catalog.list_bookable_types(db)


@router.get("/{court_id}", response_model=CourtOut)
async def get_court(court_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.get_court(db, court_id)


@router.get("/{court_id}/availability", response_model=AvailabilityOut)
async def get_availability(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """All one-hour slots for a court on a date.

    Past slots are included with is_available=False so the client can render
    a complete day grid.
    """
    court = await catalog.get_court(db, court_id)
    reservations = await store.list_active_for_day(db, court_id, query_date)
    booked = [(r.start_time, r.end_time) for r in reservations]

    slots = generate_slots(query_date, booked, clock.now(), closed=court.under_maintenance)
    return AvailabilityOut(
        court_id=court.id,
        court_name=court.name,
        date=query_date,
        slots=[SlotOut(**s) for s in slots],
    )


# ---------------------------------------------------------------------------
# Admin endpoints (venue admin for own venue, super admin anywhere)
# ---------------------------------------------------------------------------


def _target_venue(caller: Caller, requested: int | None) -> int:
    """Super admins pick the venue; venue admins always get their own."""
    if caller.is_super_admin:
        if requested is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="venue_id is required")
        return requested
    if caller.venue_id is None:
        raise Forbidden("No venue is assigned to your account.")
    return caller.venue_id


@router.post("", response_model=CourtOut, status_code=status.HTTP_201_CREATED)
async def create_court(
    body: CourtIn,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    venue_id = _target_venue(caller, body.venue_id)
    return await catalog.create_court(
        db,
        venue_id=venue_id,
        name=body.name,
        court_type=body.court_type,
        hourly_price=body.hourly_price,
        description=body.description,
    )


async def _managed_court(db: AsyncSession, caller: Caller, court_id: int):
    court = await catalog.get_court(db, court_id)
    ensure_manages_venue(caller, court.venue_id)
    return court


@router.put("/{court_id}", response_model=CourtOut)
async def update_court(
    court_id: int,
    body: CourtUpdate,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _managed_court(db, caller, court_id)
    return await catalog.update_court(db, court_id, **body.model_dump(exclude_unset=True))


@router.patch("/{court_id}/maintenance", response_model=CourtOut)
async def set_maintenance(
    court_id: int,
    body: MaintenanceIn,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _managed_court(db, caller, court_id)
    return await catalog.set_maintenance(db, court_id, body.under_maintenance)


@router.patch("/{court_id}/price", response_model=CourtOut)
async def set_price(
    court_id: int,
    body: PriceIn,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _managed_court(db, caller, court_id)
    return await catalog.set_price(db, court_id, body.hourly_price)


@router.delete("/{court_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_court(
    court_id: int,
    caller: Caller = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await catalog.delete_court(db, court_id)
