"""In-process locks keyed by (court, date).

Serialises the conflict check and insert of concurrent creates on the same
court and day within one worker. Creates on different courts or dates never
wait on each other. Cross-process serialisation comes from the row lock on
the court and the partial unique index (see services.lifecycle).
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

_locks: dict[tuple[int, date], asyncio.Lock] = {}
_holders: dict[tuple[int, date], int] = {}


@asynccontextmanager
async def slot_lock(court_id: int, reservation_date: date) -> AsyncIterator[None]:
    key = (court_id, reservation_date)
    lock = _locks.setdefault(key, asyncio.Lock())
    _holders[key] = _holders.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        # Drop the lock once nobody holds or waits on it
        _holders[key] -= 1
        if _holders[key] == 0:
            del _holders[key]
            del _locks[key]


def active_keys() -> list[tuple[int, date]]:
    return list(_locks)
