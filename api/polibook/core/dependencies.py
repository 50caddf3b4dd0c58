"""FastAPI dependencies for injection into route handlers."""

from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from polibook.core.auth import Caller, CallerRole, decode_token
from polibook.core.clock import Clock, SystemClock
from polibook.core.errors import Forbidden
from polibook.services.notifications import NotificationDispatcher, build_dispatcher

bearer_scheme = HTTPBearer(auto_error=False)

_system_clock = SystemClock()
_dispatcher = build_dispatcher()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    """Extract the caller from the JWT bearer token."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
        return Caller.from_claims(payload)
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from None


def require_role(*allowed_roles: CallerRole) -> Callable:
    """Factory: return a dependency that enforces the caller has one of the allowed roles.

    Usage in a route:
        @router.post("/venues")
        async def create(caller: Caller = Depends(require_role(CallerRole.SUPER_ADMIN))):
            ...
    """

    async def _check(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(r.value for r in allowed_roles)}",
            )
        return caller

    return _check


# Convenience shortcuts
require_admin = require_role(CallerRole.VENUE_ADMIN, CallerRole.SUPER_ADMIN)
require_super_admin = require_role(CallerRole.SUPER_ADMIN)


def ensure_manages_venue(caller: Caller, venue_id: int) -> None:
    """Venue admins may only act on their own venue."""
    if not caller.manages_venue(venue_id):
        raise Forbidden("You can only manage your own venue.")


# ---------------------------------------------------------------------------
# Collaborators (overridden in tests)
# ---------------------------------------------------------------------------


def get_clock() -> Clock:
    return _system_clock


def get_dispatcher() -> NotificationDispatcher:
    return _dispatcher
