"""Caller identity carried by bearer JWTs.

Login, refresh and password recovery belong to the identity service. This
module only verifies the shared-secret tokens it issues and turns their
claims into a Caller.
"""

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from polibook.core.config import settings


class CallerRole(enum.StrEnum):
    USER = "user"
    VENUE_ADMIN = "venue_admin"
    SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class Caller:
    user_id: str
    name: str
    role: CallerRole = CallerRole.USER
    national_id: str | None = None
    email: str | None = None
    venue_id: int | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == CallerRole.SUPER_ADMIN

    def manages_venue(self, venue_id: int) -> bool:
        """Super admins manage every venue, venue admins only their own."""
        if self.is_super_admin:
            return True
        return self.role == CallerRole.VENUE_ADMIN and self.venue_id == venue_id

    @classmethod
    def from_claims(cls, claims: dict) -> "Caller":
        """Build a Caller from decoded token claims. Raises KeyError/ValueError on bad claims."""
        venue_id = claims.get("venue_id")
        return cls(
            user_id=str(claims["sub"]),
            name=claims["name"],
            role=CallerRole(claims.get("role", CallerRole.USER)),
            national_id=claims.get("national_id"),
            email=claims.get("email"),
            venue_id=int(venue_id) if venue_id is not None else None,
        )


def create_access_token(subject: str, extra: dict | None = None) -> str:
    """Mint an access token with the shared secret (seed scripts and tests)."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "exp": expire, "type": "access"}
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises JWTError on failure."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload
