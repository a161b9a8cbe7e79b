"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; these only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Closed set of account roles. Drives every authorization decision."""

    customer = "customer"
    shopkeeper = "shopkeeper"
    admin = "admin"


DEFAULT_ROLE = Role.customer
DEFAULT_PROFILE_IMAGE = "default-avatar.png"
DEFAULT_CITY = "Karachi"
DEFAULT_DISTRICT = "Defence"


@dataclass
class Address:
    street: str | None = None
    area: str | None = None
    city: str = DEFAULT_CITY
    district: str = DEFAULT_DISTRICT


@dataclass
class User:
    """A registered account.

    password_hash is None on every record the store returns unless the caller
    asked for the secret explicitly (credential checks and password change).

    location is (longitude, latitude), GeoJSON order.
    """

    name: str
    phone: str
    role: Role = DEFAULT_ROLE
    id: int | None = None
    email: str | None = None
    password_hash: str | None = None
    profile_image: str = DEFAULT_PROFILE_IMAGE
    address: Address = field(default_factory=Address)
    location: tuple[float, float] = (0.0, 0.0)
    loyalty_points: int = 0
    total_referrals: int = 0
    fcm_token: str | None = None
    is_verified: bool = False
    is_active: bool = True
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class NewUser:
    """Registration candidate. Carries the plaintext password until the store hashes it.

    role is None when the client did not pick one; AuthService.register fills
    in DEFAULT_ROLE before the candidate reaches the store.
    """

    name: str
    phone: str
    password: str
    email: str | None = None
    role: Role | None = None

    def __repr__(self) -> str:
        # Keep the plaintext out of logs and tracebacks.
        return f"NewUser(name={self.name!r}, phone={self.phone!r}, email={self.email!r}, role={self.role!r})"


@dataclass(frozen=True)
class TokenClaims:
    """Identity embedded in a verified session token."""

    subject: int
    role: Role
