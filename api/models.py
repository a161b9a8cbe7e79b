"""
API request and response models for the ElectriFind auth endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire format is camelCase (profileImage, loyaltyPoints, currentPassword, ...).
Every model uses the to_camel alias generator with populate_by_name so Python
code keeps snake_case names. FastAPI serializes response models by alias.

Field rules live in auth/validators.py and are applied here through
field validators, so a request that reaches a route already satisfies the
same checks the store runs before writing.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import Role, User
from auth.validators import check_email, check_name, check_password, check_phone, check_role

_REQUEST_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_RESPONSE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = _REQUEST_CONFIG

    name: str
    phone: str
    password: str
    email: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, value: str) -> str:
        return check_name(value)

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, value: str) -> str:
        return check_phone(value)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        return check_email(value)

    # Passwords are checked as sent, never stripped: the value validated is
    # the value hashed.
    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return check_password(value)

    @field_validator("role", mode="before")
    @classmethod
    def known_role(cls, value):
        return None if value is None else check_role(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = _REQUEST_CONFIG

    phone: str
    password: str

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, value: str) -> str:
        return check_phone(value)

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class AddressIn(BaseModel):
    model_config = _REQUEST_CONFIG

    street: Optional[str] = Field(default=None, max_length=200)
    area: Optional[str] = Field(default=None, max_length=100)
    city: Optional[str] = Field(default=None, max_length=100)
    district: Optional[str] = Field(default=None, max_length=100)


class ProfileUpdateRequest(BaseModel):
    """Request body for PUT /api/auth/profile.

    Only these four fields exist on the model; anything else in the body
    (role, password, isActive, phone, ...) is ignored by pydantic and never
    reaches the store. Omitted fields stay None and are left untouched.
    """

    model_config = _REQUEST_CONFIG

    name: Optional[str] = None
    email: Optional[str] = None
    profile_image: Optional[str] = Field(default=None, max_length=500)
    address: Optional[AddressIn] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else check_name(value)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        # Blank is rejected here; the profile path cannot clear an email.
        if value is None:
            return None
        email = check_email(value)
        if email is None:
            raise ValueError("Please provide a valid email")
        return email

    def to_fields(self) -> dict:
        """Return only the fields the client actually sent, ready for UserStore.update_profile()."""
        return self.model_dump(exclude_none=True)


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /api/auth/password."""

    model_config = _REQUEST_CONFIG

    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def current_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Current password is required")
        return value

    @field_validator("new_password")
    @classmethod
    def strong_new_password(cls, value: str) -> str:
        return check_password(value, "New password")


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /api/users/{user_id}/status."""

    model_config = _REQUEST_CONFIG

    is_active: bool


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """The user block in the register response."""

    model_config = _RESPONSE_CONFIG

    id: int
    name: str
    phone: str
    email: Optional[str]
    role: Role
    loyalty_points: int

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            email=user.email,
            role=user.role,
            loyalty_points=user.loyalty_points,
        )


class LoginUserSummary(UserSummary):
    """The user block in the login response -- adds the verification flag."""

    is_verified: bool

    @classmethod
    def from_user(cls, user: User) -> "LoginUserSummary":
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            email=user.email,
            role=user.role,
            loyalty_points=user.loyalty_points,
            is_verified=user.is_verified,
        )


class AddressOut(BaseModel):
    model_config = _RESPONSE_CONFIG

    street: Optional[str]
    area: Optional[str]
    city: str
    district: str


class GeoPoint(BaseModel):
    """GeoJSON point. coordinates are [longitude, latitude]."""

    model_config = _RESPONSE_CONFIG

    type: str = "Point"
    coordinates: list[float]


class UserRecord(BaseModel):
    """Full profile view of a user. Never carries the password hash."""

    model_config = _RESPONSE_CONFIG

    id: int
    name: str
    phone: str
    email: Optional[str]
    role: Role
    profile_image: str
    address: AddressOut
    location: GeoPoint
    loyalty_points: int
    total_referrals: int
    is_verified: bool
    is_active: bool
    last_login: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "UserRecord":
        """Factory Method -- the domain-to-wire mapping lives beside the wire model."""
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            email=user.email,
            role=user.role,
            profile_image=user.profile_image,
            address=AddressOut(
                street=user.address.street,
                area=user.address.area,
                city=user.address.city,
                district=user.address.district,
            ),
            location=GeoPoint(coordinates=[user.location[0], user.location[1]]),
            loyalty_points=user.loyalty_points,
            total_referrals=user.total_referrals,
            is_verified=user.is_verified,
            is_active=user.is_active,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class MessageResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    token: str
    user: UserSummary


class LoginResponse(MessageResponse):
    token: str
    user: LoginUserSummary


class TokenResponse(MessageResponse):
    token: str


class UserDataResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    success: bool = True
    data: UserRecord


class UserUpdateResponse(MessageResponse):
    data: UserRecord


class UserListResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    success: bool = True
    count: int
    data: list[UserRecord]


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Response for GET /."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    version: str
    environment: str
