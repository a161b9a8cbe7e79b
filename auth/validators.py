"""
auth/validators.py -- Field rules shared by the API request models and the store.

Each check_* function returns the normalized value or raises
auth.errors.ValidationError with a message that is safe to show the client.
api/models.py calls them from pydantic field validators; auth/store.py calls
them again before every write so the store never persists a record that
breaks its own schema, whoever the caller is.
"""

from __future__ import annotations

import re

from auth.errors import ValidationError
from auth.models import Role

PHONE_PATTERN = r"^03[0-9]{9}$"
EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$"

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes; reject longer input instead of
# silently truncating it.
MAX_PASSWORD_BYTES = 72

_PHONE_RE = re.compile(PHONE_PATTERN)
_EMAIL_RE = re.compile(EMAIL_PATTERN)
_PASSWORD_MIX_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def check_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be between {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} characters")
    return name


def check_phone(value: str | None) -> str:
    phone = (value or "").strip()
    if not phone:
        raise ValidationError("Phone number is required")
    if not _PHONE_RE.match(phone):
        raise ValidationError("Please provide a valid Pakistani phone number (03XXXXXXXXX)")
    return phone


def check_email(value: str | None) -> str | None:
    """Trim and lower-case an optional email. Blank means "no email"."""
    if value is None:
        return None
    email = value.strip().lower()
    if not email:
        return None
    if not _EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def check_password(value: str | None, label: str = "Password") -> str:
    """Enforce the strength policy for a new password. The value is returned unmodified."""
    if not value:
        raise ValidationError(f"{label} is required")
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"{label} cannot exceed {MAX_PASSWORD_BYTES} bytes")
    if not _PASSWORD_MIX_RE.match(value):
        raise ValidationError(
            f"{label} must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


def check_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"{value} is not a valid role") from None
