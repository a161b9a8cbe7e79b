"""
auth/errors.py -- Typed error taxonomy for the auth subsystem.

Every failure the auth layer can signal is one of these classes. Each carries
the HTTP status it maps to so the single responder in api/main.py can build
the {success: false, error: message} envelope without a lookup table.

Layer rule: stdlib only. api/ imports these; nothing here imports from api/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. Unknown subclasses surface as 500."""

    status_code: int = 500
    default_message: str = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError, ValueError):
    """Malformed or missing input.

    Also a ValueError so the shared field rules in auth/validators.py can be
    raised from inside pydantic validators unchanged.
    """

    status_code = 400
    default_message = "Invalid input"


class UnauthorizedError(AuthError):
    status_code = 401
    default_message = "Not authorized to access this route"


class ForbiddenError(AuthError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AuthError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AuthError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(AuthError):
    status_code = 500
    default_message = "Server Error"
