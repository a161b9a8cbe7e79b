"""
auth/service.py -- Account workflows: register, login, profile, password, logout.

AuthService orchestrates UserStore (records + hashing) and TokenService
(session tokens). It knows nothing about HTTP: it returns domain objects and
raises auth/errors.py exceptions, and api/routes/v1/ turns those into
responses.

Security:
  Login returns one message, "Invalid credentials", for an unknown phone and
  for a wrong password, and runs bcrypt in both cases (against the store's
  dummy hash, built at the same work factor, when the phone is unknown) so
  neither the body nor the timing shows
  whether the phone is registered. The deactivated-account message is the
  single exception: it is only reachable with the right password.

  The last-login stamp is best-effort. A failure to write it is logged and
  the login still succeeds.

  change_password() issues a fresh token but cannot revoke older ones; they
  remain valid until they expire.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from sqlalchemy.exc import SQLAlchemyError

from auth.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from auth.models import DEFAULT_ROLE, NewUser, Role, User
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("electrifind.auth")

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_DEACTIVATED = "Your account has been deactivated. Please contact support."


@dataclass
class AuthResult:
    user: User
    token: str


class AuthService:
    """Account workflows over a UserStore and a TokenService."""

    def __init__(self, store: UserStore, tokens: TokenService) -> None:
        self.store = store
        self.tokens = tokens

    def register(self, candidate: NewUser) -> AuthResult:
        """Create an account (role defaults to customer) and sign the caller in."""
        if candidate.role is None:
            candidate = replace(candidate, role=DEFAULT_ROLE)
        user = self.store.create_user(candidate)
        logger.info("Registered user id=%s role=%s", user.id, user.role.value)
        return AuthResult(user=user, token=self.tokens.issue(user.id, user.role))

    def login(self, phone: str, password: str) -> AuthResult:
        """Verify phone + password and issue a token."""
        user = self.store.find_by_phone(phone, include_secret=True)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.store.verify_unknown(password)
            logger.info("Login failed: unknown phone")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not self.store.verify_secret(password, user.password_hash):
            logger.info("Login failed: bad password for user id=%s", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("Login refused: user id=%s is deactivated", user.id)
            raise ForbiddenError(ACCOUNT_DEACTIVATED)

        try:
            self.store.touch_last_login(user.id)
        except SQLAlchemyError:
            logger.warning("Could not record last login for user id=%s", user.id, exc_info=True)

        fresh = self.store.find_by_id(user.id) or user
        fresh.password_hash = None
        return AuthResult(user=fresh, token=self.tokens.issue(fresh.id, fresh.role))

    def get_self(self, user: User) -> User:
        """Return the current stored record for an authenticated user."""
        current = self.store.find_by_id(user.id)
        if current is None:
            raise NotFoundError("User not found")
        return current

    def update_profile(self, user: User, fields: dict) -> User:
        """Apply an allow-listed partial update to the caller's own record."""
        updated = self.store.update_profile(user.id, **fields)
        if updated is None:
            raise NotFoundError("User not found")
        return updated

    def change_password(self, user: User, current_password: str, new_password: str) -> str:
        """Replace the password after checking the current one; return a new token."""
        record = self.store.find_by_id(user.id, include_secret=True)
        if record is None:
            raise NotFoundError("User not found")
        if not self.store.verify_secret(current_password, record.password_hash):
            logger.info("Password change refused: wrong current password for user id=%s", user.id)
            raise UnauthorizedError("Current password is incorrect")
        if not self.store.change_secret(record.id, new_password):
            raise NotFoundError("User not found")
        logger.info("Password changed for user id=%s", record.id)
        return self.tokens.issue(record.id, record.role)

    def logout(self, user: User) -> None:
        """Stateless tokens: the client discards its token, the server has nothing to clear."""
        logger.info("Logout acknowledged for user id=%s", user.id)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_users(self, role: Role | None = None) -> list[User]:
        return self.store.list_users(role)

    def set_active(self, actor: User, user_id: int, active: bool) -> User:
        """Activate or deactivate an account on behalf of an admin.

        Prevents:
          - Self-deactivation (admin accidentally locking themselves out).
          - Deactivating the last active admin (no recovery path without DB access).
        """
        target = self.store.find_by_id(user_id)
        if target is None:
            raise NotFoundError("User not found")
        if not active and target.id == actor.id:
            raise ValidationError("You cannot deactivate your own account")
        # keep_admin puts the last-admin check in the UPDATE's WHERE clause.
        if not self.store.set_active(user_id, active, keep_admin=True):
            raise ValidationError("Cannot deactivate the last active admin account")
        logger.info("User id=%s set active=%s by admin id=%s", user_id, active, actor.id)
        return self.get_self(target)
