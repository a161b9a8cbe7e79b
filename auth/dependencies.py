"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

The guard is an ordered pipeline of dependencies. Each stage either returns
its result to the next one or raises a typed error from auth/errors.py that
ends the request before any handler code runs:

  bearer_token()      Authorization: Bearer <token> present and well formed  -> 401
  get_current_user()  token verifies, user still exists, account is active   -> 401 / 404 / 403
  require_roles(...)  authenticated role is in the allowed set               -> 403

Nothing in the pipeline writes anything, so a rejected request leaves no trace
beyond the log line.

Usage:
    @router.get("/me")
    def me(user: User = Depends(get_current_user)): ...

    @router.get("/users")
    def users(user: User = Depends(require_roles(Role.admin))): ...

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.errors import ForbiddenError, NotFoundError, UnauthorizedError
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("electrifind.auth")

_BEARER_PREFIX = "Bearer "


def parse_bearer(header: str | None) -> str:
    """Return the token from an Authorization header value or raise UnauthorizedError."""
    if not header or not header.startswith(_BEARER_PREFIX):
        raise UnauthorizedError()
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token or " " in token:
        raise UnauthorizedError()
    return token


def bearer_token(request: Request) -> str:
    """Stage 1: extract the bearer token from the standard Authorization header."""
    return parse_bearer(request.headers.get("Authorization"))


def get_current_user(request: Request, token: str = Depends(bearer_token)) -> User:
    """Stage 2: resolve the token to an active user and attach it to request.state.

    Declared as a plain def so FastAPI runs the database lookup in its worker
    threadpool.
    """
    tokens: TokenService = request.app.state.tokens
    store: UserStore = request.app.state.user_store

    claims = tokens.verify(token)
    user = store.find_by_id(claims.subject)
    if user is None:
        raise NotFoundError("User not found")
    if not user.is_active:
        logger.info("Rejected token for deactivated user id=%s", user.id)
        raise ForbiddenError("User account is deactivated")
    request.state.user = user
    return user


def authorize(user: User, allowed: Iterable[Role | str]) -> User:
    """Stage 3: pure role-membership check. No I/O."""
    allowed_roles = {Role(r) for r in allowed}
    if user.role not in allowed_roles:
        raise ForbiddenError(f"Role '{user.role.value}' is not authorized to access this route")
    return user


def require_roles(*roles: Role | str) -> Callable[..., User]:
    """Build a dependency that authenticates, then authorizes against roles.

    Roles are validated here, at route-definition time, so a typo fails on
    import rather than on the first request.
    """
    allowed = frozenset(Role(r) for r in roles)

    def _require(user: User = Depends(get_current_user)) -> User:
        return authorize(user, allowed)

    return _require
