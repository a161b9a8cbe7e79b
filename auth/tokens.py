"""
auth/tokens.py -- Stateless session tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide
       SECRET_KEY and carry the user id (sub), role, issue time (iat), expiry
       (exp) and a random jti. The jti only makes every token unique -- two
       tokens issued to the same user in the same second would otherwise be
       byte-identical. It is not checked against any list.

  Verification raises UnauthorizedError with one fixed message for every
       failure (malformed, bad signature, expired, missing claim, unknown
       role). The concrete reason is logged at DEBUG and never returned, so a
       client cannot use the error to probe the signing setup.

  Stateless: there is no session table and no revocation list. Logout is the
       client discarding its token, and a token issued before a password
       change stays valid until it expires.

Layer rule: no imports from api/ or core/. The signing key and lifetime are
injected by the caller (api/main.py builds one TokenService from Settings).
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import UnauthorizedError
from auth.models import Role, TokenClaims

logger = logging.getLogger("electrifind.auth")

ALGORITHM = "HS256"
DEFAULT_EXPIRE_SECONDS = 7 * 24 * 3600


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(self, secret_key: str, expire_seconds: int = DEFAULT_EXPIRE_SECONDS) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing key")
        if expire_seconds <= 0:
            raise ValueError("Token lifetime must be positive")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    @classmethod
    def from_settings(cls, settings) -> TokenService:
        return cls(settings.secret_key, settings.token_expire_seconds)

    def issue(self, user_id: int, role: Role | str, now: datetime | None = None) -> str:
        """Encode a signed JWT for user_id/role that expires after the configured lifetime.

        now defaults to the current UTC time; passing an earlier instant
        backdates the token (expiry is computed from it).
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
            "jti": secrets.token_urlsafe(12),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry and return the embedded identity.

        Raises UnauthorizedError on any failure.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
            return TokenClaims(subject=int(payload["sub"]), role=Role(payload["role"]))
        except (JWTError, KeyError, TypeError, ValueError) as exc:
            logger.debug("Token rejected: %s", exc.__class__.__name__)
            raise UnauthorizedError() from None
