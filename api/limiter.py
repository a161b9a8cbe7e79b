"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Two limits, both per client IP and both read from Settings on every request:
  API_RATE_LIMIT    -- application limit, checked by SlowAPIMiddleware for
                       every matched /api route against one shared counter
  LOGIN_RATE_LIMIT  -- extra per-route limit on register and login
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings


def api_limit() -> str:
    """Blanket limit across all /api routes (API_RATE_LIMIT)."""
    return get_settings().api_rate_limit


def credential_limit() -> str:
    """Limit applied to the routes that accept a password (LOGIN_RATE_LIMIT)."""
    return get_settings().login_rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[api_limit],
    storage_uri="memory://",
)
