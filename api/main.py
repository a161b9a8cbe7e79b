"""
api/main.py -- FastAPI application entry point for the ElectriFind auth service.

Install:   pip install -e .
Run with:  uvicorn asgi:app --reload
           electrifind-api            (reads HOST / PORT from settings)

Middleware stack (outermost to innermost):
  1. log_requests       -- one log line per request with latency
  2. CORSMiddleware     -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware  -- API_RATE_LIMIT across all /api routes (api.limiter)

Lifespan builds the shared services once from Settings and tears them down
symmetrically: UserStore (database + hashing), TokenService (signing key +
token lifetime), AuthService (workflows over both). Routes reach them through
app.state; nothing below this module reads configuration on its own.

Error responder: every failure -- typed auth errors, request validation,
unknown routes, rate limits, unexpected exceptions -- leaves through one of
the handlers at the bottom of this module as {"success": false, "error": msg}.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.errors import AuthError
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("electrifind.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth services from Settings on startup, release them on shutdown.

    The signing key and token lifetime are read here, once, and injected into
    TokenService. They are read-only for the life of the process.
    """
    settings = get_settings()
    logger.info("ElectriFind API starting up (environment=%s)", settings.environment)
    app.state.user_store = UserStore(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenService.from_settings(settings)
    app.state.auth_service = AuthService(app.state.user_store, app.state.tokens)
    logger.info("Auth initialized (token lifetime=%ds)", settings.token_expire_seconds)

    yield

    app.state.user_store.close()
    logger.info("ElectriFind API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ElectriFind API",
    description="Account registration, login and profile management for ElectriFind.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps each add_middleware() call around everything registered
# before it, so the last one added sees the request first. SlowAPI goes in
# first so that CORS wraps it and 429 responses still carry CORS headers.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


# Outside /api, so exempt from the application limit. response_model is given
# explicitly because the exempt wrapper lives in slowapi's module namespace.
@app.get("/", tags=["Health"], response_model=HealthResponse)
@limiter.exempt
async def health() -> HealthResponse:
    """Return liveness, version and the configured environment name."""
    return HealthResponse(
        message="ElectriFind API is running...",
        version=VERSION,
        environment=get_settings().environment,
    )


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _validation_message(errors: list[dict]) -> str:
    """Turn the first pydantic error into a client-facing sentence.

    Field rules raise ValueError with a finished sentence; pydantic prefixes
    those with "Value error, ", which is stripped here.
    """
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "missing":
        return f"{loc[-1]} is required" if loc else "Request body is required"
    message = str(first.get("msg", "Invalid request"))
    return message.removeprefix("Value error, ")


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the typed auth errors to their status code and message."""
    if exc.status_code >= 500:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, "Server Error")
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the first failing rule when the body or query params are invalid."""
    return _error(400, _validation_message(exc.errors()))


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    A plain def: SlowAPIMiddleware calls this handler synchronously for the
    application limit, and substitutes its own body for a coroutine handler.
    Retry-After is the length of the exceeded limit's window in seconds.
    """
    response = _error(429, "Too many requests from this IP, please try again later")
    response.headers["Retry-After"] = str(exc.limit.limit.get_expiry())
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Covers unknown routes (404), wrong methods (405) and any HTTPException raised by the framework."""
    if exc.status_code == 404:
        return _error(404, "Route not found")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Server Error")


# ---------------------------------------------------------------------------
# Process entry point
# ---------------------------------------------------------------------------


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
