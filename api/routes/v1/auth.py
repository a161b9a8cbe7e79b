"""
api/routes/v1/auth.py -- Authentication and account REST endpoints.

Routes (mounted under /api/auth):
  POST /register   -- create account, returns token              (public, rate limited)
  POST /login      -- phone + password login, returns token      (public, rate limited)
  GET  /me         -- current user's record                      (bearer)
  PUT  /profile    -- partial update of name/email/image/address (bearer)
  PUT  /password   -- change password, returns a new token       (bearer)
  POST /logout     -- acknowledge logout; tokens are stateless   (bearer)

Security:
  Credential-accepting routes are rate limited per client IP (LOGIN_RATE_LIMIT).
  Login responses carry Cache-Control: no-store so tokens are not cached.
  Every route that hashes, verifies or queries is a plain `def`: FastAPI runs
  it in the worker threadpool so bcrypt never stalls the event loop.

No `from __future__ import annotations` here: FastAPI resolves the annotations
of a slowapi-wrapped endpoint through the wrapper, which cannot see string
annotations from this module.

Errors are not handled here. AuthService raises auth/errors.py exceptions and
the responder registered in api/main.py turns them into the error envelope.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import credential_limit, limiter
from api.models import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LoginUserSummary,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserDataResponse,
    UserRecord,
    UserSummary,
    UserUpdateResponse,
)
from auth.dependencies import get_current_user
from auth.models import NewUser, User
from auth.service import AuthService

# Auth policy:
# - POST /api/auth/register:  public
# - POST /api/auth/login:     public
# - GET  /api/auth/me:        requires auth (get_current_user)
# - PUT  /api/auth/profile:   requires auth (get_current_user)
# - PUT  /api/auth/password:  requires auth (get_current_user)
# - POST /api/auth/logout:    requires auth (get_current_user)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(credential_limit)  # must sit BELOW @router so the registered endpoint is the limited wrapper
def register(request: Request, response: Response, body: RegisterRequest) -> RegisterResponse:
    """Create an account. Role defaults to customer when the body omits it."""
    result = _service(request).register(
        NewUser(
            name=body.name,
            phone=body.phone,
            password=body.password,
            email=body.email,
            role=body.role,
        )
    )
    response.headers["Cache-Control"] = "no-store"
    return RegisterResponse(
        message="Registration successful",
        token=result.token,
        user=UserSummary.from_user(result.user),
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(credential_limit)
def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with phone and password.

    Unknown phone and wrong password produce the same 401 body. A deactivated
    account with the right password gets 403.
    """
    result = _service(request).login(body.phone, body.password)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        message="Login successful",
        token=result.token,
        user=LoginUserSummary.from_user(result.user),
    )


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserDataResponse)
def me(request: Request, current_user: User = Depends(get_current_user)) -> UserDataResponse:
    """Return the full record of the currently authenticated user."""
    user = _service(request).get_self(current_user)
    return UserDataResponse(data=UserRecord.from_user(user))


@router.put("/profile", response_model=UserUpdateResponse)
def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
) -> UserUpdateResponse:
    """Update name, email, profile image and/or address. Omitted fields are unchanged."""
    user = _service(request).update_profile(current_user, body.to_fields())
    return UserUpdateResponse(message="Profile updated successfully", data=UserRecord.from_user(user))


@router.put("/password", response_model=TokenResponse)
def change_password(
    request: Request,
    response: Response,
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
) -> TokenResponse:
    """Change the password and return a fresh token.

    Tokens issued before the change keep working until they expire -- there
    is no revocation list.
    """
    token = _service(request).change_password(current_user, body.current_password, body.new_password)
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(message="Password updated successfully", token=token)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> MessageResponse:
    """Acknowledge logout. The client is responsible for discarding its token."""
    _service(request).logout(current_user)
    return MessageResponse(message="Logged out successfully")
