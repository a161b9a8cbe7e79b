"""
api/routes/v1/users.py -- Account administration endpoints (admin only).

Routes (mounted under /api/users):
  GET   /                      -- list accounts, optional ?role= filter
  PATCH /{user_id}/status      -- activate or deactivate an account

Deactivation is the only way an account is removed. A deactivated user's
existing tokens stop working on the next request because the guard checks
is_active on every authenticated call.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import StatusUpdateRequest, UserListResponse, UserRecord, UserUpdateResponse
from auth.dependencies import require_roles
from auth.models import Role, User
from auth.service import AuthService

router = APIRouter()

_admin_only = require_roles(Role.admin)


@router.get("", response_model=UserListResponse)
def list_users(
    request: Request,
    role: Optional[Role] = None,
    current_user: User = Depends(_admin_only),
) -> UserListResponse:
    """List all accounts, newest first."""
    service: AuthService = request.app.state.auth_service
    users = service.list_users(role)
    return UserListResponse(count=len(users), data=[UserRecord.from_user(u) for u in users])


@router.patch("/{user_id}/status", response_model=UserUpdateResponse)
def update_status(
    request: Request,
    user_id: int,
    body: StatusUpdateRequest,
    current_user: User = Depends(_admin_only),
) -> UserUpdateResponse:
    """Activate or deactivate an account.

    Refuses self-deactivation and deactivating the last active admin.
    """
    service: AuthService = request.app.state.auth_service
    user = service.set_active(current_user, user_id, body.is_active)
    state = "activated" if user.is_active else "deactivated"
    return UserUpdateResponse(message=f"User {state} successfully", data=UserRecord.from_user(user))
