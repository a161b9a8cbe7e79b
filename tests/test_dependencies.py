"""
tests/test_dependencies.py -- Unit tests for the access control guard.

Exercises auth/dependencies.py stages directly, without an HTTP round trip:
a SimpleNamespace stands in for the Starlette request, carrying only the
app.state attributes the guard reads.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from auth.dependencies import authorize, get_current_user, parse_bearer, require_roles
from auth.errors import ForbiddenError, NotFoundError, UnauthorizedError
from auth.models import Role, User


def _request(store, tokens) -> SimpleNamespace:
    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(user_store=store, tokens=tokens)),
        state=SimpleNamespace(),
    )


class TestParseBearer:
    def test_extracts_token(self) -> None:
        assert parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize(
        "header",
        [None, "", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "bearer abc", "Token abc", "Bearer a b"],
    )
    def test_rejects_missing_or_malformed(self, header) -> None:
        with pytest.raises(UnauthorizedError):
            parse_bearer(header)


class TestGetCurrentUser:
    def test_valid_token_attaches_user(self, store, tokens, make_user) -> None:
        user = make_user()
        request = _request(store, tokens)
        current = get_current_user(request, tokens.issue(user.id, user.role))
        assert current.id == user.id
        assert current.password_hash is None
        assert request.state.user is current

    def test_deleted_user_is_not_found(self, store, tokens) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            get_current_user(_request(store, tokens), tokens.issue(404, Role.customer))

    def test_deactivated_user_forbidden(self, store, tokens, make_user) -> None:
        user = make_user()
        store.set_active(user.id, False)
        with pytest.raises(ForbiddenError, match="deactivated"):
            get_current_user(_request(store, tokens), tokens.issue(user.id, user.role))

    def test_bad_token_unauthorized(self, store, tokens) -> None:
        request = _request(store, tokens)
        with pytest.raises(UnauthorizedError):
            get_current_user(request, "not-a-token")
        assert not hasattr(request.state, "user")


class TestAuthorize:
    def test_allowed_role_passes(self) -> None:
        user = User(name="Shop Owner", phone="03001234567", role=Role.shopkeeper, id=3)
        assert authorize(user, [Role.shopkeeper, Role.admin]) is user

    def test_other_role_forbidden_with_role_in_message(self) -> None:
        user = User(name="Ali Khan", phone="03001234567", role=Role.customer, id=1)
        with pytest.raises(ForbiddenError) as exc_info:
            authorize(user, [Role.admin])
        assert exc_info.value.message == "Role 'customer' is not authorized to access this route"

    def test_accepts_role_strings(self) -> None:
        user = User(name="Site Admin", phone="03001234567", role=Role.admin, id=1)
        assert authorize(user, ["admin"]) is user


class TestRequireRoles:
    def test_unknown_role_fails_at_definition(self) -> None:
        with pytest.raises(ValueError):
            require_roles("superuser")

    def test_dependency_authorizes(self) -> None:
        dependency = require_roles(Role.admin)
        admin = User(name="Site Admin", phone="03001234567", role=Role.admin, id=1)
        customer = User(name="Ali Khan", phone="03001234568", role=Role.customer, id=2)
        assert dependency(admin) is admin
        with pytest.raises(ForbiddenError):
            dependency(customer)
