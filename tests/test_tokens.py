"""Unit tests for auth/tokens.py -- issuing and verifying session tokens."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import UnauthorizedError
from auth.models import Role
from auth.tokens import ALGORITHM, TokenService

TEST_SECRET = "test-signing-key-0123456789abcdef0123456789"


class TestIssueAndVerify:
    def test_round_trip(self, tokens: TokenService) -> None:
        claims = tokens.verify(tokens.issue(42, Role.shopkeeper))
        assert claims.subject == 42
        assert claims.role == Role.shopkeeper

    def test_claims_carry_expiry_after_issue(self, tokens: TokenService) -> None:
        payload = jwt.decode(tokens.issue(7, Role.customer), TEST_SECRET, algorithms=[ALGORITHM])
        assert payload["sub"] == "7"
        assert payload["role"] == "customer"
        assert payload["exp"] - payload["iat"] == 3600

    def test_tokens_issued_together_differ(self, tokens: TokenService) -> None:
        now = datetime.now(timezone.utc)
        assert tokens.issue(1, Role.customer, now=now) != tokens.issue(1, Role.customer, now=now)

    def test_expired_token_rejected(self) -> None:
        service = TokenService(TEST_SECRET, expire_seconds=7 * 24 * 3600)
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        with pytest.raises(UnauthorizedError):
            service.verify(service.issue(1, Role.customer, now=issued))

    def test_wrong_secret_rejected(self, tokens: TokenService) -> None:
        other = TokenService("another-signing-key-0123456789abcdef0123", expire_seconds=3600)
        with pytest.raises(UnauthorizedError):
            tokens.verify(other.issue(1, Role.admin))

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "eyJhbGciOiJIUzI1NiJ9.e30."])
    def test_malformed_token_rejected(self, tokens: TokenService, garbage: str) -> None:
        with pytest.raises(UnauthorizedError):
            tokens.verify(garbage)

    def test_unknown_role_rejected(self, tokens: TokenService) -> None:
        forged = jwt.encode(
            {"sub": "1", "role": "superuser", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            TEST_SECRET,
            algorithm=ALGORITHM,
        )
        with pytest.raises(UnauthorizedError):
            tokens.verify(forged)

    def test_missing_subject_rejected(self, tokens: TokenService) -> None:
        forged = jwt.encode(
            {"role": "customer", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            TEST_SECRET,
            algorithm=ALGORITHM,
        )
        with pytest.raises(UnauthorizedError):
            tokens.verify(forged)

    def test_every_failure_has_the_same_message(self, tokens: TokenService) -> None:
        expired = tokens.issue(1, Role.customer, now=datetime.now(timezone.utc) - timedelta(days=1))
        messages = set()
        for token in ("garbage", expired, TokenService("z" * 40).issue(1, Role.customer)):
            with pytest.raises(UnauthorizedError) as exc_info:
                tokens.verify(token)
            messages.add(exc_info.value.message)
        assert messages == {"Not authorized to access this route"}


class TestConstruction:
    def test_empty_secret_refused(self) -> None:
        with pytest.raises(ValueError):
            TokenService("")

    def test_non_positive_lifetime_refused(self) -> None:
        with pytest.raises(ValueError):
            TokenService(TEST_SECRET, expire_seconds=0)
