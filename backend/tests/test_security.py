"""Tests for password hashing, tokens and the authorization policy."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ConfigurationError
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from app.models.user import Role
from app.modules.auth.policy import Principal, authorize


class TestPasswords:
    def test_hash_is_salted_bcrypt_cost_10(self):
        first = hash_password("correct horse")
        second = hash_password("correct horse")

        assert first.startswith("$2b$10$")
        assert first != second
        assert "correct horse" not in first

    def test_verify(self):
        hashed = hash_password("correct horse")

        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token({"id": 7, "email": "a@example.com", "role": "USER"})
        claims = decode_access_token(token)

        assert claims["id"] == 7
        assert claims["email"] == "a@example.com"
        assert claims["role"] == "USER"
        assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60

    def test_tampered_token_rejected(self):
        token = create_access_token({"id": 7, "email": "a@example.com", "role": "USER"})
        forged = jwt.encode(
            {"id": 7, "email": "a@example.com", "role": "ADMIN"},
            "some-other-secret-that-is-long-enough-000000",
            algorithm="HS256",
        )

        assert decode_access_token(token) is not None
        assert decode_access_token(forged) is None
        assert decode_access_token("garbage") is None

    def test_expired_token_treated_as_absent(self):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        expired = jwt.encode(
            {
                "id": 7,
                "email": "a@example.com",
                "role": "USER",
                "iat": issued,
                "exp": issued + timedelta(days=7),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_access_token(expired) is None

    def test_missing_secret_is_fatal(self, monkeypatch):
        monkeypatch.setattr(settings, "jwt_secret_key", "")

        with pytest.raises(ConfigurationError):
            create_access_token({"id": 1})
        with pytest.raises(ConfigurationError):
            decode_access_token("whatever")


class TestPolicy:
    user = Principal(id=1, email="u@example.com", role=Role.USER)
    admin = Principal(id=2, email="a@example.com", role=Role.ADMIN)

    def test_anonymous_denied(self):
        with pytest.raises(AuthenticationError):
            authorize(None)

    def test_user_allowed_for_user_routes(self):
        assert authorize(self.user, Role.USER) is self.user

    def test_user_denied_admin_routes(self):
        with pytest.raises(AuthenticationError):
            authorize(self.user, Role.ADMIN)

    def test_admin_allowed_everywhere(self):
        assert authorize(self.admin, Role.ADMIN) is self.admin
        assert authorize(self.admin, Role.USER) is self.admin

    def test_claims_round_trip(self):
        assert Principal.from_claims(self.admin.to_claims()) == self.admin

    @pytest.mark.parametrize(
        "claims",
        [
            {},
            {"id": 1, "email": "x@example.com"},
            {"id": 1, "email": "x@example.com", "role": "SUPERUSER"},
            {"id": "abc", "email": "x@example.com", "role": "USER"},
        ],
    )
    def test_incomplete_claims(self, claims):
        assert Principal.from_claims(claims) is None
