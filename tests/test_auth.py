"""Tests for session tokens and authorization."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from web3hire.auth import AuthContext, authorize, create_access_token, decode_token, require
from web3hire.errors import ForbiddenError, UnauthenticatedError
from web3hire.identity.models import Role, User


@pytest.fixture
def user():
    return User(
        id="usr_TEST_ONLY_000001",
        role=Role.EMPLOYER.value,
        wallet_address="0x" + "ab" * 20,
        email="hire@example.com",
    )


class TestTokens:
    """Tests for token creation and decoding."""

    def test_round_trip_carries_identity_claims(self, user, settings):
        token = create_access_token(user, settings)
        claims = decode_token(token, settings)

        assert claims["id"] == user.id
        assert claims["role"] == "Employer"
        assert claims["wallet_address"] == user.wallet_address
        assert claims["email"] == "hire@example.com"
        assert claims["type"] == "access"

    def test_default_expiry_is_seven_days(self, user, settings):
        token = create_access_token(user, settings)
        claims = decode_token(token, settings)

        lifetime = claims["exp"] - claims["iat"]
        assert lifetime == 7 * 24 * 60 * 60

    def test_expired_token_rejected(self, user, settings):
        token = create_access_token(user, settings, expires_delta=timedelta(seconds=-1))

        with pytest.raises(UnauthenticatedError, match="Invalid or expired"):
            decode_token(token, settings)

    def test_wrong_secret_rejected(self, user, settings):
        forged = jwt.encode(
            {
                "id": user.id,
                "role": "Admin",
                "type": "access",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            "not-the-server-secret",
            algorithm="HS256",
        )

        with pytest.raises(UnauthenticatedError):
            decode_token(forged, settings)

    def test_garbage_rejected(self, settings):
        with pytest.raises(UnauthenticatedError):
            decode_token("not.a.token", settings)

    def test_missing_role_claim_rejected(self, settings):
        token = jwt.encode(
            {
                "id": "usr_1",
                "type": "access",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(UnauthenticatedError, match="payload"):
            decode_token(token, settings)


class TestAuthorize:
    """Tests for the pure authorization check."""

    def test_admin_always_allowed(self):
        auth = AuthContext(user_id="usr_admin", role="Admin")
        assert authorize(auth, owner_id="someone-else", roles=[Role.EMPLOYER])

    def test_owner_allowed(self):
        auth = AuthContext(user_id="usr_1", role="Employer")
        assert authorize(auth, owner_id="usr_1")

    def test_non_owner_denied(self):
        auth = AuthContext(user_id="usr_2", role="Employer")
        assert not authorize(auth, owner_id="usr_1")

    def test_role_required(self):
        auth = AuthContext(user_id="usr_1", role="Candidate")
        assert not authorize(auth, roles=[Role.EMPLOYER, Role.ADMIN])
        assert authorize(auth, roles=["Candidate"])

    def test_role_and_owner_both_checked(self):
        auth = AuthContext(user_id="usr_1", role="Candidate")
        assert not authorize(auth, owner_id="usr_1", roles=[Role.EMPLOYER])

    def test_require_raises_forbidden(self):
        auth = AuthContext(user_id="usr_2", role="Employer")
        with pytest.raises(ForbiddenError, match="Nope"):
            require(auth, "Nope", owner_id="usr_1")

    def test_context_from_claims(self):
        auth = AuthContext.from_claims({"id": "usr_1", "role": "Admin", "wallet_address": None})
        assert auth.user_id == "usr_1"
        assert auth.is_admin
