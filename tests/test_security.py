"""Tests for access tokens and how the API resolves the caller's role."""

from jose import jwt

from marketplace.core.config import settings
from marketplace.core.security import create_access_token, decode_access_token
from marketplace.models import User, UserRole


class TestAccessToken:
    def test_claims_hold_subject_only(self):
        claims = jwt.get_unverified_claims(create_access_token(42))
        assert claims["sub"] == "42"
        assert claims["type"] == "access"
        assert "exp" in claims
        assert "role" not in claims

    def test_decode_returns_subject(self):
        assert decode_access_token(create_access_token(7)) == "7"

    def test_decode_rejects_other_token_types(self):
        token = jwt.encode({"sub": "7", "type": "refresh"}, settings.secret_key, algorithm=settings.algorithm)
        assert decode_access_token(token) is None

    def test_decode_rejects_bad_signature(self):
        token = jwt.encode({"sub": "7", "type": "access"}, "another-key", algorithm=settings.algorithm)
        assert decode_access_token(token) is None

    async def test_role_comes_from_the_stored_user(self, client, session_maker, marketplace):
        headers = marketplace.provider_headers
        assert (await client.get("/api/v1/providers/availabilities", headers=headers)).status_code == 200

        async with session_maker() as session:
            user = await session.get(User, marketplace.provider_user.id)
            user.role = UserRole.CLIENT
            await session.commit()

        response = await client.get("/api/v1/providers/availabilities", headers=headers)
        assert response.status_code == 403
