import base64
import json
import time
from unittest.mock import AsyncMock

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.core import auth
from app.core.jwt import JWTVerifier
from app.schemas.auth import CurrentUser

SUPABASE_URL = "https://project.supabase.co"
SECRET = "a-test-secret-that-is-long-enough-for-hs256"


def make_token(secret: str = SECRET, **overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "user-123",
        "email": "dr.lee@clinic.example",
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "role": "authenticated",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def verifier() -> JWTVerifier:
    return JWTVerifier(supabase_url=SUPABASE_URL, jwt_secret=SECRET, jwks=AsyncMock())


class TestJWTVerifier:
    @pytest.mark.asyncio
    async def test_valid_hs256_token(self, verifier):
        claims = await verifier.verify_token(make_token())

        assert claims.sub == "user-123"
        assert claims.email == "dr.lee@clinic.example"

    @pytest.mark.asyncio
    async def test_expired_token_is_rejected(self, verifier):
        now = int(time.time())
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            await verifier.verify_token(make_token(iat=now - 7200, exp=now - 3600))

    @pytest.mark.asyncio
    async def test_wrong_issuer_is_rejected(self, verifier):
        with pytest.raises(jwt.InvalidTokenError, match="issuer"):
            await verifier.verify_token(make_token(iss="https://evil.example/auth/v1"))

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected(self, verifier):
        with pytest.raises(jwt.InvalidTokenError):
            await verifier.verify_token(make_token(secret="another-secret-that-is-also-long-enough"))

    @pytest.mark.asyncio
    async def test_asymmetric_token_without_kid_is_rejected(self, verifier):
        header = base64.urlsafe_b64encode(json.dumps({"alg": "RS256", "typ": "JWT"}).encode()).rstrip(b"=")
        token = f"{header.decode()}.e30.c2ln"

        with pytest.raises(jwt.InvalidTokenError, match="kid"):
            await verifier.verify_token(token)
        verifier.jwks.get_key.assert_not_called()

    @pytest.mark.asyncio
    async def test_anonymous_token_has_no_email(self, verifier):
        token = make_token(email=None, is_anonymous=True)
        claims = await verifier.verify_token(token)

        user = auth.user_from_claims(claims)
        assert user.is_guest
        assert user.email is None


class TestCurrentUserDependency:
    @pytest.mark.asyncio
    async def test_missing_credentials_is_anonymous(self):
        assert await auth.get_current_user_optional(None) is None

    @pytest.mark.asyncio
    async def test_invalid_token_soft_fails(self, monkeypatch):
        monkeypatch.setattr(
            auth.jwt_verifier, "verify_token", AsyncMock(side_effect=jwt.InvalidTokenError("bad"))
        )
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        assert await auth.get_current_user_optional(credentials) is None

    @pytest.mark.asyncio
    async def test_strict_dependency_raises_401(self):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc_info:
            await auth.get_current_user(None)
        assert exc_info.value.status_code == 401


@pytest.mark.parametrize(
    "email,is_anonymous,expected",
    [
        ("dr.lee@clinic.example", False, False),
        (None, False, True),
        ("someone@clinic.example", True, True),
        ("temp-8f2a@guest.example", False, True),
        ("temp@guest.example", False, True),
    ],
)
def test_guest_detection(email, is_anonymous, expected):
    user = CurrentUser(id="u", email=email, is_anonymous=is_anonymous)
    assert user.is_guest is expected
