"""JWT verification for Supabase access tokens.

HS256 tokens are checked against the project JWT secret; RS256/ES256 tokens
against the project's JWKS.
"""

import json

import jwt
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from app.core.config import settings
from app.core.jwks import JWKKey, JWKSService, jwks_service
from app.schemas.auth import JWTClaims
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

ASYMMETRIC_ALGORITHMS = ("RS256", "ES256")


class JWTVerifier:
    """JWT verifier for Supabase access tokens."""

    def __init__(self, supabase_url: str, jwt_secret: str = "", jwks: JWKSService = jwks_service):
        """Initialize JWT verifier.

        Args:
            supabase_url: Supabase project URL for issuer validation
            jwt_secret: Supabase JWT secret for HS256 verification
            jwks: Key set used for asymmetric tokens
        """
        self.supabase_url = supabase_url.rstrip("/")
        self.expected_issuer = f"{self.supabase_url}/auth/v1"
        self.jwt_secret = jwt_secret
        self.jwks = jwks

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a Supabase JWT.

        Args:
            token: JWT access token from the Authorization header

        Returns:
            Decoded and validated claims

        Raises:
            jwt.InvalidTokenError: If the token is malformed, expired or badly signed
        """
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg")

            if alg == "HS256":
                if not self.jwt_secret:
                    raise jwt.InvalidTokenError("HS256 token received but SUPABASE_JWT_SECRET is not configured")
                key = self.jwt_secret
            elif alg in ASYMMETRIC_ALGORITHMS:
                kid = header.get("kid")
                if not kid:
                    raise jwt.InvalidTokenError("JWT header missing 'kid' (key ID)")
                jwk_key = await self.jwks.get_key(kid)
                if not jwk_key:
                    raise jwt.InvalidTokenError(f"No matching key found for kid: {kid}")
                key = self._public_key(jwk_key)
            else:
                raise jwt.InvalidTokenError(f"Unsupported algorithm: {alg}")

            payload = jwt.decode(
                token,
                key,
                algorithms=[alg],
                audience="authenticated",
                issuer=self.expected_issuer,
                options={"require": ["sub", "exp", "iat"]},
            )
            claims = JWTClaims(**payload)
            LOGGER.debug(f"Verified token for user: {claims.sub}")
            return claims

        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            LOGGER.warning(f"Invalid issuer: {e}")
            raise jwt.InvalidTokenError("Invalid token issuer") from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise
        except RuntimeError as e:
            LOGGER.error(f"Signing keys unavailable: {e}")
            raise jwt.InvalidTokenError("Token verification failed") from e

    @staticmethod
    def _public_key(jwk_key: JWKKey):
        """Build a public key object from a JWK."""
        if jwk_key.kty == "RSA":
            return RSAAlgorithm.from_jwk(json.dumps(jwk_key.as_dict()))
        if jwk_key.kty == "EC":
            return ECAlgorithm.from_jwk(json.dumps(jwk_key.as_dict()))
        raise jwt.InvalidTokenError(f"Unsupported key type: {jwk_key.kty}")


jwt_verifier = JWTVerifier(
    supabase_url=settings.supabase_url,
    jwt_secret=settings.supabase_jwt_secret
)
