"""Authentication dependencies for FastAPI routes.

Routes take the identity through ``get_current_user_optional`` and let the
service layer decide whether a missing identity is an error or a soft fail.
``get_current_user`` is available for routes that must reject anonymous
callers before any work is done.
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.jwt import jwt_verifier
from app.schemas.auth import CurrentUser, JWTClaims
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def user_from_claims(claims: JWTClaims) -> CurrentUser:
    """Convert verified JWT claims to the identity used by services."""
    full_name = None
    if claims.user_metadata:
        full_name = claims.user_metadata.get("full_name")
    return CurrentUser(
        id=claims.sub,
        email=claims.email,
        role=claims.role or "user",
        is_anonymous=claims.is_anonymous,
        full_name=full_name,
    )


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Get the current user if authenticated, None otherwise.

    Missing and invalid tokens both resolve to None.
    """
    if not credentials:
        return None

    try:
        claims = await jwt_verifier.verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Rejected bearer token: {e}")
        return None

    user = user_from_claims(claims)
    LOGGER.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user(
    user: Optional[CurrentUser] = Depends(get_current_user_optional)
) -> CurrentUser:
    """Get the current user or raise 401.

    Raises:
        HTTPException: If the token is missing, invalid, or expired
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
