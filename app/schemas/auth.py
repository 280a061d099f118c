"""Authentication schemas for Supabase JWT tokens.

This module defines Pydantic models for the verified token claims and the
identity handed to the service layer.
"""

from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

GUEST_EMAIL_PREFIXES = ("temp-", "temp@")


class JWTClaims(BaseModel):
    """JWT claims extracted from Supabase access token."""

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User email, absent for anonymous sign-ins")
    role: str = Field(default="authenticated", description="User role")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    iss: Optional[str] = Field(None, description="Token issuer")

    # Optional Supabase-specific claims
    aud: Optional[str] = Field(None, description="Audience")
    is_anonymous: bool = Field(default=False, description="Anonymous sign-in flag")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")
    session_id: Optional[str] = Field(None, description="Session ID")


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    id: str = Field(..., description="Supabase user ID")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="user", description="User role")
    is_anonymous: bool = Field(default=False, description="Anonymous (guest) identity")

    # Optional user metadata
    full_name: Optional[str] = Field(None, description="User's full name")

    @property
    def is_guest(self) -> bool:
        """Guest identities get a generic practice name."""
        if self.is_anonymous or not self.email:
            return True
        return self.email.lower().startswith(GUEST_EMAIL_PREFIXES)


__all__ = [
    "JWTClaims",
    "CurrentUser",
]
