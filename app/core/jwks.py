"""JWKS (JSON Web Key Set) cache for Supabase JWT verification.

Fetches the project's public signing keys and keeps them in memory for
``cache_ttl`` seconds. A lookup for an unknown ``kid`` forces one refresh so
rotated keys are picked up without waiting for the TTL.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JWKKey(BaseModel):
    """JSON Web Key (RSA or EC public key)."""

    model_config = ConfigDict(extra="allow")

    kid: str
    kty: str
    alg: Optional[str] = None
    use: Optional[str] = None

    # RSA
    n: Optional[str] = None
    e: Optional[str] = None

    # EC
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class JWKSResponse(BaseModel):
    """JWKS response model."""

    keys: list[JWKKey]


class JWKSService:
    """Fetch and cache Supabase JWKS keys."""

    def __init__(
        self,
        supabase_url: str,
        cache_ttl: int = 3600,
        timeout: int = 30
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.jwks_url = f"{self.supabase_url}/auth/v1/.well-known/jwks.json"
        self.cache_ttl = cache_ttl
        self.timeout = timeout

        self._keys_cache: Optional[Dict[str, JWKKey]] = None
        self._cache_timestamp: Optional[float] = None
        self._lock = asyncio.Lock()

    async def get_keys(self, force_refresh: bool = False) -> Dict[str, JWKKey]:
        """Get JWKS keys, using the cache while it is fresh.

        Raises:
            RuntimeError: If keys cannot be fetched
        """
        async with self._lock:
            if not force_refresh and self._is_cache_valid():
                return dict(self._keys_cache)

            LOGGER.info("Fetching JWKS keys", extra={"jwks_url": self.jwks_url})
            keys = await self._fetch_keys()
            self._keys_cache = dict(keys)
            self._cache_timestamp = time.time()
            return keys

    async def get_key(self, kid: str) -> Optional[JWKKey]:
        """Get a key by ID, refreshing once if it is not cached."""
        keys = await self.get_keys()
        if kid not in keys:
            keys = await self.get_keys(force_refresh=True)
        return keys.get(kid)

    def _is_cache_valid(self) -> bool:
        if self._keys_cache is None or self._cache_timestamp is None:
            return False
        return time.time() - self._cache_timestamp < self.cache_ttl

    async def _fetch_keys(self) -> Dict[str, JWKKey]:
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.jwks_url) as response:
                    if response.status != 200:
                        raise RuntimeError(
                            f"JWKS endpoint returned {response.status}: {await response.text()}"
                        )
                    data = await response.json()
        except aiohttp.ClientError as e:
            LOGGER.error(f"Network error fetching JWKS: {e}")
            raise RuntimeError(f"Failed to fetch JWKS keys: {e}") from e

        try:
            jwks_response = JWKSResponse(**data)
        except Exception as e:
            raise RuntimeError(f"Invalid JWKS response: {e}") from e

        keys = {key.kid: key for key in jwks_response.keys}
        LOGGER.info(f"Fetched {len(keys)} JWKS keys")
        return keys


jwks_service = JWKSService(
    supabase_url=settings.supabase_url,
    cache_ttl=settings.supabase_jwks_cache_ttl,
)
