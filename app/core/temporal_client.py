"""Temporal client configuration and connection management.

This module centralizes Temporal client access in the core layer so that
services and background workers can share a single connection manager.
"""

from typing import Optional

from temporalio.client import Client as TemporalClient

from app.core.config import settings


class TemporalClientManager:
    """Lazily creates a Temporal client and keeps it around for reuse."""

    _client: Optional[TemporalClient] = None

    async def get_client(self) -> TemporalClient:
        if self._client is None:
            self._client = await TemporalClient.connect(
                f"{settings.temporal_host}:{settings.temporal_port}",
                namespace=settings.temporal_namespace,
            )
        return self._client

    def reset(self) -> None:
        """Forget the cached client; the next call reconnects."""
        self._client = None


_temporal_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    """Get the shared Temporal client, connecting on first use."""
    return await _temporal_manager.get_client()


def reset_temporal_client() -> None:
    _temporal_manager.reset()
