"""Storage service for handling Supabase storage operations."""

from typing import Any, Dict, Optional
from uuid import uuid4

import httpx

from app.core.config import settings
from app.core.exceptions import StorageError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Supabase answers 400 "Object not found" as well as 404 for missing objects.
MISSING_OBJECT_STATUSES = (400, 404)


class StorageService:
    """Service for managing plan documents in Supabase storage."""

    def __init__(self, bucket: Optional[str] = None):
        self.url = settings.supabase_url.rstrip("/")
        self.service_role_key = settings.supabase_service_role_key
        self.bucket = bucket or settings.storage_bucket
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    def _absolute(self, path: str) -> str:
        # Signed paths come back relative to the storage API root.
        if path.startswith("http"):
            return path
        if path.startswith("/storage/v1"):
            return f"{self.url}{path}"
        return f"{self.base_api_url}/{path.lstrip('/')}"

    async def create_upload_target(
        self,
        prefix: str,
        expires_in: Optional[int] = None
    ) -> Dict[str, Any]:
        """Create a signed, single-use upload URL for a new object.

        Args:
            prefix: Folder the object is created in (the uploader's user ID)
            expires_in: Lifetime of the URL in seconds

        Returns:
            Dict with ``upload_url``, ``storage_ref``, ``token`` and ``expires_in``

        Raises:
            StorageError: If Supabase refuses to sign the upload
        """
        storage_ref = f"{prefix}/{uuid4().hex}"
        expires_in = expires_in or settings.supabase.upload_url_ttl
        url = f"{self.base_api_url}/object/upload/sign/{self.bucket}/{storage_ref}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                    timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error signing upload URL: {str(e)}", exc_info=True)
            raise StorageError(f"Upload URL error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to sign upload URL: {response.text}",
                extra={"bucket": self.bucket, "path": storage_ref, "status_code": response.status_code}
            )
            raise StorageError(f"Upload URL generation failed: {response.text}")

        data = response.json()
        signed_path = data.get("url")
        if not signed_path:
            raise StorageError("Supabase response did not contain an upload url")

        return {
            "upload_url": self._absolute(signed_path),
            "storage_ref": storage_ref,
            "token": data.get("token"),
            "expires_in": expires_in,
        }

    async def resolve_url(
        self,
        storage_ref: str,
        expires_in: Optional[int] = None
    ) -> Optional[str]:
        """Resolve a storage reference to an expiring download URL.

        Args:
            storage_ref: Object path inside the bucket
            expires_in: Lifetime of the URL in seconds

        Returns:
            The signed URL, or None if the object does not exist

        Raises:
            StorageError: If Supabase fails for any other reason
        """
        expires_in = expires_in or settings.supabase.download_url_ttl
        url = f"{self.base_api_url}/object/sign/{self.bucket}/{storage_ref}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                    timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error generating signed URL: {str(e)}", exc_info=True)
            raise StorageError(f"Signed URL error: {str(e)}", original_error=e)

        if response.status_code in MISSING_OBJECT_STATUSES:
            LOGGER.warning(
                "Storage object not found",
                extra={"bucket": self.bucket, "path": storage_ref, "status_code": response.status_code}
            )
            return None

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to generate signed URL: {response.text}",
                extra={"bucket": self.bucket, "path": storage_ref, "status_code": response.status_code}
            )
            raise StorageError(f"Signed URL generation failed: {response.text}")

        signed_path = response.json().get("signedURL")
        if not signed_path:
            return None
        return self._absolute(signed_path)

    async def delete_object(self, storage_ref: str) -> None:
        """Delete an object from the bucket. Deleting a missing object succeeds.

        Raises:
            StorageError: If the delete is rejected
        """
        url = f"{self.base_api_url}/object/{self.bucket}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    "DELETE",
                    url,
                    headers=self.headers,
                    json={"prefixes": [storage_ref]},
                    timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error deleting storage object: {str(e)}", exc_info=True)
            raise StorageError(f"Storage delete error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to delete storage object: {response.text}",
                extra={"bucket": self.bucket, "path": storage_ref, "status_code": response.status_code}
            )
            raise StorageError(f"Delete failed: {response.text}")

        LOGGER.info("Deleted storage object", extra={"bucket": self.bucket, "path": storage_ref})
