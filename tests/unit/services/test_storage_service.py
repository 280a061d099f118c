from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.exceptions import StorageError
from app.services.storage_service import StorageService

BASE = "https://project.supabase.co"


def response(status_code: int, json_body=None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", BASE)
    if json_body is not None:
        return httpx.Response(status_code, json=json_body, request=request)
    return httpx.Response(status_code, text=text, request=request)


@pytest.fixture
def storage() -> StorageService:
    return StorageService(bucket="plan-documents")


class TestStorageService:
    @pytest.mark.asyncio
    async def test_upload_target_under_prefix(self, storage):
        signed = {"url": "/object/upload/sign/plan-documents/user-1/abc?token=tok", "token": "tok"}
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response(200, signed))) as post:
            target = await storage.create_upload_target(prefix="user-1")

        called_url = post.await_args.args[0]
        assert called_url.startswith(f"{BASE}/storage/v1/object/upload/sign/plan-documents/user-1/")
        assert target["storage_ref"].startswith("user-1/")
        assert target["upload_url"] == f"{BASE}/storage/v1/object/upload/sign/plan-documents/user-1/abc?token=tok"
        assert target["token"] == "tok"

    @pytest.mark.asyncio
    async def test_upload_target_failure(self, storage):
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response(500, text="boom"))):
            with pytest.raises(StorageError):
                await storage.create_upload_target(prefix="user-1")

    @pytest.mark.asyncio
    async def test_resolve_url(self, storage):
        signed = {"signedURL": "/object/sign/plan-documents/user-1/abc?token=dl"}
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response(200, signed))):
            url = await storage.resolve_url("user-1/abc")

        assert url == f"{BASE}/storage/v1/object/sign/plan-documents/user-1/abc?token=dl"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404])
    async def test_resolve_missing_object(self, storage, status_code):
        missing = response(status_code, {"error": "not_found", "message": "Object not found"})
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=missing)):
            assert await storage.resolve_url("user-1/gone") is None

    @pytest.mark.asyncio
    async def test_resolve_network_error(self, storage):
        with patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ConnectError("refused"))):
            with pytest.raises(StorageError):
                await storage.resolve_url("user-1/abc")

    @pytest.mark.asyncio
    async def test_delete_object(self, storage):
        with patch("httpx.AsyncClient.request", new=AsyncMock(return_value=response(200, []))) as request:
            await storage.delete_object("user-1/abc")

        method, url = request.await_args.args
        assert method == "DELETE"
        assert url == f"{BASE}/storage/v1/object/plan-documents"
        assert request.await_args.kwargs["json"] == {"prefixes": ["user-1/abc"]}

    @pytest.mark.asyncio
    async def test_delete_rejected(self, storage):
        with patch("httpx.AsyncClient.request", new=AsyncMock(return_value=response(403, text="denied"))):
            with pytest.raises(StorageError):
                await storage.delete_object("user-1/abc")
