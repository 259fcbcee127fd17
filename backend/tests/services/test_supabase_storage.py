"""
Tests for SupabaseStorageService

Uses httpx.MockTransport in place of the Supabase Storage REST API.
"""

import json
from unittest.mock import patch

import httpx
import pytest

from services.supabase_storage import StorageSignError, SupabaseStorageService


BASE_URL = "https://x.test"


def make_service(handler, **kwargs) -> SupabaseStorageService:
    """Create a storage service whose HTTP calls go to ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("api_key", "anon-key")
    kwargs.setdefault("max_retries", 1)
    return SupabaseStorageService(base_url=BASE_URL, http_client=client, **kwargs)


class TestInitialization:
    """Test SupabaseStorageService initialization."""

    def test_requires_base_url(self):
        with pytest.raises(ValueError, match="Supabase URL is required"):
            SupabaseStorageService(base_url="", api_key="anon-key")

    def test_trailing_slash_stripped(self):
        service = SupabaseStorageService(base_url="https://x.test/", api_key="anon-key")
        assert service.base_url == "https://x.test"
        assert service.storage_url == "https://x.test/storage/v1"

    def test_custom_configuration(self):
        service = SupabaseStorageService(
            base_url=BASE_URL, api_key="anon-key", timeout=5, max_retries=4
        )
        assert service.timeout == 5
        assert service.max_retries == 4

    def test_explicit_zero_values_not_replaced_by_settings(self):
        with patch("services.supabase_storage.settings") as mock_settings:
            mock_settings.STORAGE_REQUEST_TIMEOUT = 30.0
            mock_settings.STORAGE_MAX_RETRIES = 5
            service = SupabaseStorageService(
                base_url=BASE_URL, api_key="anon-key", timeout=0, max_retries=0
            )

        assert service.timeout == 0
        assert service.max_retries == 1

    def test_settings_used_when_not_given(self):
        with patch("services.supabase_storage.settings") as mock_settings:
            mock_settings.STORAGE_REQUEST_TIMEOUT = 12.5
            mock_settings.STORAGE_MAX_RETRIES = 5
            service = SupabaseStorageService(base_url=BASE_URL, api_key="anon-key")

        assert service.timeout == 12.5
        assert service.max_retries == 5


class TestCreateSignedUrl:
    """Test create_signed_url method."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        """Signs via POST object/sign/<bucket>/<path> with expiresIn body."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json={"signedURL": "/object/sign/media/p1/abc.png?token=2"}
            )

        service = make_service(handler, access_token_provider=lambda: "user-jwt")
        await service.create_signed_url("media", "p1/abc.png", 604800)

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://x.test/storage/v1/object/sign/media/p1/abc.png"
        assert json.loads(request.content) == {"expiresIn": 604800}
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer user-jwt"

    @pytest.mark.asyncio
    async def test_returns_absolute_url(self):
        def handler(request):
            return httpx.Response(
                200, json={"signedURL": "/object/sign/media/abc.png?token=2"}
            )

        service = make_service(handler)
        url = await service.create_signed_url("media", "abc.png", 3600)

        assert url == "https://x.test/storage/v1/object/sign/media/abc.png?token=2"

    @pytest.mark.asyncio
    async def test_absolute_signed_url_returned_as_is(self):
        absolute = "https://cdn.x.test/storage/v1/object/sign/media/abc.png?token=2"

        def handler(request):
            return httpx.Response(200, json={"signedUrl": absolute})

        service = make_service(handler)
        assert await service.create_signed_url("media", "abc.png", 3600) == absolute

    @pytest.mark.asyncio
    async def test_special_characters_are_encoded(self):
        """Object paths with spaces are encoded in both request and result."""
        raw_paths = []

        def handler(request):
            raw_paths.append(request.url.raw_path)
            return httpx.Response(
                200, json={"signedURL": "/object/sign/media/p1/test image.png?token=2"}
            )

        service = make_service(handler)
        url = await service.create_signed_url("media", "p1/test image.png", 3600)

        assert raw_paths == [b"/storage/v1/object/sign/media/p1/test%20image.png"]
        assert url == "https://x.test/storage/v1/object/sign/media/p1/test%20image.png?token=2"

    @pytest.mark.asyncio
    async def test_falls_back_to_api_key_token(self):
        tokens = []

        def handler(request):
            tokens.append(request.headers["authorization"])
            return httpx.Response(200, json={"signedURL": "/object/sign/m/a.png?token=2"})

        service = make_service(handler, access_token_provider=lambda: None)
        await service.create_signed_url("m", "a.png", 60)

        assert tokens == ["Bearer anon-key"]

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(404, json={"error": "not_found", "message": "Object not found"})

        service = make_service(handler)

        with pytest.raises(StorageSignError) as exc_info:
            await service.create_signed_url("media", "missing.png", 3600)

        assert exc_info.value.status_code == 404
        assert exc_info.value.bucket == "media"
        assert exc_info.value.path == "missing.png"

    @pytest.mark.asyncio
    async def test_error_status_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        service = make_service(handler, max_retries=3)

        with pytest.raises(StorageSignError):
            await service.create_signed_url("media", "a.png", 3600)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_missing_signed_url_raises(self):
        def handler(request):
            return httpx.Response(200, json={"signedURL": None})

        service = make_service(handler)

        with pytest.raises(StorageSignError, match="did not include a signed URL"):
            await service.create_signed_url("media", "a.png", 3600)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        service = make_service(handler)

        with pytest.raises(StorageSignError, match="invalid JSON"):
            await service.create_signed_url("media", "a.png", 3600)

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        """Connection errors are retried up to max_retries."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("Connection failed", request=request)
            return httpx.Response(200, json={"signedURL": "/object/sign/media/a.png?token=2"})

        service = make_service(handler, max_retries=2)
        url = await service.create_signed_url("media", "a.png", 3600)

        assert len(calls) == 2
        assert url.endswith("token=2")

    @pytest.mark.asyncio
    async def test_transport_error_reraised_after_retries(self):
        def handler(request):
            raise httpx.ConnectError("Connection failed", request=request)

        service = make_service(handler, max_retries=2)

        with pytest.raises(httpx.ConnectError):
            await service.create_signed_url("media", "a.png", 3600)


class TestClientLifecycle:
    """Test HTTP client ownership."""

    @pytest.mark.asyncio
    async def test_owned_client_closed_on_exit(self):
        async with SupabaseStorageService(base_url=BASE_URL, api_key="k") as service:
            client = service._client
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_external_client_left_open(self):
        client = httpx.AsyncClient()
        async with SupabaseStorageService(base_url=BASE_URL, api_key="k", http_client=client):
            pass
        assert not client.is_closed
        await client.aclose()
