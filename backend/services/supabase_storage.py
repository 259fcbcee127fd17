"""
Supabase storage service for signed media URLs.

Thin async client over the Supabase Storage REST API. Only the operation the
dashboard needs server-side is implemented: issuing a fresh signed URL for an
object that already exists in a bucket.
"""

from typing import Callable, Optional
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings

logger = structlog.get_logger(__name__)

# Characters encodeURI leaves alone; the signed path returned by the API is raw
_URI_SAFE_CHARS = ";,/?:@&=+$!*'()#"


class StorageSignError(Exception):
    """Raised when the storage API does not return a usable signed URL."""

    def __init__(
        self,
        message: str,
        bucket: str,
        path: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.bucket = bucket
        self.path = path
        self.status_code = status_code


class SupabaseStorageService:
    """
    Async client for Supabase Storage signed URLs.

    The bearer token for each request comes from ``access_token_provider``
    (the current user's session token, or a service-role key). When no
    provider is given, or it returns nothing, the API key is used.

    Usage:
        async with SupabaseStorageService() as storage:
            url = await storage.create_signed_url("media", "scenes/1.png", 3600)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize storage client.

        Args:
            base_url: Supabase project URL (default: SUPABASE_URL)
            api_key: Project API key sent as ``apikey`` (default: SUPABASE_ANON_KEY)
            access_token_provider: Callable returning the current bearer token
            timeout: Request timeout in seconds (default: STORAGE_REQUEST_TIMEOUT)
            max_retries: Attempts on transport errors (default: STORAGE_MAX_RETRIES)
            http_client: Optional pre-built httpx.AsyncClient (owned by caller)
        """
        self.base_url = (base_url if base_url is not None else settings.SUPABASE_URL).rstrip("/")
        if not self.base_url:
            raise ValueError(
                "Supabase URL is required. Set SUPABASE_URL "
                "environment variable or pass base_url parameter."
            )

        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self.access_token_provider = access_token_provider
        self.timeout = timeout if timeout is not None else settings.STORAGE_REQUEST_TIMEOUT
        # max_retries counts attempts; 0 or 1 both mean a single request
        if max_retries is None:
            max_retries = settings.STORAGE_MAX_RETRIES
        self.max_retries = max(1, max_retries)
        self.storage_url = f"{self.base_url}/storage/v1"

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)

        self.logger = logger.bind(service="supabase_storage")

    async def __aenter__(self) -> "SupabaseStorageService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict:
        token = None
        if self.access_token_provider is not None:
            token = self.access_token_provider()
        token = token or self.api_key

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _absolute_signed_url(self, signed_url: str) -> str:
        if signed_url.startswith(("http://", "https://")):
            return signed_url
        return quote(f"{self.storage_url}{signed_url}", safe=_URI_SAFE_CHARS)

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        """
        Issue a signed URL for an existing object.

        Args:
            bucket: Storage bucket name
            path: Object path within the bucket
            expires_in: Validity window in seconds

        Returns:
            Absolute signed URL

        Raises:
            StorageSignError: If the API rejects the request or returns no URL
            httpx.TransportError: If the network keeps failing after retries
        """
        object_path = path.strip("/")
        endpoint = f"{self.storage_url}/object/sign/{quote(bucket, safe='')}/{quote(object_path)}"

        response = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.2, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    self.logger.warning(
                        "storage_sign_retrying",
                        bucket=bucket,
                        path=object_path,
                        attempt=attempt.retry_state.attempt_number,
                    )
                response = await self._client.post(
                    endpoint,
                    json={"expiresIn": expires_in},
                    headers=self._headers(),
                )

        if response.status_code >= 400:
            raise StorageSignError(
                f"Storage API returned {response.status_code}: {response.text[:200]}",
                bucket=bucket,
                path=object_path,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise StorageSignError(
                f"Storage API returned invalid JSON: {e}",
                bucket=bucket,
                path=object_path,
                status_code=response.status_code,
            )

        signed_url = None
        if isinstance(payload, dict):
            signed_url = payload.get("signedURL") or payload.get("signedUrl")

        if not signed_url or not isinstance(signed_url, str):
            raise StorageSignError(
                "Storage API response did not include a signed URL",
                bucket=bucket,
                path=object_path,
                status_code=response.status_code,
            )

        url = self._absolute_signed_url(signed_url)

        self.logger.info(
            "storage_signed_url_created",
            bucket=bucket,
            path=object_path,
            expiry_seconds=expires_in,
        )

        return url
