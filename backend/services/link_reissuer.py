"""
Signed URL reissue with graceful fallback.

Wraps SupabaseStorageService so that a failed re-sign never surfaces to the
caller: the original URL is kept and the failure is logged.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from config import settings
from services.storage_links import LinkClass, StorageReference, classify, extract_reference
from services.supabase_storage import StorageSignError, SupabaseStorageService


@dataclass(frozen=True)
class ReissueOutcome:
    """
    Result of a reissue attempt.

    ``url`` is always usable by the caller: the fresh signed URL when
    ``refreshed`` is True, otherwise the URL that was passed in.
    """
    url: str
    refreshed: bool = False
    error: Optional[str] = None

    @classmethod
    def ok(cls, url: str) -> "ReissueOutcome":
        return cls(url=url, refreshed=True)

    @classmethod
    def fallback(cls, original_url: str, error: Optional[str] = None) -> "ReissueOutcome":
        return cls(url=original_url, refreshed=False, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None


class LinkReissuer:
    """
    Issues fresh signed URLs for storage references.

    Example:
        >>> reissuer = LinkReissuer(storage, expires_in=3600)
        >>> outcome = await reissuer.reissue(StorageReference("media", "a.png"), old_url)
        >>> outcome.url
    """

    def __init__(
        self,
        storage: SupabaseStorageService,
        expires_in: Optional[int] = None,
        logger=None,
        max_concurrency: Optional[int] = None,
    ):
        """
        Args:
            storage: Storage client exposing ``create_signed_url``
            expires_in: Positive validity window in seconds (default: SIGNED_URL_EXPIRY, 7 days)
            logger: Structured logger for diagnostics (default: module logger)
            max_concurrency: Cap on in-flight sign requests (None or 0 = unbounded)
        """
        self.storage = storage
        self.expires_in = expires_in if expires_in is not None else settings.SIGNED_URL_EXPIRY
        if self.expires_in <= 0:
            raise ValueError("expires_in must be a positive number of seconds")
        self.logger = (logger if logger is not None else structlog.get_logger(__name__)).bind(
            service="link_reissuer"
        )

        if max_concurrency is None:
            max_concurrency = settings.SIGNED_URL_MAX_CONCURRENCY
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _create(self, reference: StorageReference) -> str:
        if self._semaphore is None:
            return await self.storage.create_signed_url(
                reference.bucket, reference.path, self.expires_in
            )
        async with self._semaphore:
            return await self.storage.create_signed_url(
                reference.bucket, reference.path, self.expires_in
            )

    async def reissue(self, reference: StorageReference, original_url: str) -> ReissueOutcome:
        """
        Request a new signed URL for ``reference``.

        Never raises on backend failure: StorageSignError, HTTP/transport
        errors and timeouts are logged and the original URL is returned.
        """
        try:
            new_url = await self._create(reference)
        except (StorageSignError, httpx.HTTPError, asyncio.TimeoutError) as e:
            self.logger.warning(
                "signed_url_refresh_failed",
                bucket=reference.bucket,
                path=reference.path,
                error=str(e) or type(e).__name__,
            )
            return ReissueOutcome.fallback(original_url, str(e) or type(e).__name__)

        if not new_url:
            self.logger.warning(
                "signed_url_refresh_failed",
                bucket=reference.bucket,
                path=reference.path,
                error="empty signed URL",
            )
            return ReissueOutcome.fallback(original_url, "empty signed URL")

        return ReissueOutcome.ok(new_url)

    async def refresh_url(self, url: str, endpoint_prefix: str) -> ReissueOutcome:
        """
        Reissue ``url`` if it is a signed storage link; otherwise return it unchanged.

        Public and unrelated URLs never reach the backend.
        """
        if classify(url, endpoint_prefix) is not LinkClass.SIGNED:
            return ReissueOutcome(url=url)

        reference = extract_reference(url, endpoint_prefix)
        return await self.reissue(reference, url)
