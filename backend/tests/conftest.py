"""
Shared fixtures for signed URL tests.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from services.supabase_storage import SupabaseStorageService


ENDPOINT = "https://x.test"


def build_signed_url(bucket: str, path: str, token: str = "1") -> str:
    return f"{ENDPOINT}/storage/v1/object/sign/{bucket}/{path}?token={token}"


def build_public_url(bucket: str, path: str) -> str:
    return f"{ENDPOINT}/storage/v1/object/public/{bucket}/{path}"


@pytest.fixture
def endpoint():
    """Storage endpoint prefix used across tests."""
    return ENDPOINT


@pytest.fixture
def signed_url():
    """Builder for signed storage URLs on the test endpoint."""
    return build_signed_url


@pytest.fixture
def public_url():
    """Builder for public storage URLs on the test endpoint."""
    return build_public_url


@pytest.fixture
def mock_storage():
    """
    Mock SupabaseStorageService that re-signs every object with token=new.

    Override ``create_signed_url.side_effect`` to simulate failures.
    """
    storage = Mock(spec=SupabaseStorageService)

    async def create_signed_url(bucket, path, expires_in):
        return build_signed_url(bucket, path, token="new")

    storage.create_signed_url = AsyncMock(side_effect=create_signed_url)
    return storage


@pytest.fixture
def mock_logger():
    """Structured logger stand-in; ``bind`` returns the same mock."""
    log = Mock()
    log.bind.return_value = log
    return log
