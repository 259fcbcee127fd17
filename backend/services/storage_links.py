"""
Storage link classification.

Decides whether a media URL points at a Supabase storage object through an
expiring signed link, a permanent public link, or something unrelated, and
extracts the bucket/path needed to sign it again.

Link shapes:
    <endpoint>/storage/v1/object/sign/<bucket>/<path>?token=...
    <endpoint>/storage/v1/object/public/<bucket>/<path>
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote


SIGNED_ROUTE = "/storage/v1/object/sign/"
PUBLIC_ROUTE = "/storage/v1/object/public/"

SIGNED_PATH_REGEX = re.compile(re.escape(SIGNED_ROUTE) + r"([^?]+)")
PUBLIC_PATH_REGEX = re.compile(re.escape(PUBLIC_ROUTE) + r"([^?]+)")


class LinkClass(str, Enum):
    """How a media URL is served by storage."""
    SIGNED = "signed"
    PUBLIC = "public"
    UNRELATED = "unrelated"


@dataclass(frozen=True)
class StorageReference:
    """Bucket and object path of a signed storage link."""
    bucket: str
    path: str


def _parse_signed(url: str) -> Optional[StorageReference]:
    match = SIGNED_PATH_REGEX.search(url)
    if not match:
        return None

    try:
        full_path = unquote(match.group(1), errors="strict")
    except UnicodeDecodeError:
        return None

    bucket, sep, path = full_path.partition("/")
    if not sep or not bucket or not path:
        return None

    return StorageReference(bucket=bucket, path=path)


def classify(url: Optional[str], endpoint_prefix: str) -> LinkClass:
    """
    Classify a media URL against the configured storage endpoint.

    Args:
        url: Media URL (may be None or empty)
        endpoint_prefix: Storage endpoint, e.g. "https://abc.supabase.co"

    Returns:
        LinkClass.SIGNED if the URL is a parseable signed link,
        LinkClass.PUBLIC for public links, LinkClass.UNRELATED otherwise.

    Example:
        >>> classify("https://x.test/storage/v1/object/sign/media/a.png?token=1", "https://x.test")
        <LinkClass.SIGNED: 'signed'>
    """
    if not url or not endpoint_prefix or endpoint_prefix not in url:
        return LinkClass.UNRELATED

    if _parse_signed(url) is not None:
        return LinkClass.SIGNED

    if PUBLIC_PATH_REGEX.search(url):
        return LinkClass.PUBLIC

    return LinkClass.UNRELATED


def extract_reference(url: Optional[str], endpoint_prefix: str) -> Optional[StorageReference]:
    """
    Extract bucket and path from a signed storage URL.

    Returns None for public links (they never expire), for URLs outside the
    storage endpoint, and for signed links whose path cannot be split into a
    non-empty bucket and object path.
    """
    if not url or not endpoint_prefix or endpoint_prefix not in url:
        return None
    return _parse_signed(url)


def is_signed_url(url: Optional[str]) -> bool:
    """Cheap check for the signed-link route marker, ignoring the endpoint."""
    return bool(url) and SIGNED_ROUTE in url
