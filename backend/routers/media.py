"""
Media URL refresh router

Handles:
- POST /api/media/refresh-scenes for re-signing scene media links
- POST /api/media/refresh-thumbnails for re-signing project thumbnails
"""

from typing import AsyncIterator, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException

from config import settings
from schemas import (
    ErrorResponse,
    RefreshScenesRequest,
    RefreshScenesResponse,
    RefreshThumbnailsRequest,
    RefreshThumbnailsResponse,
)
from pipeline.url_refresh import SceneUrlRefresher
from services.link_reissuer import LinkReissuer
from services.supabase_storage import SupabaseStorageService

logger = structlog.get_logger()

router = APIRouter(prefix="/api/media", tags=["Media"])


def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Resolve the bearer token storage calls are made with.

    The caller must be authenticated. A configured service-role key takes
    precedence over the caller's own token.
    """
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Unauthorized",
                "message": "Not authenticated"
            }
        )

    if settings.SUPABASE_SERVICE_ROLE_KEY:
        return settings.SUPABASE_SERVICE_ROLE_KEY

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return authorization.strip()


async def get_scene_refresher(
    access_token: str = Depends(get_access_token),
) -> AsyncIterator[SceneUrlRefresher]:
    """Build a refresher bound to the caller's credential for one request."""
    async with SupabaseStorageService(access_token_provider=lambda: access_token) as storage:
        reissuer = LinkReissuer(storage)
        yield SceneUrlRefresher(reissuer, endpoint_prefix=storage.base_url)


@router.post(
    "/refresh-scenes",
    response_model=RefreshScenesResponse,
    response_model_by_alias=True,
    response_model_exclude_unset=True,
    status_code=200,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    },
    summary="Refresh Scene Media URLs",
    description="Re-sign expiring storage links on a project's scenes"
)
async def refresh_scenes(
    request: RefreshScenesRequest,
    refresher: SceneUrlRefresher = Depends(get_scene_refresher),
):
    """
    Refresh signed URLs on every scene of a project.

    Signed links in `imageUrl`, `imageUrls`, `audioUrl` and `videoUrl` are
    re-issued with a fresh validity window. Public and external links, and
    links that cannot be re-signed, are returned unchanged. Scenes come back
    in request order with all other fields untouched.

    If the first scene's first image is not a signed link the batch is
    returned as-is without contacting storage.
    """
    scenes = await refresher.refresh_scenes(request.scenes)
    return RefreshScenesResponse(scenes=list(scenes))


@router.post(
    "/refresh-thumbnails",
    response_model=RefreshThumbnailsResponse,
    response_model_by_alias=True,
    status_code=200,
    responses={
        400: {"model": ErrorResponse, "description": "No thumbnails supplied"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    },
    summary="Refresh Project Thumbnails",
    description="Re-sign expiring project thumbnail links"
)
async def refresh_thumbnails(
    request: RefreshThumbnailsRequest,
    refresher: SceneUrlRefresher = Depends(get_scene_refresher),
):
    """
    Refresh signed thumbnail URLs for a list of projects.

    Projects without a thumbnail keep `thumbnailUrl: null`; non-signed
    thumbnails are returned unchanged.
    """
    if not request.thumbnails:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "InvalidRequest",
                "message": "No thumbnails to refresh"
            }
        )

    thumbnails = await refresher.refresh_thumbnails(request.thumbnails)

    logger.info("thumbnails_refresh_completed", count=len(thumbnails))

    return RefreshThumbnailsResponse(thumbnails=thumbnails)
