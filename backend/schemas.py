"""
Pydantic schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class Scene(BaseModel):
    """
    A generated scene as stored by the dashboard.

    Only the media link fields are modelled; every other field (narration,
    duration, prompts, ...) is kept as an extra and passed through untouched.
    """
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Primary scene image")
    image_urls: Optional[List[Optional[str]]] = Field(
        None, alias="imageUrls", description="Alternate images, in display order"
    )
    audio_url: Optional[str] = Field(None, alias="audioUrl", description="Narration/voiceover audio")
    video_url: Optional[str] = Field(None, alias="videoUrl", description="Rendered scene video")

    class Config:
        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "number": 1,
                "voiceover": "Meet the team behind the product.",
                "imageUrl": "https://abc.supabase.co/storage/v1/object/sign/scene-images/p1/1.png?token=eyJ...",
                "imageUrls": [
                    "https://abc.supabase.co/storage/v1/object/sign/scene-images/p1/1a.png?token=eyJ...",
                ],
                "audioUrl": "https://abc.supabase.co/storage/v1/object/sign/audio/p1/1.mp3?token=eyJ...",
                "videoUrl": None
            }
        }

    def first_image_url(self) -> Optional[str]:
        """Primary image, or the first alternate image when there is none."""
        if self.image_url:
            return self.image_url
        if self.image_urls:
            return self.image_urls[0]
        return None


class RefreshScenesRequest(BaseModel):
    """Request model for scene URL refresh"""
    scenes: List[Scene] = Field(default_factory=list, description="Scenes in display order")


class RefreshScenesResponse(BaseModel):
    """Response model for scene URL refresh"""
    scenes: List[Scene] = Field(..., description="Scenes with refreshed links, same order as the request")


class ThumbnailRef(BaseModel):
    """Project thumbnail link"""
    project_id: str = Field(..., alias="projectId", min_length=1)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")

    class Config:
        populate_by_name = True


class RefreshThumbnailsRequest(BaseModel):
    """Request model for thumbnail URL refresh"""
    thumbnails: List[ThumbnailRef] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "thumbnails": [
                    {
                        "projectId": "550e8400-e29b-41d4-a716-446655440000",
                        "thumbnailUrl": "https://abc.supabase.co/storage/v1/object/sign/scene-images/p1/1.png?token=eyJ..."
                    }
                ]
            }
        }


class RefreshThumbnailsResponse(BaseModel):
    """Response model for thumbnail URL refresh"""
    thumbnails: List[ThumbnailRef]


class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
