"""
Pydantic models for extraction results and request/response schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional
from enum import Enum


class MediaType(str, Enum):
    """Kind of media a pin resolves to"""
    VIDEO = "video"
    IMAGE = "image"
    GIF = "gif"


class VideoVariant(BaseModel):
    """One rendition from a Pinterest `video_list` mapping"""
    model_config = ConfigDict(frozen=True)

    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class MediaResult(BaseModel):
    """Canonical extraction output"""
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    type: MediaType
    media_url: str = Field(..., min_length=1, description="Direct URL of the media file")
    thumbnail: Optional[str] = Field(None, description="Preview image URL")
    title: str = Field("Pinterest", min_length=1)

    @classmethod
    def still(cls, url: str, thumbnail: Optional[str], title: str) -> "MediaResult":
        """Image result whose type is picked from the file extension."""
        media_type = MediaType.GIF if url.lower().endswith(".gif") else MediaType.IMAGE
        return cls(type=media_type, media_url=url, thumbnail=thumbnail, title=title)


class ExtractRequest(BaseModel):
    """Request schema for /api/extract and /api/extract/browser"""
    # Left untyped so that bad input reaches the validator and yields a 400
    url: Any = Field(None, description="Pinterest pin URL or pin.it short link")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://www.pinterest.com/pin/774124931181173/",
            }
        }
    )


class ExtractResponse(BaseModel):
    """Success response for extraction endpoints"""
    success: bool = True
    type: MediaType
    media_url: str
    thumbnail: Optional[str] = None
    title: str

    @classmethod
    def from_result(cls, result: MediaResult) -> "ExtractResponse":
        return cls(
            type=result.type,
            media_url=result.media_url,
            thumbnail=result.thumbnail,
            title=result.title,
        )


class ErrorResponse(BaseModel):
    """Error response shared by every endpoint"""
    success: bool = False
    error: str
    detail: Optional[str] = None
    retryAfter: Optional[int] = None


class HealthResponse(BaseModel):
    """Response schema for /health"""
    status: str
    timestamp: str
    version: str
