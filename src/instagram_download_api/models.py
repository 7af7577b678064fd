"""Request and response models for the download API."""
from pydantic import BaseModel
from typing import Optional


class DownloadRequest(BaseModel):
    """Body of POST /download."""
    url: str
    # Caller hints: "foto"/"photo", "video"/"reels", ... Not binding.
    type: Optional[str] = None
    # Accepted but not applied to the extracted media.
    resolution: Optional[str] = None

    class Config:
        extra = "ignore"


class ErrorResponse(BaseModel):
    """Error body for 400/500 responses."""
    error: str
    details: str
    timestamp: Optional[str] = None
