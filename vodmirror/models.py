"""Data models for VOD Mirror: catalog and API payload types."""

from typing import List, Optional
from pydantic import BaseModel


class CatalogEntry(BaseModel):
    """A cataloged playlist: title plus slash-normalized storage path."""
    title: str
    path: str


class VideoRequest(BaseModel):
    """Body of POST /video."""
    title: Optional[str] = None
    location: Optional[str] = None


class VideoResponse(BaseModel):
    """Playback URL for a cataloged title."""
    url: str


class DownloadRequest(BaseModel):
    """Body of POST /download."""
    url: Optional[str] = None


class VideoTitleResponse(BaseModel):
    """All cataloged titles."""
    titles: List[str]
