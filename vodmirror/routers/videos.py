"""Catalog endpoints: resolve a title to a playback URL and list titles."""

import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, HTTPException, Request

from vodmirror.dependencies import get_catalog
from vodmirror.errors import CatalogError, VideoNotFoundError
from vodmirror.models import VideoRequest, VideoResponse, VideoTitleResponse
from vodmirror.services.catalog import CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["videos"])


def playback_url(request: Request, path: str) -> str:
    """Build the URL a client plays path from, dropping the storage-root prefix."""
    parts = PurePosixPath(path).parts
    relative = "/".join(parts[1:]) if len(parts) > 1 else path
    return f"{request.url.scheme}://{request.headers.get('host', request.url.netloc)}/{relative}"


@router.post("/video", response_model=VideoResponse)
def get_video_link(
    body: VideoRequest,
    request: Request,
    catalog: CatalogStore = Depends(get_catalog),
):
    """Look up a cataloged title and return its playback URL."""
    if not body.title:
        raise HTTPException(status_code=400, detail="Missing title in request body")

    try:
        path = catalog.lookup(body.title)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="Video not found")
    except CatalogError as e:
        logger.error(f"Lookup of '{body.title}' failed: {e}")
        raise HTTPException(status_code=500, detail="Database error")

    return VideoResponse(url=playback_url(request, path))


@router.get("/videos", response_model=VideoTitleResponse)
def list_videos(catalog: CatalogStore = Depends(get_catalog)):
    """List every cataloged title."""
    try:
        titles = catalog.list_titles()
    except CatalogError as e:
        logger.error(f"Listing titles failed: {e}")
        raise HTTPException(status_code=500, detail="Database query error")
    return VideoTitleResponse(titles=titles)
