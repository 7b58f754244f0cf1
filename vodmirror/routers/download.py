"""Mirror endpoint: fetch a remote HLS playlist and its segments."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from vodmirror.dependencies import get_fetcher
from vodmirror.errors import (
    CatalogError,
    ClientInputError,
    FetchError,
    MirrorInProgressError,
    PlaylistParseError,
)
from vodmirror.models import DownloadRequest
from vodmirror.services.mirror import MirrorFetcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["download"])


@router.post("/download", response_class=PlainTextResponse)
def download_playlist(
    body: DownloadRequest,
    fetcher: MirrorFetcher = Depends(get_fetcher),
):
    """
    Mirror the playlist at `url` into local storage.

    Blocks until the playlist and every segment are on disk. Master
    playlists are saved without following their variants.
    """
    if not body.url:
        raise HTTPException(status_code=400, detail="Missing URL in request body")

    try:
        result = fetcher.mirror(body.url)
    except ClientInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MirrorInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PlaylistParseError as e:
        raise HTTPException(status_code=502, detail=f"Invalid playlist: {e}")
    except FetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except CatalogError as e:
        logger.error(f"Catalog update for {body.url} failed: {e}")
        raise HTTPException(status_code=500, detail="Database error")

    if not result.followed:
        return PlainTextResponse(
            f"Saved {result.kind.value} playlist {result.title}; variant streams were not downloaded"
        )
    return PlainTextResponse("Downloaded and saved files successfully")
