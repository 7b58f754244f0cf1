"""VOD Mirror - FastAPI Application."""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from vodmirror.config import Settings, settings as default_settings
from vodmirror.routers import download, videos
from vodmirror.services.catalog import CatalogStore
from vodmirror.services.catalog_sync import sync_catalog
from vodmirror.services.mirror import MirrorFetcher

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[CatalogStore] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """
    Build the application.

    Opening the catalog happens here and the storage scan happens at
    startup; either failing stops the server before it accepts requests.
    Services passed in are used as-is and not closed on shutdown.
    """
    settings = settings or default_settings
    videos_root = settings.videos_root
    videos_root.mkdir(parents=True, exist_ok=True)

    owns_catalog = catalog is None
    owns_client = http_client is None
    if catalog is None:
        catalog = CatalogStore.open(settings.database_url)
    if http_client is None:
        http_client = httpx.Client(timeout=settings.download_timeout_sec)

    fetcher = MirrorFetcher(
        catalog,
        videos_root,
        http_client,
        extension=settings.playlist_extension,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sync_catalog(catalog, videos_root, settings.playlist_extension)
        yield
        if owns_client:
            http_client.close()
        if owns_catalog:
            catalog.close()

    app = FastAPI(
        title=settings.app_name,
        description="Catalog, serve and mirror HLS video playlists",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.fetcher = fetcher

    # Preflight handling; the middleware below covers every other response
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def allow_any_origin(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    app.include_router(videos.router)
    app.include_router(download.router)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    # Must stay last: the root mount shadows any route added after it
    app.mount("/", StaticFiles(directory=videos_root), name="videos")

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve and mirror HLS video playlists.")
    parser.add_argument("--port", type=int, default=default_settings.port, help="Port number")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if default_settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    import uvicorn

    app = create_app(default_settings)
    logger.info("Serving %s on HTTP port: %s", default_settings.videos_dir, args.port)
    uvicorn.run(app, host=default_settings.host, port=args.port)


if __name__ == "__main__":
    main()
