"""FastAPI dependencies exposing the services held on app.state."""

from fastapi import Request

from vodmirror.services.catalog import CatalogStore
from vodmirror.services.mirror import MirrorFetcher


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_fetcher(request: Request) -> MirrorFetcher:
    return request.app.state.fetcher
