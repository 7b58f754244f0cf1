"""
Shared fixtures: a temporary storage root and catalog per test, plus a
fake origin server reached through httpx.MockTransport.
"""

from typing import Callable, Dict, List, Set

import httpx
import pytest
from fastapi.testclient import TestClient

from vodmirror.config import Settings
from vodmirror.main import create_app
from vodmirror.services.catalog import CatalogStore
from vodmirror.services.mirror import MirrorFetcher

MEDIA_PLAYLIST = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-TARGETDURATION:10\n"
    "#EXT-X-MEDIA-SEQUENCE:0\n"
    "#EXTINF:10.0,\n"
    "seg0.ts\n"
    "#EXTINF:10.0,\n"
    "seg1.ts\n"
    "#EXT-X-ENDLIST\n"
)

MASTER_PLAYLIST = (
    "#EXTM3U\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=640x360\n"
    "low/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=2560000,RESOLUTION=1280x720\n"
    "high/index.m3u8\n"
)

PLAYLIST_URL = "https://cdn.example/show/index.m3u8"


def media_playlist(*uris: str) -> str:
    lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:10"]
    for uri in uris:
        lines += ["#EXTINF:10.0,", uri]
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


class FakeOrigin:
    """Serves registered URLs; anything else is a 404."""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.broken: Set[str] = set()
        self.hooks: Dict[str, Callable[[], None]] = {}
        self.requests: List[str] = []

    def add(self, url: str, content):
        self.files[url] = content.encode() if isinstance(content, str) else content

    def add_show(self):
        """The show/index.m3u8 playlist with two segments."""
        self.add(PLAYLIST_URL, MEDIA_PLAYLIST)
        self.add("https://cdn.example/show/seg0.ts", b"segment-0")
        self.add("https://cdn.example/show/seg1.ts", b"segment-1")

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.hooks:
            self.hooks[url]()
        if url in self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        if url not in self.files:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(200, content=self.files[url])


@pytest.fixture
def videos_root(tmp_path):
    root = tmp_path / "videos"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path, videos_root):
    return Settings(
        videos_dir=str(videos_root),
        database_url=f"sqlite:///{tmp_path / 'videos.db'}",
    )


@pytest.fixture
def catalog(settings):
    store = CatalogStore.open(settings.database_url)
    yield store
    store.close()


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def http_client(origin):
    client = httpx.Client(transport=httpx.MockTransport(origin.handler))
    yield client
    client.close()


@pytest.fixture
def fetcher(catalog, videos_root, http_client):
    return MirrorFetcher(catalog, videos_root, http_client)


@pytest.fixture
def app(settings, catalog, http_client):
    return create_app(settings, catalog=catalog, http_client=http_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
