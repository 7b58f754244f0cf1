"""
Mirror a remote HLS playlist and its segments into local storage.

A job downloads into a private staging directory under the storage root
and only moves the files into <root>/<title>/ once every segment has been
written, so a failed job leaves neither files nor a catalog entry behind.
"""

import logging
import os
import shutil
import threading
import uuid
from hashlib import sha256
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Set, Tuple
from urllib.parse import quote, unquote, urljoin, urlsplit

import httpx

from vodmirror.errors import (
    FetchError,
    InvalidPlaylistURLError,
    MirrorInProgressError,
)
from vodmirror.services.catalog import CatalogStore
from vodmirror.services.catalog_sync import catalog_path
from vodmirror.services.playlist_parser import ParsedPlaylist, PlaylistKind, parse_playlist

logger = logging.getLogger(__name__)

STAGING_DIR = ".staging"


@dataclass
class MirrorResult:
    """Outcome of a completed mirror job."""
    title: str
    path: str
    kind: PlaylistKind
    segment_count: int

    @property
    def followed(self) -> bool:
        """False when the playlist kind is not mirrored beyond the document."""
        return self.kind == PlaylistKind.MEDIA


def playlist_names(remote_url: str, extension: str = ".m3u8") -> Tuple[str, str]:
    """
    Return (playlist filename, local title) for a remote playlist URL.

    The title is the filename without the playlist extension.
    """
    try:
        parts = urlsplit(remote_url)
    except ValueError as e:
        raise InvalidPlaylistURLError(f"Invalid URL {remote_url!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidPlaylistURLError(f"Not an http(s) URL: {remote_url!r}")

    filename = PurePosixPath(parts.path).name
    if filename.lower().endswith(extension.lower()):
        name = filename[: -len(extension)]
    else:
        name = filename
    if not name or name.startswith("."):
        raise InvalidPlaylistURLError(f"Cannot derive a title from {remote_url!r}")
    return filename, name


def local_segment_path(uri: str) -> PurePosixPath:
    """
    Where a segment is stored relative to the title directory.

    Plain relative URIs keep their percent-decoded path; absolute,
    root-relative and query-carrying URIs are stored under their decoded
    base filename.
    """
    parts = urlsplit(uri)
    path = unquote(parts.path)
    if parts.scheme or parts.netloc or parts.path.startswith("/"):
        return PurePosixPath(PurePosixPath(path).name)
    return PurePosixPath(path)


def unique_segment_path(local: PurePosixPath, uri: str) -> PurePosixPath:
    """local with a short hash of uri added before the suffix."""
    digest = sha256(uri.encode("utf-8")).hexdigest()[:8]
    return local.with_name(f"{local.stem}-{digest}{local.suffix}")


class MirrorFetcher:
    """Runs mirror jobs; at most one job per title at a time."""

    def __init__(
        self,
        catalog: CatalogStore,
        videos_root: Path,
        client: httpx.Client,
        extension: str = ".m3u8",
    ):
        self.catalog = catalog
        self.videos_root = Path(videos_root)
        self.client = client
        self.extension = extension
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def mirror(self, remote_url: str) -> MirrorResult:
        """
        Mirror remote_url into <root>/<title>/ and catalog it.

        Raises InvalidPlaylistURLError, MirrorInProgressError,
        PlaylistParseError or FetchError. Nothing is left on disk or in
        the catalog when an error is raised after the URL check.
        """
        filename, name = playlist_names(remote_url, self.extension)
        self._claim(name)
        staging = self.videos_root / STAGING_DIR / f"{name}-{uuid.uuid4().hex}"
        try:
            logger.info("Mirroring %s as %s", remote_url, name)
            parsed, count = self._fetch_into(staging, remote_url, filename)
            self._commit(staging, self.videos_root / name)

            path = catalog_path(self.videos_root, self.videos_root / name / filename)
            self.catalog.add_if_absent(name, path)
            logger.info("Mirrored %s: %s playlist, %d segments", name, parsed.kind.value, count)
            return MirrorResult(title=name, path=path, kind=parsed.kind, segment_count=count)
        except Exception as e:
            logger.error(f"Mirror of {remote_url} failed: {type(e).__name__}: {e}")
            raise
        finally:
            shutil.rmtree(staging, ignore_errors=True)
            self._release(name)

    # ---------------------------------------------------------------------------
    # Job steps
    # ---------------------------------------------------------------------------

    def _fetch_into(self, staging: Path, remote_url: str, filename: str) -> Tuple[ParsedPlaylist, int]:
        playlist_file = staging / filename
        playlist_url = self._download(remote_url, playlist_file)

        try:
            content = playlist_file.read_bytes()
        except OSError as e:
            raise FetchError(f"Error reading playlist file: {e}") from e

        parsed = parse_playlist(content)
        if parsed.kind != PlaylistKind.MEDIA:
            logger.info("%s is a %s playlist; variants are not mirrored", remote_url, parsed.kind.value)
            return parsed, 0

        # local path -> the URI stored there; the playlist itself is reserved
        stored: Dict[str, str] = {filename: remote_url}
        seen: Set[str] = set()
        renamed: Dict[str, str] = {}
        for segment in parsed.segments:
            if segment.uri in seen:
                continue
            local = local_segment_path(segment.uri)
            if str(local) in stored:
                local = unique_segment_path(local, segment.uri)
            stored[str(local)] = segment.uri
            seen.add(segment.uri)

            segment_url = urljoin(playlist_url, segment.uri)
            self._download(segment_url, staging / local)
            if quote(str(local)) != segment.uri:
                renamed[segment.uri] = quote(str(local))

        if renamed:
            self._rewrite_playlist(parsed, renamed, playlist_file)
        return parsed, len(parsed.segments)

    def _download(self, url: str, output: Path) -> str:
        """Stream url into output, overwriting it. Returns the final URL."""
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            with self.client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                with open(output, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
                final_url = str(response.url)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise FetchError(f"Error downloading {url}: {e}") from e
        except OSError as e:
            raise FetchError(f"Error writing {output}: {e}") from e

        logger.info("Downloaded %s to %s", url, output)
        return final_url

    def _rewrite_playlist(self, parsed: ParsedPlaylist, renamed: Dict[str, str], playlist_file: Path):
        """Point segment URIs at the names they were stored under."""
        for segment in parsed.document.segments:
            uri = (segment.uri or "").strip()
            if uri in renamed:
                segment.uri = renamed[uri]
        try:
            playlist_file.write_text(parsed.document.dumps(), encoding="utf-8")
        except OSError as e:
            raise FetchError(f"Error writing {playlist_file}: {e}") from e

    def _commit(self, staging: Path, destination: Path):
        """Move staged files into destination, replacing files in place."""
        try:
            destination.mkdir(parents=True, exist_ok=True)
            for source in sorted(p for p in staging.rglob("*") if p.is_file()):
                target = destination / source.relative_to(staging)
                target.parent.mkdir(parents=True, exist_ok=True)
                os.replace(source, target)
        except OSError as e:
            raise FetchError(f"Error moving files into {destination}: {e}") from e

    # ---------------------------------------------------------------------------
    # In-flight jobs
    # ---------------------------------------------------------------------------

    def _claim(self, name: str):
        with self._lock:
            if name in self._in_flight:
                raise MirrorInProgressError(name)
            self._in_flight.add(name)

    def _release(self, name: str):
        with self._lock:
            self._in_flight.discard(name)

    def in_flight(self) -> Set[str]:
        with self._lock:
            return set(self._in_flight)
