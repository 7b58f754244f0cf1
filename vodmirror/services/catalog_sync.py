"""Startup scan that reconciles playlists found on disk into the catalog."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List

from vodmirror.errors import CatalogSyncError
from vodmirror.services.catalog import CatalogStore

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Titles added and titles skipped as already cataloged."""
    added: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def catalog_path(videos_root: Path, file_path: Path) -> str:
    """
    Slash-normalized catalog path for a file under the storage root.

    The root's own directory name is kept as the first component,
    e.g. videos/show/show.m3u8.
    """
    relative = file_path.relative_to(videos_root)
    return str(PurePosixPath(videos_root.name, *relative.parts))


def sync_catalog(
    store: CatalogStore,
    videos_root: Path,
    extension: str = ".m3u8",
) -> SyncReport:
    """
    Walk videos_root and catalog every playlist not already present.

    Directories whose names start with "." are not descended into. A walk
    error raises CatalogSyncError; the caller must not start serving.
    """
    videos_root = Path(videos_root)
    if not videos_root.is_dir():
        raise CatalogSyncError(f"Video directory does not exist: {videos_root}")

    def _raise(err: OSError):
        raise CatalogSyncError(f"Error walking through video directory: {err}") from err

    report = SyncReport()
    suffix = extension.lower()

    for dirpath, dirnames, filenames in os.walk(videos_root, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if not filename.lower().endswith(suffix):
                continue
            title = filename[: -len(suffix)]
            if not title:
                continue
            path = catalog_path(videos_root, Path(dirpath) / filename)
            if store.add_if_absent(title, path):
                report.added.append(title)
            else:
                report.skipped.append(title)

    logger.info(
        "Catalog sync of %s: %d added, %d already present",
        videos_root, len(report.added), len(report.skipped),
    )
    return report
