"""
Exceptions raised by the catalog and mirroring services.

Routers translate these into HTTP status codes; the two startup faults
(catalog cannot be opened, storage walk fails) are left to propagate and
abort the process.
"""


class VodMirrorError(Exception):
    """Base exception for all VOD Mirror errors."""

    pass


class ClientInputError(VodMirrorError):
    """Raised when a request carries missing or malformed input."""

    pass


class InvalidPlaylistURLError(ClientInputError):
    """Raised when a remote playlist URL cannot be mirrored."""

    pass


class NotFoundError(VodMirrorError):
    """Raised when a requested resource does not exist."""

    pass


class VideoNotFoundError(NotFoundError):
    """Raised when a title is not in the catalog."""

    def __init__(self, title: str):
        super().__init__(f"Video not found: {title}")
        self.title = title


class CatalogError(VodMirrorError):
    """Raised when the catalog storage fails."""

    pass


class DuplicateTitleError(CatalogError):
    """Raised when inserting a title that is already cataloged."""

    def __init__(self, title: str):
        super().__init__(f"{title} is already in the catalog")
        self.title = title


class CatalogSyncError(CatalogError):
    """Raised when the storage root cannot be walked."""

    pass


class MirrorInProgressError(VodMirrorError):
    """Raised when a mirror for the same title is already running."""

    def __init__(self, title: str):
        super().__init__(f"A mirror of {title} is already in progress")
        self.title = title


class FetchError(VodMirrorError):
    """Raised when a network or filesystem operation fails during a mirror."""

    pass


class PlaylistParseError(VodMirrorError):
    """Raised when playlist bytes do not follow the playlist grammar."""

    pass
