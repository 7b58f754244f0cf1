"""HLS playlist parsing: playlist kind and ordered segment references."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List
from urllib.parse import unquote, urlsplit

import m3u8
from m3u8.parser import ParseError

from vodmirror.errors import PlaylistParseError

PLAYLIST_HEADER = "#EXTM3U"


class PlaylistKind(str, Enum):
    MEDIA = "media"
    MASTER = "master"


@dataclass(frozen=True)
class SegmentRef:
    """A media segment reference, exactly as written in the playlist."""
    uri: str


@dataclass
class ParsedPlaylist:
    kind: PlaylistKind
    segments: List[SegmentRef]
    document: m3u8.M3U8 = field(repr=False)


def _has_control_chars(text: str) -> bool:
    return any(c.isspace() or ord(c) < 0x20 or ord(c) == 0x7F for c in text)


def is_well_formed_uri(uri: str) -> bool:
    """
    Whether a segment URI can be fetched and stored locally.

    Rejects blanks, whitespace and control characters, unparsable URLs,
    directory references, and any ".." path component. The path is checked
    both as written and percent-decoded.
    """
    if not uri or _has_control_chars(uri):
        return False
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    if parts.scheme and parts.scheme not in ("http", "https"):
        return False
    if not parts.path or parts.path.endswith("/"):
        return False

    decoded = unquote(parts.path)
    if decoded.endswith("/") or any(ord(c) < 0x20 for c in decoded):
        return False
    if not (parts.scheme or parts.netloc or parts.path.startswith("/")) and decoded.startswith("/"):
        return False
    return ".." not in parts.path.split("/") and ".." not in decoded.split("/")


def _decode(content: bytes) -> str:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise PlaylistParseError(f"Playlist is not valid UTF-8: {e}") from e

    first_line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    if first_line != PLAYLIST_HEADER:
        raise PlaylistParseError(f"{PLAYLIST_HEADER} absent")
    return text


def parse_playlist(content: bytes) -> ParsedPlaylist:
    """
    Parse playlist bytes.

    Master (variant) playlists come back with kind MASTER and no segments;
    only media playlists have their segments extracted. Segments with an
    empty or malformed URI are skipped.
    """
    text = _decode(content)
    try:
        document = m3u8.loads(text)
    except (ParseError, ValueError, IndexError) as e:
        raise PlaylistParseError(f"Error decoding playlist: {e}") from e

    if document.is_variant:
        return ParsedPlaylist(kind=PlaylistKind.MASTER, segments=[], document=document)

    segments = []
    for segment in document.segments:
        uri = (segment.uri or "").strip()
        if is_well_formed_uri(uri):
            segments.append(SegmentRef(uri=uri))

    return ParsedPlaylist(kind=PlaylistKind.MEDIA, segments=segments, document=document)
