"""
Metadata extraction for audiostash.

Reads tags and stream properties from the encoded artifact. Metadata is
best-effort enrichment: a file that converted fine but whose tags cannot
be read is still a valid conversion, so MetadataReader never raises.

Tag Mapping (mutagen "easy" keys -> AudioMetadata):
    title        -> title
    artist       -> artist (all values)
    albumartist  -> albumartist (all values)
    album        -> album
    date         -> year (first four digits)
    tracknumber  -> track {no, of}   ("3/12" or "3")
    discnumber   -> disk {no, of}
    genre        -> genre (all values)

Stream properties come from mutagen's info object: length (duration),
bitrate, sample_rate, channels.

Dependencies:
    - mutagen: Audio metadata library
"""

import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import mutagen
from mutagen.mp3 import MP3

from audiostash.core.exceptions import MetadataError
from audiostash.core.logger import get_logger

logger = get_logger(__name__)


_YEAR_PATTERN = re.compile(r"^\s*(\d{4})")


@dataclass(frozen=True)
class Position:
    """Position within a set, e.g. track 3 of 12. Unknown parts are 0."""
    no: int = 0
    of: int = 0


@dataclass(frozen=True)
class AudioMetadata:
    """
    Descriptive metadata of an encoded audio file.

    Attributes:
        duration: Length in seconds.
        title: Track title, empty if untagged.
        artist: Track artists.
        albumartist: Album artists.
        album: Album name, empty if untagged.
        year: Release year, empty if untagged.
        track: Track number and total.
        disk: Disc number and total.
        genre: Genres.
        bitrate: Stream bitrate in bits per second (0 if unknown).
        sample_rate: Sample rate in Hz (0 if unknown).
        channels: Channel count (0 if unknown).
    """
    duration: float
    title: str = ""
    artist: list[str] = field(default_factory=list)
    albumartist: list[str] = field(default_factory=list)
    album: str = ""
    year: str = ""
    track: Position = field(default_factory=Position)
    disk: Position = field(default_factory=Position)
    genre: list[str] = field(default_factory=list)
    bitrate: int = 0
    sample_rate: int = 0
    channels: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for JSON responses."""
        return asdict(self)


class MetadataReader:
    """
    Reads AudioMetadata from audio files without ever raising.

    Any failure (unknown format, corrupt stream, unreadable file) is
    logged and mapped to None.

    Example:
        metadata = MetadataReader().read(Path("/uploads/3a7b...4f1b.mp3"))
        if metadata is not None:
            print(f"{metadata.title}: {metadata.duration:.1f}s")
    """

    def read(self, path: Path) -> AudioMetadata | None:
        """
        Extract metadata from a file.

        Args:
            path: Audio file, normally the encoded artifact.

        Returns:
            AudioMetadata, or None if the file could not be parsed.
        """
        try:
            return self._read(Path(path))
        except Exception as e:
            logger.warning(f"Could not read metadata from {Path(path).name}: {e}")
            return None

    def _read(self, path: Path) -> AudioMetadata | None:
        audio = mutagen.File(str(path), easy=True)
        if audio is None:
            logger.warning(f"Unrecognized audio format: {path.name}")
            return None

        info = audio.info
        tags = audio.tags or {}

        metadata = AudioMetadata(
            duration=float(getattr(info, "length", 0.0) or 0.0),
            title=_first(tags, "title"),
            artist=_all(tags, "artist"),
            albumartist=_all(tags, "albumartist"),
            album=_first(tags, "album"),
            year=_parse_year(_first(tags, "date")),
            track=_parse_position(_first(tags, "tracknumber")),
            disk=_parse_position(_first(tags, "discnumber")),
            genre=_all(tags, "genre"),
            bitrate=int(getattr(info, "bitrate", 0) or 0),
            sample_rate=int(getattr(info, "sample_rate", 0) or 0),
            channels=int(getattr(info, "channels", 0) or 0),
        )

        logger.debug(f"Metadata for {path.name}: {metadata.duration:.2f}s")
        return metadata


def calculate_duration(path: Path) -> float:
    """
    Duration of an MP3 file in seconds.

    Unlike MetadataReader.read(), this is strict.

    Raises:
        MetadataError: If the file is missing or not a parsable MP3.
    """
    try:
        return float(MP3(str(path)).info.length)
    except (mutagen.MutagenError, OSError) as e:
        raise MetadataError(
            f"Cannot determine duration of {Path(path).name}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e


def _all(tags: Any, key: str) -> list[str]:
    try:
        values = tags[key]
    except (KeyError, ValueError):
        return []
    return [str(v).strip() for v in values if str(v).strip()]


def _first(tags: Any, key: str) -> str:
    values = _all(tags, key)
    return values[0] if values else ""


def _parse_year(raw: str) -> str:
    match = _YEAR_PATTERN.match(raw)
    return match.group(1) if match else ""


def _parse_position(raw: str) -> Position:
    """Parse "3/12", "3" or "" into a Position."""
    if not raw:
        return Position()

    number, _, total = raw.partition("/")
    return Position(no=_to_int(number), of=_to_int(total))


def _to_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        return 0
