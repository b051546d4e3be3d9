"""
Content hashing for audiostash.

The SHA-256 digest of an upload's bytes is its content identity: the key
under which every derived artifact is stored. Files are read in fixed-size
chunks so arbitrarily large uploads never have to fit in memory.
"""

import hashlib
from pathlib import Path

from audiostash.core.exceptions import AudioIOError
from audiostash.core.logger import get_logger

logger = get_logger(__name__)


# Bytes fed to the digest per read
CHUNK_SIZE = 64 * 1024


class ContentHasher:
    """
    Streams a file through SHA-256 and returns its lowercase hex digest.

    Attributes:
        chunk_size: Number of bytes read per iteration.

    Example:
        identity = ContentHasher().hash_file(Path("/uploads/.song.wav"))
        # '3a7bd3e2360a3d29eea436fcfb7e44c735d117c42d1c1835420b6b9942dd4f1b'
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def hash_file(self, path: Path) -> str:
        """
        Compute the content identity of a file.

        Args:
            path: File to hash.

        Returns:
            64-character lowercase hexadecimal SHA-256 digest.

        Raises:
            AudioIOError: If the file cannot be opened or a read fails
                          mid-stream. Not retried.
        """
        digest = hashlib.sha256()
        size = 0

        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b""):
                    digest.update(chunk)
                    size += len(chunk)
        except OSError as e:
            raise AudioIOError(
                f"Failed to read {Path(path).name} while hashing: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e

        identity = digest.hexdigest()
        logger.debug(f"Hashed {Path(path).name} ({size} bytes): {identity}")
        return identity


_default_hasher = ContentHasher()


def hash_file(path: Path) -> str:
    """Hash a file with the default chunk size. See ContentHasher.hash_file()."""
    return _default_hasher.hash_file(path)
