"""
Content-addressed artifact storage for audiostash.

Every derived file lives directly in the upload root, named after the
content identity of the upload it came from.

Architecture:
    upload_root/
    ├── 3a7bd3e2...4f1b.mp3                 # Encoded audio
    ├── waveform-3a7bd3e2...4f1b            # Waveform peaks (float32, binary)
    ├── .song.wav                           # Staged upload (transient)
    ├── .3a7bd3e2...4f1b.mp3.<uuid>.part    # Scratch write (transient)
    └── logs/

Dedup Rule:
    A content identity counts as processed only when BOTH the encoded
    file and the waveform exist. A half-finished set is redone.

Publishing:
    Artifacts are written to a request-unique scratch path and moved onto
    their canonical path with os.replace(), so a canonical path never holds
    a partially written file.

Usage:
    store = ArtifactStore(Path("/srv/uploads"))
    artifacts = store.artifacts(identity)
    if not store.exists(identity):
        scratch = store.scratch_path(artifacts.encoded_path)
        encoder.encode(staged, scratch)
        store.publish(scratch, artifacts.encoded_path)
"""

import asyncio
import os
import re
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from audiostash.core.exceptions import AudioIOError
from audiostash.core.logger import get_logger

logger = get_logger(__name__)


# Characters that are invalid in filenames on various operating systems
_INVALID_CHARS_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Maximum filename length (conservative for cross-platform compatibility)
_MAX_FILENAME_LENGTH = 200

# A content identity is a lowercase hex SHA-256 digest
_IDENTITY_PATTERN = re.compile(r"^[0-9a-f]{64}$")

ENCODED_SUFFIX = ".mp3"
WAVEFORM_PREFIX = "waveform-"
SCRATCH_SUFFIX = ".part"


def sanitize_filename(name: str) -> str:
    """
    Sanitize a string for use in a filename.

    Args:
        name: The string to sanitize.

    Returns:
        A sanitized string safe for use in filenames.

    Behavior:
        - Replaces invalid characters (including path separators) with underscores
        - Strips leading/trailing whitespace and dots
        - Truncates to maximum length
        - Returns "upload" if result is empty
    """
    if not name:
        return "upload"

    result = _INVALID_CHARS_PATTERN.sub("_", name)

    # Leading dots would stack on the staging dot or form "." / ".."
    result = result.strip(" .")

    if len(result) > _MAX_FILENAME_LENGTH:
        result = result[:_MAX_FILENAME_LENGTH].rstrip(" .")

    return result if result else "upload"


def validate_identity(identity: str) -> str:
    """
    Check that a string is a content identity before templating paths with it.

    Raises:
        ValueError: If identity is not 64 lowercase hex characters.
    """
    if not isinstance(identity, str) or not _IDENTITY_PATTERN.match(identity):
        raise ValueError(f"Not a content identity: {identity!r}")
    return identity


@dataclass(frozen=True)
class ArtifactSet:
    """
    Canonical artifact paths derived from one content identity.

    Attributes:
        identity: The content identity the paths are keyed by.
        encoded_path: <root>/<identity>.mp3
        waveform_path: <root>/waveform-<identity>
    """
    identity: str
    encoded_path: Path
    waveform_path: Path


class ArtifactStore:
    """
    Maps content identities to artifact paths inside one upload root.

    The store is the only place that knows the storage layout. It does
    not hold any state besides the root, so many pipelines (and processes)
    can share one directory.

    Attributes:
        root: Absolute upload root directory.
    """

    def __init__(self, root: Path, create: bool = True) -> None:
        """
        Initialize the store, creating the upload root if needed.

        Args:
            root: Upload root directory.
            create: Create the root if missing. Read-only callers pass False.

        Raises:
            AudioIOError: If the root cannot be created.
        """
        self.root = Path(root).expanduser().resolve()
        if not create:
            return

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AudioIOError(
                f"Cannot create upload root {self.root}: {e}",
                details={"path": str(self.root), "original_error": str(e)}
            ) from e

    def encoded_path(self, identity: str) -> Path:
        """Path of the encoded MP3 for an identity."""
        return self.root / f"{validate_identity(identity)}{ENCODED_SUFFIX}"

    def waveform_path(self, identity: str) -> Path:
        """Path of the binary waveform for an identity."""
        return self.root / f"{WAVEFORM_PREFIX}{validate_identity(identity)}"

    def artifacts(self, identity: str) -> ArtifactSet:
        """
        Resolve the full artifact set for an identity.

        The result depends on nothing but the identity and the root.
        """
        return ArtifactSet(
            identity=identity,
            encoded_path=self.encoded_path(identity),
            waveform_path=self.waveform_path(identity),
        )

    def exists(self, identity: str) -> bool:
        """
        Check whether an identity has been fully processed.

        Returns:
            True only if both the encoded file and the waveform exist.
            A set with one artifact missing is reported as absent.
        """
        artifacts = self.artifacts(identity)
        encoded = artifacts.encoded_path.is_file()
        waveform = artifacts.waveform_path.is_file()

        if encoded != waveform:
            logger.debug(
                f"Incomplete artifact set for {identity}: "
                f"encoded={encoded}, waveform={waveform}"
            )

        return encoded and waveform

    def staging_path(self, display_name: str) -> Path:
        """
        Hidden staging location for an upload: <root>/.<display name>.

        The display name is sanitized so it cannot point outside the root.
        """
        return self.root / f".{sanitize_filename(display_name)}"

    def scratch_path(self, final_path: Path) -> Path:
        """
        Request-unique sibling of a canonical path for write-then-publish.

        Lives in the same directory as final_path so publish() is a
        same-filesystem rename.
        """
        return final_path.with_name(
            f".{final_path.name}.{uuid.uuid4().hex}{SCRATCH_SUFFIX}"
        )

    def publish(self, scratch_path: Path, final_path: Path) -> None:
        """
        Atomically move a finished scratch file onto its canonical path.

        An existing file at final_path is replaced. Readers see either the
        old file or the new one, never a partial write.

        Raises:
            AudioIOError: If the rename fails.
        """
        try:
            os.replace(scratch_path, final_path)
        except OSError as e:
            raise AudioIOError(
                f"Failed to publish {final_path.name}: {e}",
                details={
                    "scratch_path": str(scratch_path),
                    "path": str(final_path),
                    "original_error": str(e),
                }
            ) from e

        logger.debug(f"Published {final_path.name}")

    def discard(self, path: Path) -> bool:
        """
        Remove a transient file (staged upload or scratch file).

        Returns:
            True if a file was removed, False if there was nothing to remove.

        Raises:
            AudioIOError: If the file exists but cannot be removed.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise AudioIOError(
                f"Failed to remove {path.name}: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e
        return True


class IdentityLocks:
    """
    Per-key asyncio locks for one process.

    Two conversions of identical content in the same event loop take the
    same lock, so the second one waits and then finds the artifacts already
    published. Keys are plain strings; the pipeline keeps a second instance
    keyed by staging path. Locks are created on first use and dropped once
    nobody holds or waits for them.

    Example:
        async with locks.hold(identity):
            if not store.exists(identity):
                ...
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, identity: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(identity, asyncio.Lock())
        self._users[identity] = self._users.get(identity, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[identity] -= 1
            if self._users[identity] == 0:
                del self._users[identity]
                del self._locks[identity]
