# tests/test_store.py
"""Test artifact storage layout, publication and identity locks"""

import asyncio

import pytest

from audiostash.core.exceptions import AudioIOError
from audiostash.core.store import (
    ArtifactStore,
    IdentityLocks,
    sanitize_filename,
    validate_identity,
)

IDENTITY = "3a7bd3e2360a3d29eea436fcfb7e44c735d117c42d1c1835420b6b9942dd4f1b"


class TestSanitizeFilename:
    """Test staging name sanitization"""

    def test_plain_name_unchanged(self):
        """Test that ordinary names pass through"""
        assert sanitize_filename("song.wav") == "song.wav"
        assert sanitize_filename("My Song (Live).flac") == "My Song (Live).flac"

    def test_path_separators_replaced(self):
        """Test that a name cannot escape the upload root"""
        assert sanitize_filename("../../etc/passwd") == "_.._etc_passwd"
        assert "/" not in sanitize_filename("a/b/c.wav")
        assert "\\" not in sanitize_filename("a\\b.wav")

    def test_leading_dots_stripped(self):
        """Test that dot-only names never yield '.' or '..'"""
        assert sanitize_filename("..") == "upload"
        assert sanitize_filename(".hidden.wav") == "hidden.wav"

    def test_empty_name(self):
        """Test fallback name"""
        assert sanitize_filename("") == "upload"
        assert sanitize_filename("   ") == "upload"

    def test_long_name_truncated(self):
        """Test maximum length"""
        assert len(sanitize_filename("a" * 500 + ".wav")) == 200


class TestValidateIdentity:
    """Test content identity validation"""

    def test_valid(self):
        assert validate_identity(IDENTITY) == IDENTITY

    @pytest.mark.parametrize("value", [
        "",
        "abc123",
        IDENTITY.upper(),
        IDENTITY[:-1] + "g",
        "../" + IDENTITY[3:],
    ])
    def test_invalid(self, value):
        """Test that anything but 64 lowercase hex characters is rejected"""
        with pytest.raises(ValueError):
            validate_identity(value)


class TestArtifactStore:
    """Test canonical paths and existence checks"""

    def test_creates_root(self, temp_dir):
        """Test that the upload root is created on demand"""
        root = temp_dir / "nested" / "uploads"
        store = ArtifactStore(root)
        assert root.is_dir()
        assert store.root == root.resolve()

    def test_create_false_leaves_root_missing(self, temp_dir):
        """Test that a read-only store does not create the root"""
        root = temp_dir / "missing"
        store = ArtifactStore(root, create=False)
        assert not root.exists()
        assert not store.exists(IDENTITY)

    def test_root_is_a_file(self, temp_dir):
        """Test that an unusable root raises AudioIOError"""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(AudioIOError):
            ArtifactStore(blocker / "uploads")

    def test_canonical_paths(self, store, upload_root):
        """Test the storage layout"""
        artifacts = store.artifacts(IDENTITY)
        assert artifacts.identity == IDENTITY
        assert artifacts.encoded_path == upload_root / f"{IDENTITY}.mp3"
        assert artifacts.waveform_path == upload_root / f"waveform-{IDENTITY}"

    def test_paths_are_deterministic(self, store):
        """Test that resolving twice gives the same set"""
        assert store.artifacts(IDENTITY) == store.artifacts(IDENTITY)

    def test_paths_reject_bad_identity(self, store):
        """Test that paths are never templated from arbitrary strings"""
        with pytest.raises(ValueError):
            store.encoded_path("../escape")

    def test_exists_requires_both_artifacts(self, store):
        """Test that a half-complete set is reported as absent"""
        artifacts = store.artifacts(IDENTITY)
        assert not store.exists(IDENTITY)

        artifacts.encoded_path.write_bytes(b"mp3")
        assert not store.exists(IDENTITY)

        artifacts.waveform_path.write_bytes(b"\x00\x00\x00\x00")
        assert store.exists(IDENTITY)

        artifacts.encoded_path.unlink()
        assert not store.exists(IDENTITY)

    def test_exists_ignores_directories(self, store):
        """Test that a directory at a canonical path does not count"""
        artifacts = store.artifacts(IDENTITY)
        artifacts.encoded_path.mkdir()
        artifacts.waveform_path.write_bytes(b"\x00\x00\x00\x00")
        assert not store.exists(IDENTITY)

    def test_staging_path(self, store, upload_root):
        """Test hidden staging location"""
        assert store.staging_path("song.wav") == upload_root / ".song.wav"
        assert store.staging_path("../x.wav").parent == upload_root

    def test_scratch_path_is_unique_sibling(self, store):
        """Test scratch naming"""
        final = store.encoded_path(IDENTITY)
        first = store.scratch_path(final)
        second = store.scratch_path(final)

        assert first != second
        assert first.parent == final.parent
        assert first.name.startswith(f".{final.name}.")
        assert first.name.endswith(".part")


class TestPublishAndDiscard:
    """Test atomic publication and transient file removal"""

    def test_publish_moves_scratch(self, store):
        """Test that publish renames scratch onto the canonical path"""
        final = store.encoded_path(IDENTITY)
        scratch = store.scratch_path(final)
        scratch.write_bytes(b"new")

        store.publish(scratch, final)

        assert final.read_bytes() == b"new"
        assert not scratch.exists()

    def test_publish_replaces_existing(self, store):
        """Test that a stale artifact is overwritten"""
        final = store.waveform_path(IDENTITY)
        final.write_bytes(b"old")
        scratch = store.scratch_path(final)
        scratch.write_bytes(b"new")

        store.publish(scratch, final)

        assert final.read_bytes() == b"new"

    def test_publish_missing_scratch(self, store):
        """Test that a failed rename raises and leaves the canonical path alone"""
        final = store.encoded_path(IDENTITY)
        with pytest.raises(AudioIOError):
            store.publish(store.scratch_path(final), final)
        assert not final.exists()

    def test_discard(self, store, upload_root):
        """Test removal result"""
        path = upload_root / ".song.wav"
        path.write_bytes(b"x")

        assert store.discard(path) is True
        assert not path.exists()
        assert store.discard(path) is False

    def test_discard_directory_raises(self, store, upload_root):
        """Test that an unremovable path raises AudioIOError"""
        path = upload_root / ".folder"
        path.mkdir()
        with pytest.raises(AudioIOError):
            store.discard(path)


class TestIdentityLocks:
    """Test per-identity locking"""

    @pytest.mark.asyncio
    async def test_same_identity_serialized(self):
        """Test that holders of one identity never overlap"""
        locks = IdentityLocks()
        events = []

        async def worker(name):
            async with locks.hold(IDENTITY):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_different_identities_independent(self):
        """Test that distinct identities do not block each other"""
        locks = IdentityLocks()
        other = "0" * 64
        entered = asyncio.Event()

        async def first():
            async with locks.hold(IDENTITY):
                await asyncio.wait_for(entered.wait(), timeout=1)

        async def second():
            async with locks.hold(other):
                entered.set()

        await asyncio.gather(first(), second())

    @pytest.mark.asyncio
    async def test_locks_released(self):
        """Test that unused locks are dropped"""
        locks = IdentityLocks()

        async with locks.hold(IDENTITY):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        """Test that an exception inside the block releases the lock"""
        locks = IdentityLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold(IDENTITY):
                raise RuntimeError("boom")

        assert len(locks) == 0
        async with locks.hold(IDENTITY):
            pass
