# tests/test_hasher.py
"""Test content hashing"""

import hashlib

import pytest

from audiostash.core.exceptions import AudioIOError
from audiostash.core.hasher import ContentHasher, hash_file


class TestContentHasher:
    """Test SHA-256 content identity"""

    def test_known_digest(self, temp_dir):
        """Test digest of a known payload"""
        path = temp_dir / "a.wav"
        path.write_bytes(b"hello world")
        assert hash_file(path) == (
            "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
        )

    def test_empty_file(self, temp_dir):
        """Test that an empty file has the SHA-256 of no bytes"""
        path = temp_dir / "empty"
        path.write_bytes(b"")
        assert hash_file(path) == hashlib.sha256(b"").hexdigest()

    def test_identical_bytes_different_names(self, temp_dir):
        """Test that the name does not influence the identity"""
        first = temp_dir / "song.wav"
        second = temp_dir / "copy.wav"
        first.write_bytes(b"\x01\x02" * 1000)
        second.write_bytes(b"\x01\x02" * 1000)
        assert hash_file(first) == hash_file(second)

    def test_different_bytes(self, temp_dir):
        """Test that different content gives different identities"""
        first = temp_dir / "a"
        second = temp_dir / "b"
        first.write_bytes(b"a")
        second.write_bytes(b"b")
        assert hash_file(first) != hash_file(second)

    def test_chunk_size_does_not_change_digest(self, temp_dir):
        """Test that streaming in small chunks matches a one-shot digest"""
        payload = bytes(range(256)) * 517
        path = temp_dir / "big.bin"
        path.write_bytes(payload)

        expected = hashlib.sha256(payload).hexdigest()
        assert ContentHasher(chunk_size=7).hash_file(path) == expected
        assert ContentHasher(chunk_size=1 << 20).hash_file(path) == expected

    def test_lowercase_hex(self, temp_dir):
        """Test digest format"""
        path = temp_dir / "x"
        path.write_bytes(b"x")
        digest = hash_file(path)
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_missing_file(self, temp_dir):
        """Test that an unreadable file raises AudioIOError"""
        with pytest.raises(AudioIOError) as exc_info:
            hash_file(temp_dir / "missing.wav")
        assert exc_info.value.details["path"].endswith("missing.wav")

    def test_invalid_chunk_size(self):
        """Test chunk size validation"""
        with pytest.raises(ValueError):
            ContentHasher(chunk_size=0)
