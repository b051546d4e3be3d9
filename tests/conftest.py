"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from audiostash.convert.metadata import AudioMetadata
from audiostash.core.exceptions import EncodeError, WaveformError
from audiostash.core.store import ArtifactStore
from audiostash.pipeline import UploadedFile

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, stereo, no padding: 417 bytes per frame
MP3_FRAME_HEADER = b"\xff\xfb\x90\x00"
MP3_FRAME_SIZE = 417


class FakeEncoder:
    """Encoder double: writes a marker plus the source bytes, counts calls"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def encode(self, source, dest):
        self.calls.append((Path(source), Path(dest)))
        if self.fail:
            # Leave a half-written file behind like a crashed encoder would
            Path(dest).write_bytes(b"partial")
            raise EncodeError("encoder exited with status 1")
        Path(dest).write_bytes(b"MP3:" + Path(source).read_bytes())


class FakeWaveform:
    """Waveform double: writes four fixed bytes, counts calls"""

    PAYLOAD = b"\x00\x00\x80\x3f"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def extract(self, source, dest):
        self.calls.append((Path(source), Path(dest)))
        if self.fail:
            raise WaveformError("waveform extractor crashed")
        Path(dest).write_bytes(self.PAYLOAD)
        return self.PAYLOAD.hex()


class FakeMetadataReader:
    """Metadata double returning a fixed record, or None when unavailable"""

    def __init__(self, available: bool = True):
        self.available = available
        self.calls = []

    def read(self, path):
        self.calls.append(Path(path))
        if not self.available:
            return None
        return AudioMetadata(duration=1.5, title="Song", artist=["Artist"])


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def upload_root(temp_dir):
    """Upload root inside the temporary directory"""
    root = temp_dir / "uploads"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def store(upload_root):
    """Artifact store over the temporary upload root"""
    return ArtifactStore(upload_root)


@pytest.fixture
def make_upload(upload_root):
    """Write bytes into the upload root the way the upload layer does"""
    counter = iter(range(1_000_000))

    def _make(content: bytes, display_name: str = "song.wav") -> UploadedFile:
        path = upload_root / f"upload_{next(counter)}"
        path.write_bytes(content)
        return UploadedFile(path=path, display_name=display_name)

    return _make


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


@pytest.fixture
def failing_encoder():
    return FakeEncoder(fail=True)


@pytest.fixture
def fake_waveform():
    return FakeWaveform()


@pytest.fixture
def failing_waveform():
    return FakeWaveform(fail=True)


@pytest.fixture
def fake_metadata():
    return FakeMetadataReader()


@pytest.fixture
def missing_metadata():
    return FakeMetadataReader(available=False)


@pytest.fixture
def make_mp3(temp_dir):
    """Build a minimal MP3 file from silent frames"""

    def _make(name: str = "tone.mp3", frames: int = 40) -> Path:
        frame = MP3_FRAME_HEADER + b"\x00" * (MP3_FRAME_SIZE - len(MP3_FRAME_HEADER))
        path = temp_dir / name
        path.write_bytes(frame * frames)
        return path

    return _make
