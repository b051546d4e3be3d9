# tests/test_metadata.py
"""Test metadata extraction"""

import pytest
from mutagen.easyid3 import EasyID3

from audiostash.convert.metadata import (
    AudioMetadata,
    MetadataReader,
    Position,
    _parse_position,
    _parse_year,
    calculate_duration,
)
from audiostash.core.exceptions import MetadataError


def tag_file(path, **values):
    tags = EasyID3()
    for key, value in values.items():
        tags[key] = value
    tags.save(str(path))


class TestMetadataReader:
    """Test best-effort metadata reading"""

    def test_untagged_mp3(self, make_mp3):
        """Test stream properties of a file without tags"""
        metadata = MetadataReader().read(make_mp3())

        assert metadata is not None
        assert 0.5 < metadata.duration < 1.5
        assert metadata.title == ""
        assert metadata.artist == []
        assert metadata.track == Position()
        assert metadata.sample_rate == 44100
        assert metadata.channels == 2

    def test_tagged_mp3(self, make_mp3):
        """Test tag mapping"""
        path = make_mp3()
        tag_file(
            path,
            title="Song",
            artist=["Artist One", "Artist Two"],
            album="Album",
            date="2021-05-04",
            tracknumber="3/12",
            discnumber="1",
            genre="Rock",
        )

        metadata = MetadataReader().read(path)

        assert metadata.title == "Song"
        assert metadata.artist == ["Artist One", "Artist Two"]
        assert metadata.album == "Album"
        assert metadata.year == "2021"
        assert metadata.track == Position(no=3, of=12)
        assert metadata.disk == Position(no=1, of=0)
        assert metadata.genre == ["Rock"]

    def test_corrupt_file_returns_none(self, temp_dir):
        """Test that a broken MP3 yields None instead of raising"""
        path = temp_dir / "broken.mp3"
        path.write_bytes(b"this is not audio at all" * 10)
        assert MetadataReader().read(path) is None

    def test_unknown_format_returns_none(self, temp_dir):
        """Test that an unrecognized file yields None"""
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        assert MetadataReader().read(path) is None

    def test_missing_file_returns_none(self, temp_dir):
        assert MetadataReader().read(temp_dir / "missing.mp3") is None

    def test_to_dict(self):
        """Test JSON-ready form"""
        metadata = AudioMetadata(duration=2.0, title="Song", track=Position(1, 2))
        data = metadata.to_dict()
        assert data["title"] == "Song"
        assert data["track"] == {"no": 1, "of": 2}
        assert data["artist"] == []


class TestCalculateDuration:
    """Test strict MP3 duration"""

    def test_duration(self, make_mp3):
        short = calculate_duration(make_mp3("short.mp3", frames=20))
        long = calculate_duration(make_mp3("long.mp3", frames=80))
        assert short > 0
        assert long > short

    def test_invalid_file(self, temp_dir):
        path = temp_dir / "broken.mp3"
        path.write_bytes(b"\x00" * 64)
        with pytest.raises(MetadataError):
            calculate_duration(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(MetadataError):
            calculate_duration(temp_dir / "missing.mp3")


class TestParsers:
    """Test tag value parsing"""

    @pytest.mark.parametrize("raw, expected", [
        ("3/12", Position(3, 12)),
        ("7", Position(7, 0)),
        ("", Position(0, 0)),
        ("x/y", Position(0, 0)),
        (" 4 / 10 ", Position(4, 10)),
    ])
    def test_parse_position(self, raw, expected):
        assert _parse_position(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("2021-05-04", "2021"),
        ("1999", "1999"),
        ("", ""),
        ("May 2020", ""),
    ])
    def test_parse_year(self, raw, expected):
        assert _parse_year(raw) == expected
