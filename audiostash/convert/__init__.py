"""
Conversion adapters for audiostash.

Thin wrappers around the external capabilities the pipeline relies on:
    - encoder: MP3 transcoding (pydub + ffmpeg)
    - waveform: Peak extraction from the encoded audio (pydub + numpy)
    - metadata: Tag and duration parsing (mutagen)

Usage:
    from audiostash.convert import Mp3Encoder, WaveformExtractor, MetadataReader
"""

from audiostash.convert.encoder import Mp3Encoder
from audiostash.convert.metadata import (
    AudioMetadata,
    MetadataReader,
    Position,
    calculate_duration,
)
from audiostash.convert.waveform import WaveformExtractor, decode_waveform

__all__ = [
    "Mp3Encoder",
    "WaveformExtractor",
    "decode_waveform",
    "MetadataReader",
    "AudioMetadata",
    "Position",
    "calculate_duration",
]
