"""
audiostash: Content-addressed audio conversion.

This package turns uploaded audio files into deduplicated artifacts:
an MP3 encoding and a waveform, both named after the SHA-256 of the
uploaded bytes, plus the metadata read from the encoded file.

Architecture:
    core/       - Configuration, logging, exceptions, hashing, artifact store
    convert/    - Encoder, waveform and metadata adapters
    pipeline/   - ConversionPipeline and its result types
    cli.py      - Command-line interface

Workflow (per upload):
    1. Rename the upload into a hidden staging file
    2. Hash the staged bytes (the content identity)
    3. Reuse <hash>.mp3 and waveform-<hash> if both exist; otherwise
       encode, extract the waveform and publish both atomically
    4. Read metadata from the encoded file
    5. Remove the staging and scratch files

Usage:
    Command Line:
        audiostash convert song.wav
        audiostash status <hash>
        audiostash duration <root>/<hash>.mp3

    Python API:
        from audiostash import ConversionPipeline, UploadedFile, load_config

        config = load_config()
        pipeline = ConversionPipeline.from_config(config)
        result = await pipeline.convert(UploadedFile(path, "song.wav"))

Configuration:
    Optional config.yaml in the current directory:

        storage:
          upload_root: "uploads"

        encoder:
          bitrate: 128

        waveform:
          precision: 4
          width: 44100

    AUDIOSTASH_UPLOAD_ROOT (environment or .env) overrides storage.upload_root.

Dependencies:
    - pydub: Decoding and MP3 encoding through ffmpeg
    - numpy: Waveform peak computation
    - mutagen: Metadata and duration parsing
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support
    - click / rich-click: CLI
    - tqdm: Progress bars
    - colorama: Console colors
"""

__version__ = "0.1.0"
__author__ = "audiostash"
__license__ = "MIT"

# Convenience imports for common usage
from audiostash.core import (
    ArtifactStore,
    AudioIOError,
    AudioStashError,
    ConfigError,
    ContentHasher,
    ConversionConfig,
    EncodeError,
    MetadataError,
    WaveformError,
    get_logger,
    load_config,
    setup_logging,
)
from audiostash.pipeline import (
    ConversionPipeline,
    ConversionResult,
    ConversionStatus,
    UploadedFile,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "ConversionConfig",
    "load_config",
    "setup_logging",
    "get_logger",
    "ContentHasher",
    "ArtifactStore",
    # Exceptions
    "AudioStashError",
    "ConfigError",
    "AudioIOError",
    "EncodeError",
    "WaveformError",
    "MetadataError",
    # Pipeline
    "ConversionPipeline",
    "ConversionResult",
    "ConversionStatus",
    "UploadedFile",
]
