"""
Core module for audiostash.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration dataclasses and YAML loading
    - logger: Logging system with multiple outputs
    - hasher: Streaming SHA-256 content identity
    - store: Content-addressed artifact paths and publication

Usage:
    from audiostash.core import (
        ArtifactStore, ContentHasher,
        ConversionConfig, load_config,
        setup_logging, get_logger,
        AudioStashError, AudioIOError,
    )
"""

from audiostash.core.config import (
    ALLOWED_BITRATES,
    ConversionConfig,
    EncoderConfig,
    LoggingConfig,
    StorageConfig,
    WaveformConfig,
    default_config,
    load_config,
)
from audiostash.core.exceptions import (
    AudioIOError,
    AudioStashError,
    ConfigError,
    EncodeError,
    MetadataError,
    WaveformError,
)
from audiostash.core.hasher import ContentHasher, hash_file
from audiostash.core.logger import (
    get_logger,
    log_conversion_failure,
    setup_logging,
    shutdown_logging,
)
from audiostash.core.store import ArtifactSet, ArtifactStore, IdentityLocks

__all__ = [
    # Config
    "ALLOWED_BITRATES",
    "ConversionConfig",
    "StorageConfig",
    "EncoderConfig",
    "WaveformConfig",
    "LoggingConfig",
    "default_config",
    "load_config",
    # Exceptions
    "AudioStashError",
    "ConfigError",
    "AudioIOError",
    "EncodeError",
    "WaveformError",
    "MetadataError",
    # Hashing and storage
    "ContentHasher",
    "hash_file",
    "ArtifactSet",
    "ArtifactStore",
    "IdentityLocks",
    # Logger
    "setup_logging",
    "get_logger",
    "log_conversion_failure",
    "shutdown_logging",
]
