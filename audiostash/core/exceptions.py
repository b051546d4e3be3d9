"""
Exception classes for audiostash.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus a details dictionary
so that failures can be logged with enough context to reproduce them.

Exception Hierarchy:
    AudioStashError (base)
        ConfigError - Configuration file issues
        AudioIOError - File open/read/write/rename/delete failures
        EncodeError - MP3 encoder failures
        WaveformError - Waveform extraction failures
        MetadataError - Tag/duration parsing failures
"""


class AudioStashError(Exception):
    """
    Base exception for all audiostash errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every audiostash error with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (paths, hashes, ...).

    Example:
        try:
            encoder.encode(source, dest)
        except AudioStashError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'path': File involved in the error
                     - 'content_hash': Content identity being processed
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(AudioStashError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - A section is not a mapping
        - Invalid field values (unsupported bitrate, non-positive width)
    """
    pass


class AudioIOError(AudioStashError):
    """
    Raised when a filesystem operation on an upload or artifact fails.

    Covers staging renames, hashing reads, artifact publication and
    cleanup deletes. It is fatal for the invocation that raised it.

    Example:
        raise AudioIOError(
            "Failed to read file while hashing",
            details={'path': '/uploads/.song.wav', 'original_error': 'EIO'}
        )
    """
    pass


class EncodeError(AudioStashError):
    """
    Raised when the MP3 encoder cannot produce the encoded artifact.

    Common causes:
        - Input is not decodable audio
        - ffmpeg binary missing or crashed
        - Destination not writable
    """
    pass


class WaveformError(AudioStashError):
    """
    Raised when waveform peaks cannot be extracted or persisted.

    Common causes:
        - Encoded audio cannot be decoded
        - Audio contains no samples
        - Destination not writable
    """
    pass


class MetadataError(AudioStashError):
    """
    Raised when tags or duration cannot be parsed from an audio file.

    This is a NON-CRITICAL error. MetadataReader swallows it and returns
    None; only the strict calculate_duration() helper lets it propagate.
    """
    pass
