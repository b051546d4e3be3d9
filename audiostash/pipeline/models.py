"""
Data models for the conversion pipeline.

UploadedFile is what the upload layer hands in; ConversionResult is what
the pipeline hands back. The result is a plain record with nullable
fields (the wire contract) plus a status tag telling callers whether the
conversion fully succeeded, partially succeeded, or failed.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from audiostash.convert.metadata import AudioMetadata


@dataclass(frozen=True)
class UploadedFile:
    """
    A file written by the upload layer, waiting to be converted.

    Attributes:
        path: Where the upload layer put the raw bytes (inside the upload root).
        display_name: Original file name as sent by the client.
    """
    path: Path
    display_name: str


class ConversionStatus(Enum):
    """
    Outcome of one conversion.

    SUCCESS: Artifacts ready and metadata extracted.
    PARTIAL: Artifacts ready, metadata unavailable.
    FAILURE: Identity or artifacts could not be produced.
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass
class ConversionResult:
    """
    Result of ConversionPipeline.convert().

    Filled in stage by stage; whatever a failed stage did not reach keeps
    its default.

    Attributes:
        hash: Content identity, empty if hashing never completed.
        file_name: Canonical encoded MP3 path.
        waveform_location: Canonical waveform path.
        metadata: Extracted metadata, None when unavailable.
        shared_file: True when existing artifacts were reused.
        status: Tagged outcome.
        reason: Why the status is not SUCCESS.
    """
    hash: str = ""
    file_name: Path | None = None
    waveform_location: Path | None = None
    metadata: AudioMetadata | None = None
    shared_file: bool = False
    status: ConversionStatus = ConversionStatus.FAILURE
    reason: str | None = None

    @property
    def ok(self) -> bool:
        """True when the artifacts are usable (SUCCESS or PARTIAL)."""
        return self.status is not ConversionStatus.FAILURE

    def to_dict(self) -> dict[str, Any]:
        """
        Wire form of the result.

        Returns:
            {hash, file_name, waveform_location, metadata, sharedFile,
             status, reason} with paths as strings.
        """
        return {
            "hash": self.hash,
            "file_name": str(self.file_name) if self.file_name else None,
            "waveform_location": (
                str(self.waveform_location) if self.waveform_location else None
            ),
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "sharedFile": self.shared_file,
            "status": self.status.value,
            "reason": self.reason,
        }
