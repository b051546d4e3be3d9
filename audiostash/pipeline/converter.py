"""
Upload conversion pipeline for audiostash.

This module turns one uploaded audio file into its content-addressed
artifacts and reports what happened.

Workflow (per upload, strictly sequential):
    1. Quarantine: rename the upload to <root>/.<display name>
    2. Identify: SHA-256 of the staged bytes
    3. Resolve: <root>/<hash>.mp3 and <root>/waveform-<hash>
    4. Dedup: if both artifacts exist, reuse them; otherwise encode the
       staged file and extract the waveform from the encoded file, each
       written to a scratch path and published atomically
    5. Enrich: read metadata from the encoded file
    6. Cleanup: remove the staged file and leftover scratch files
    7. Return a ConversionResult

Error Handling:
    convert() never raises for conversion problems. A failing stage is
    logged (and written to the conversion failure report), later stages
    are skipped, cleanup still runs and the result comes back with
    status FAILURE and whatever fields were filled in before the failure.

Concurrency:
    Blocking work runs in worker threads through asyncio.to_thread(), so
    an event loop can serve many uploads at once. Uploads with identical
    content in the same process are serialized by IdentityLocks; the
    second one finds the published artifacts and reuses them. Uploads
    sharing a display name share a staging path, so they are serialized
    by a second set of locks keyed by that path, held from quarantine
    until cleanup. Across processes there is no lock, but atomic
    publication keeps every canonical artifact whole.

Usage:
    pipeline = ConversionPipeline.from_config(config)
    result = await pipeline.convert(UploadedFile(path, "song.wav"))
    if result.ok:
        print(result.file_name, result.shared_file)
"""

import asyncio
import os
from pathlib import Path

from audiostash.convert.encoder import Mp3Encoder
from audiostash.convert.metadata import MetadataReader
from audiostash.convert.waveform import WaveformExtractor
from audiostash.core.config import ConversionConfig, default_config
from audiostash.core.exceptions import AudioIOError, AudioStashError
from audiostash.core.hasher import ContentHasher
from audiostash.core.logger import get_logger, log_conversion_failure
from audiostash.core.store import ArtifactSet, ArtifactStore, IdentityLocks
from audiostash.pipeline.models import ConversionResult, ConversionStatus, UploadedFile

logger = get_logger(__name__)


class ConversionPipeline:
    """
    Orchestrates hashing, dedup, encoding, waveform and metadata for uploads.

    The pipeline keeps no per-upload state between calls. Everything it
    knows about earlier uploads comes from the artifact store on disk.

    Adapters are injectable so that policy (bitrate, waveform resolution)
    and the external tools can be swapped in tests.

    Attributes:
        store: Artifact store over the upload root.
        config: Policy configuration.
        encoder: Object with encode(source, dest).
        waveform: Object with extract(source, dest) -> hex string.
        metadata_reader: Object with read(path) -> AudioMetadata | None.
        hasher: Object with hash_file(path) -> str.
        locks: Per-identity locks shared by concurrent conversions.
        staging_locks: Per-staging-path locks shared by concurrent conversions.
    """

    def __init__(
        self,
        store: ArtifactStore,
        config: ConversionConfig | None = None,
        encoder: Mp3Encoder | None = None,
        waveform: WaveformExtractor | None = None,
        metadata_reader: MetadataReader | None = None,
        hasher: ContentHasher | None = None,
        locks: IdentityLocks | None = None,
        staging_locks: IdentityLocks | None = None
    ) -> None:
        self.store = store
        self.config = config or default_config(store.root)
        self.encoder = encoder or Mp3Encoder(self.config.encoder.bitrate)
        self.waveform = waveform or WaveformExtractor(
            precision=self.config.waveform.precision,
            width=self.config.waveform.width,
        )
        self.metadata_reader = metadata_reader or MetadataReader()
        self.hasher = hasher or ContentHasher()
        self.locks = locks or IdentityLocks()
        self.staging_locks = staging_locks or IdentityLocks()

    @classmethod
    def from_config(cls, config: ConversionConfig) -> "ConversionPipeline":
        """Build a pipeline with the default adapters for a configuration."""
        return cls(ArtifactStore(config.storage.upload_root), config=config)

    async def convert(self, upload: UploadedFile) -> ConversionResult:
        """
        Convert one upload.

        Args:
            upload: File written by the upload layer. It is consumed: renamed
                    into staging and deleted before this method returns.

        Returns:
            ConversionResult. status is SUCCESS, PARTIAL (metadata missing)
            or FAILURE (reason says which stage failed and why).
        """
        staged_path = self.store.staging_path(upload.display_name)

        # Held until cleanup has removed the staged file
        async with self.staging_locks.hold(str(staged_path)):
            return await self._convert(upload, staged_path)

    async def _convert(self, upload: UploadedFile, staged_path: Path) -> ConversionResult:
        result = ConversionResult()
        staged = False
        scratch_paths: list[Path] = []
        stage = "quarantine"

        logger.info(f"Converting {upload.display_name}")

        try:
            await asyncio.to_thread(self._quarantine, Path(upload.path), staged_path)
            staged = True

            stage = "identify"
            identity = await asyncio.to_thread(self.hasher.hash_file, staged_path)
            result.hash = identity

            artifacts = self.store.artifacts(identity)
            result.file_name = artifacts.encoded_path
            result.waveform_location = artifacts.waveform_path

            async with self.locks.hold(identity):
                stage = "dedup"
                if await asyncio.to_thread(self.store.exists, identity):
                    result.shared_file = True
                    logger.info(f"Reusing artifacts for {upload.display_name} ({identity})")
                else:
                    stage = "encode"
                    await self._encode(staged_path, artifacts, scratch_paths)
                    stage = "waveform"
                    await self._extract_waveform(artifacts, scratch_paths)

            stage = "metadata"
            result.metadata = await asyncio.to_thread(
                self.metadata_reader.read, artifacts.encoded_path
            )

            if result.metadata is None:
                result.status = ConversionStatus.PARTIAL
                result.reason = "metadata unavailable"
                logger.warning(f"Converted {upload.display_name} without metadata")
            else:
                result.status = ConversionStatus.SUCCESS
                logger.info(
                    f"Converted {upload.display_name} -> {artifacts.encoded_path.name}"
                    f"{' (shared)' if result.shared_file else ''}"
                )

        except AudioStashError as e:
            self._fail(result, upload, stage, e.message)
            if e.details:
                logger.debug(f"Details: {e.details}")
        except Exception as e:
            logger.exception(f"Unexpected error converting {upload.display_name}")
            self._fail(result, upload, stage, f"unexpected error: {e}")
        finally:
            if staged:
                scratch_paths.append(staged_path)
            await asyncio.to_thread(self._cleanup, scratch_paths)

        return result

    def convert_sync(self, upload: UploadedFile) -> ConversionResult:
        """Run convert() on a fresh event loop, for synchronous callers."""
        return asyncio.run(self.convert(upload))

    def _quarantine(self, upload_path: Path, staged_path: Path) -> None:
        try:
            os.replace(upload_path, staged_path)
        except OSError as e:
            raise AudioIOError(
                f"Cannot stage upload {upload_path.name}: {e}",
                details={
                    "path": str(upload_path),
                    "staging_path": str(staged_path),
                    "original_error": str(e),
                }
            ) from e

    async def _encode(
        self,
        staged_path: Path,
        artifacts: ArtifactSet,
        scratch_paths: list[Path]
    ) -> None:
        scratch = self.store.scratch_path(artifacts.encoded_path)
        scratch_paths.append(scratch)

        await asyncio.to_thread(self.encoder.encode, staged_path, scratch)
        await asyncio.to_thread(self.store.publish, scratch, artifacts.encoded_path)

    async def _extract_waveform(
        self,
        artifacts: ArtifactSet,
        scratch_paths: list[Path]
    ) -> None:
        # Peaks come from the published MP3, not the staged upload
        scratch = self.store.scratch_path(artifacts.waveform_path)
        scratch_paths.append(scratch)

        hex_peaks = await asyncio.to_thread(
            self.waveform.extract, artifacts.encoded_path, scratch
        )
        await asyncio.to_thread(self.store.publish, scratch, artifacts.waveform_path)

        logger.debug(
            f"Waveform {artifacts.waveform_path.name}: {len(hex_peaks) // 2} bytes"
        )

    def _cleanup(self, paths: list[Path]) -> None:
        for path in paths:
            try:
                if self.store.discard(path):
                    logger.debug(f"Removed {path.name}")
            except AudioIOError as e:
                logger.error(f"Cleanup failed: {e.message}")

    def _fail(
        self,
        result: ConversionResult,
        upload: UploadedFile,
        stage: str,
        message: str
    ) -> None:
        result.status = ConversionStatus.FAILURE
        result.reason = f"{stage}: {message}"
        log_conversion_failure(
            logger,
            display_name=upload.display_name,
            content_hash=result.hash,
            stage=stage,
            error_message=message,
        )
