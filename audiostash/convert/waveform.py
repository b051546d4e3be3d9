"""
Waveform extraction for audiostash.

Builds the visual waveform of an encoded file: a fixed number of peak
values, one per horizontal pixel, each in the range 0.0-1.0.

Output Format:
    The peaks are stored as consecutive little-endian float32 values
    (4 bytes per peak) in the waveform artifact. extract() also returns
    the same bytes as a lowercase hex string for callers that want to
    ship them inline.

Algorithm:
    1. Decode the audio with pydub and downmix to mono
    2. Normalize samples by the full-scale value of the sample width
    3. Split into min(width, sample count) equal windows
    4. Keep the peak absolute value of each window, rounded to `precision`
"""

from pathlib import Path

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from audiostash.core.config import DEFAULT_WAVEFORM_PRECISION, DEFAULT_WAVEFORM_WIDTH
from audiostash.core.exceptions import WaveformError
from audiostash.core.logger import get_logger

logger = get_logger(__name__)


# Serialized sample type of a waveform artifact
PEAK_DTYPE = np.dtype("<f4")


class WaveformExtractor:
    """
    Extracts normalized peak data from audio files.

    Attributes:
        precision: Decimal places kept per peak.
        width: Maximum number of peaks produced.
    """

    def __init__(
        self,
        precision: int = DEFAULT_WAVEFORM_PRECISION,
        width: int = DEFAULT_WAVEFORM_WIDTH
    ) -> None:
        if precision < 0:
            raise ValueError("precision must be non-negative")
        if width < 1:
            raise ValueError("width must be positive")
        self.precision = precision
        self.width = width

    def extract(self, source: Path, dest: Path) -> str:
        """
        Compute the waveform of source and persist it at dest.

        Args:
            source: Encoded audio file.
            dest: Output path for the binary peaks (overwritten if present).

        Returns:
            Hex representation of the bytes written to dest.

        Raises:
            WaveformError: If the audio cannot be decoded, holds no samples,
                           or the artifact cannot be written.
        """
        details = {"source": str(source), "dest": str(dest)}

        try:
            audio = AudioSegment.from_file(str(source))
        except (CouldntDecodeError, OSError) as e:
            raise WaveformError(
                f"Cannot decode {Path(source).name} for waveform: {e}",
                details={**details, "original_error": str(e)}
            ) from e

        peaks = self.compute_peaks(audio)
        if peaks.size == 0:
            raise WaveformError(
                f"No audio samples in {Path(source).name}",
                details=details
            )

        payload = peaks.astype(PEAK_DTYPE).tobytes()

        try:
            with open(dest, "wb") as f:
                f.write(payload)
        except OSError as e:
            raise WaveformError(
                f"Failed to write waveform {Path(dest).name}: {e}",
                details={**details, "original_error": str(e)}
            ) from e

        logger.debug(f"Extracted {peaks.size} peaks from {Path(source).name}")
        return payload.hex()

    def compute_peaks(self, audio: AudioSegment) -> np.ndarray:
        """
        Reduce decoded audio to at most `width` normalized peaks.

        Trailing samples that do not fill a whole window are dropped.

        Returns:
            1-D float array, empty if the audio has no samples.
        """
        mono = audio.set_channels(1) if audio.channels > 1 else audio
        samples = np.array(mono.get_array_of_samples(), dtype=np.float64)

        if samples.size == 0:
            return np.empty(0, dtype=np.float64)

        full_scale = float(2 ** (mono.sample_width * 8 - 1))
        samples = np.abs(samples) / full_scale

        buckets = min(self.width, samples.size)
        window = samples.size // buckets
        windows = samples[:buckets * window].reshape(buckets, window)

        peaks = np.clip(windows.max(axis=1), 0.0, 1.0)
        return np.round(peaks, self.precision)


def decode_waveform(data: bytes | str) -> np.ndarray:
    """
    Decode a waveform artifact, or its hex form, back to peak values.

    Args:
        data: Raw artifact bytes or the hex string returned by extract().

    Returns:
        1-D float32 array of peaks.

    Raises:
        ValueError: If the input is not valid hex or not a whole number of peaks.
    """
    if isinstance(data, str):
        data = bytes.fromhex(data)
    if len(data) % PEAK_DTYPE.itemsize:
        raise ValueError("Waveform data length is not a multiple of the peak size")
    return np.frombuffer(data, dtype=PEAK_DTYPE)
