"""
MP3 encoding for audiostash.

Transcodes an upload into the canonical encoded artifact. Decoding and
encoding are delegated to ffmpeg through pydub, so any format ffmpeg can
read is accepted as input.

Audio Quality:
    A single constant bitrate is used for every file (128 kbps by default).
    It is fixed when the encoder is built, not chosen per request.

Dependencies:
    - pydub: Audio decoding/encoding front-end
    - FFmpeg: Must be installed and on PATH
"""

from pathlib import Path

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError

from audiostash.core.config import ALLOWED_BITRATES, DEFAULT_BITRATE
from audiostash.core.exceptions import EncodeError
from audiostash.core.logger import get_logger

logger = get_logger(__name__)


class Mp3Encoder:
    """
    Encodes audio files to constant-bitrate MP3.

    The encoder writes exactly where it is told. Callers that need the
    destination to appear atomically (the pipeline does) pass a scratch
    path and rename it afterwards.

    Attributes:
        bitrate: Constant bitrate in kbps.
    """

    def __init__(self, bitrate: int = DEFAULT_BITRATE) -> None:
        """
        Args:
            bitrate: Target bitrate in kbps, one of ALLOWED_BITRATES.

        Raises:
            ValueError: If the bitrate is not supported by LAME.
        """
        if bitrate not in ALLOWED_BITRATES:
            raise ValueError(f"Unsupported MP3 bitrate: {bitrate}")
        self.bitrate = bitrate

    def encode(self, source: Path, dest: Path) -> None:
        """
        Transcode source to MP3 at dest.

        Args:
            source: Any ffmpeg-readable audio file.
            dest: Output path (overwritten if it exists).

        Raises:
            EncodeError: If the source cannot be decoded, the encoder fails,
                         or the output cannot be written.
        """
        details = {
            "source": str(source),
            "dest": str(dest),
            "bitrate": self.bitrate,
        }

        logger.debug(f"Encoding {Path(source).name} at {self.bitrate} kbps")

        try:
            audio = AudioSegment.from_file(str(source))
            out = audio.export(
                str(dest),
                format="mp3",
                bitrate=f"{self.bitrate}k",
            )
            out.close()
        except CouldntDecodeError as e:
            raise EncodeError(
                f"Unsupported or corrupt input: {Path(source).name}",
                details={**details, "original_error": str(e)}
            ) from e
        except CouldntEncodeError as e:
            raise EncodeError(
                f"MP3 encoder failed for {Path(source).name}",
                details={**details, "original_error": str(e)}
            ) from e
        except OSError as e:
            # Missing ffmpeg binary or unwritable destination
            raise EncodeError(
                f"Encoding {Path(source).name} failed: {e}",
                details={**details, "original_error": str(e)}
            ) from e

        logger.debug(f"Encoded {Path(source).name} -> {Path(dest).name}")
