"""
Conversion pipeline for audiostash.

Usage:
    from audiostash.pipeline import ConversionPipeline, UploadedFile

    pipeline = ConversionPipeline.from_config(config)
    result = pipeline.convert_sync(UploadedFile(path, "song.wav"))
"""

from audiostash.pipeline.converter import ConversionPipeline
from audiostash.pipeline.models import ConversionResult, ConversionStatus, UploadedFile

__all__ = [
    "ConversionPipeline",
    "ConversionResult",
    "ConversionStatus",
    "UploadedFile",
]
