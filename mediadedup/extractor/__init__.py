"""Metadata extraction and content fingerprinting for media files."""

from mediadedup.extractor.exiftool import (
    ExiftoolError,
    ExiftoolNotFoundError,
    ExiftoolResult,
    ExiftoolRunner,
)
from mediadedup.extractor.ffprobe import FfprobeNotFoundError, FfprobeResult, FfprobeRunner
from mediadedup.extractor.fingerprint import (
    HEADER_BYTES,
    Fingerprint,
    Fingerprinter,
    FingerprintResult,
)
from mediadedup.extractor.media_types import (
    PHOTO_EXTENSIONS,
    SUPPORTED_EXTENSIONS,
    VIDEO_EXTENSIONS,
    is_supported_extension,
    media_type_for_extension,
    media_type_for_path,
)

__all__ = [
    "ExiftoolRunner",
    "ExiftoolResult",
    "ExiftoolError",
    "ExiftoolNotFoundError",
    "FfprobeRunner",
    "FfprobeResult",
    "FfprobeNotFoundError",
    "Fingerprint",
    "FingerprintResult",
    "Fingerprinter",
    "HEADER_BYTES",
    "PHOTO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "SUPPORTED_EXTENSIONS",
    "is_supported_extension",
    "media_type_for_extension",
    "media_type_for_path",
]
