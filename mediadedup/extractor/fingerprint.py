"""Content fingerprinting for photo and video files."""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from mediadedup.database.models import MediaType
from mediadedup.extractor.exiftool import ExiftoolResult, ExiftoolRunner
from mediadedup.extractor.ffprobe import FfprobeRunner
from mediadedup.extractor.media_types import media_type_for_path
from mediadedup.extractor.parser import (
    get_first_value,
    parse_exif_date,
    photo_metadata_lines,
    video_creation_time,
    video_metadata_lines,
)

logger = logging.getLogger(__name__)

HEADER_BYTES = 128 * 1024


@dataclass(frozen=True)
class Fingerprint:
    """Content identity and best-effort capture time of a file."""

    fingerprint: str
    timestamp: int | None
    source: str  # 'exif', 'ffprobe' or 'bytes'


@dataclass
class FingerprintResult:
    """Per-file outcome of a batch fingerprint run."""

    source_file: str
    value: Fingerprint | None
    error: str | None = None


def hash_text(text: str) -> str:
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


def hash_file_header(path: str | Path, header_bytes: int = HEADER_BYTES) -> str:
    """Hash the first ``header_bytes`` of a file, or all of it when smaller."""
    with open(path, "rb") as f:
        data = f.read(header_bytes)
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


class Fingerprinter:
    """Derives a location-independent fingerprint for media files.

    Photos are fingerprinted from their embedded tags (exiftool), videos from
    container and stream metadata (ffprobe). Whenever metadata cannot be read,
    or the file type is unknown, the fingerprint falls back to a hash of the
    leading bytes of the file so every readable file gets one.
    """

    def __init__(
        self,
        exiftool: ExiftoolRunner | None = None,
        ffprobe: FfprobeRunner | None = None,
        header_bytes: int = HEADER_BYTES,
    ) -> None:
        self.exiftool = exiftool or ExiftoolRunner()
        self.ffprobe = ffprobe or FfprobeRunner()
        self.header_bytes = header_bytes

    def fingerprint(self, path: str | Path) -> Fingerprint:
        """Fingerprint a single file. Raises OSError if the file is unreadable."""
        path = str(path)
        media_type = media_type_for_path(path)
        if media_type is MediaType.PICTURE:
            return self._fingerprint_photo(self.exiftool.extract_single(path))
        if media_type is MediaType.VIDEO:
            return self._fingerprint_video(path)
        return self._fallback(path)

    def fingerprint_batch(self, paths: list[str]) -> list[FingerprintResult]:
        """Fingerprint many files, reading photo metadata in one exiftool call."""
        photos = [p for p in paths if media_type_for_path(p) is MediaType.PICTURE]
        photo_results = {r.source_file: r for r in self.exiftool.extract_batch(photos)}

        results = []
        for path in paths:
            try:
                if path in photo_results:
                    value = self._fingerprint_photo(photo_results[path])
                else:
                    value = self.fingerprint(path)
            except OSError as e:
                results.append(FingerprintResult(path, None, str(e)))
                continue
            results.append(FingerprintResult(path, value))
        return results

    def _fingerprint_photo(self, result: ExiftoolResult) -> Fingerprint:
        path = result.source_file
        if result.error:
            logger.debug("exiftool failed on %s: %s", path, result.error)
            return self._fallback(path)

        metadata = result.metadata
        lines = photo_metadata_lines(metadata)
        if not lines:
            return self._fallback(path)

        date_str = get_first_value(metadata, "EXIF:DateTimeOriginal", "EXIF:ModifyDate")
        return Fingerprint(
            fingerprint=hash_text("\n".join(lines) + "\n"),
            timestamp=parse_exif_date(date_str),
            source="exif",
        )

    def _fingerprint_video(self, path: str) -> Fingerprint:
        probe = self.ffprobe.probe(path)
        if probe.error:
            logger.debug("ffprobe failed on %s: %s", path, probe.error)
            return self._fallback(path)

        lines = video_metadata_lines(probe)
        return Fingerprint(
            fingerprint=hash_text("\n".join(lines) + "\n"),
            timestamp=video_creation_time(probe),
            source="ffprobe",
        )

    def _fallback(self, path: str) -> Fingerprint:
        return Fingerprint(
            fingerprint=hash_file_header(path, self.header_bytes),
            timestamp=None,
            source="bytes",
        )
