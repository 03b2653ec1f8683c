"""Metadata field parsing utilities."""

import json
import re
from datetime import datetime, timezone
from typing import Any

from mediadedup.extractor.ffprobe import FfprobeResult

# Groups describing the file on disk (name, size, dates, permissions) rather
# than the media content, plus exiftool's own bookkeeping.
EXCLUDED_GROUPS = {
    "File",
    "System",
    "ExifTool",
}

EXCLUDED_KEYS = {
    "SourceFile",
}

EXCLUDED_VIDEO_TAGS = {
    "filename",
    "file",
    "filepath",
    "file_path",
    "file_name",
}

_TZ_SUFFIX = re.compile(r"(Z|[+-]\d{2}:\d{2})$")

_EXIF_DATE_FORMATS = [
    "%Y:%m:%d %H:%M:%S",
    "%Y:%m:%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
]


def parse_exif_date(date_str: Any) -> int | None:
    """Parse an EXIF date string to a Unix timestamp.

    EXIF dates carry no zone; they are read as UTC, the same convention
    filename timestamps use, so the two remain comparable.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    date_str = date_str.strip()
    if not date_str or date_str.startswith("0000:00:00"):
        return None

    date_str_clean = _TZ_SUFFIX.sub("", date_str)

    for fmt in _EXIF_DATE_FORMATS:
        try:
            dt = datetime.strptime(date_str_clean, fmt)
        except ValueError:
            continue
        return int(dt.replace(tzinfo=timezone.utc).timestamp())

    return None


def parse_creation_time(value: Any) -> int | None:
    """Parse an ffprobe creation_time tag (ISO 8601) to a Unix timestamp."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def get_first_value(metadata: dict, *keys: str) -> Any:
    """Get first non-None value from metadata by keys."""
    for key in keys:
        if key in metadata and metadata[key] is not None:
            return metadata[key]
    return None


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return str(value)


def photo_metadata_lines(metadata: dict) -> list[str]:
    """Render exiftool output as ``group:tag=value`` lines.

    Keys keep exiftool's output order. Tags of the excluded groups are left
    out so copies of a photo under another name or path render identically.
    """
    lines = []
    for key, value in metadata.items():
        if key in EXCLUDED_KEYS:
            continue
        group, _, tag = key.partition(":")
        if not tag:
            group, tag = "", key
        if group in EXCLUDED_GROUPS:
            continue
        lines.append(f"{group}:{tag}={_format_value(value)}")
    return lines


def video_metadata_lines(probe: FfprobeResult) -> list[str]:
    """Render ffprobe output as duration, format, tag and video stream lines."""
    fmt = probe.format
    lines = [
        f"Duration={fmt.get('duration', '')}",
        f"Format={fmt.get('format_name', '')}",
    ]

    tags = fmt.get("tags") if isinstance(fmt.get("tags"), dict) else {}
    for key, value in tags.items():
        if key.lower() in EXCLUDED_VIDEO_TAGS:
            continue
        lines.append(f"{key}={value}")

    for stream in probe.video_streams:
        codec = stream.get("codec_name", "")
        width = stream.get("width", "")
        height = stream.get("height", "")
        rate = stream.get("avg_frame_rate") or stream.get("r_frame_rate", "")
        lines.append(f"VideoStream={codec},{width}x{height},{rate}")

    return lines


def video_creation_time(probe: FfprobeResult) -> int | None:
    tags = probe.format.get("tags") if isinstance(probe.format.get("tags"), dict) else {}
    value = get_first_value(tags, "creation_time", "CREATION_TIME")
    return parse_creation_time(value)
