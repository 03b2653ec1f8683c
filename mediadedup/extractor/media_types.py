"""Extension to media type lookup."""

from pathlib import Path

from mediadedup.database.models import MediaType

PHOTO_EXTENSIONS = {
    "jpg",
    "jpeg",
    "png",
    "gif",
    "bmp",
    "tiff",
    "tif",
    "heic",
    "heif",
    "webp",
}

VIDEO_EXTENSIONS = {
    "mp4",
    "mov",
    "avi",
    "mkv",
    "wmv",
    "flv",
    "m4v",
    "mpg",
    "mpeg",
    "3gp",
    "webm",
}

SUPPORTED_EXTENSIONS = PHOTO_EXTENSIONS | VIDEO_EXTENSIONS


def _normalize(extension: str | None) -> str:
    return (extension or "").lstrip(".").lower()


def is_supported_extension(extension: str | None) -> bool:
    return _normalize(extension) in SUPPORTED_EXTENSIONS


def media_type_for_extension(extension: str | None) -> MediaType | None:
    """Return the media type for an extension, or None when unsupported."""
    ext = _normalize(extension)
    if ext in PHOTO_EXTENSIONS:
        return MediaType.PICTURE
    if ext in VIDEO_EXTENSIONS:
        return MediaType.VIDEO
    return None


def media_type_for_path(path: str | Path) -> MediaType | None:
    return media_type_for_extension(Path(path).suffix)
