"""Task operations and the filesystem mutations that apply them."""

import logging
import os
import re
import time
from collections.abc import Collection
from dataclasses import dataclass
from pathlib import Path
from typing import assert_never

from mediadedup.database import FileRecord, MediaType, TaskOperation
from mediadedup.extractor.exiftool import ExiftoolRunner

logger = logging.getLogger(__name__)

MEDIA_TYPE_PREFIXES = {
    MediaType.PICTURE: "IMG",
    MediaType.VIDEO: "VID",
}


class TaskDataError(Exception):
    """Raised when a stored task cannot be turned into an operation."""


@dataclass(frozen=True)
class AdjustOperation:
    """Retime the kept copy of a duplicate group and give it its canonical name."""

    new_timestamp: int


@dataclass(frozen=True)
class DeleteOperation:
    """Remove a redundant copy."""


Operation = AdjustOperation | DeleteOperation


def decode_operation(operation: str, new_timestamp: int | None) -> Operation:
    """Build the operation for a stored task row. Raises TaskDataError."""
    try:
        tag = TaskOperation(operation)
    except ValueError as e:
        raise TaskDataError(f"Unknown task operation: {operation!r}") from e

    match tag:
        case TaskOperation.ADJUST:
            if new_timestamp is None:
                raise TaskDataError("Adjust task has no timestamp")
            return AdjustOperation(new_timestamp)
        case TaskOperation.DELETE:
            return DeleteOperation()
        case _:
            assert_never(tag)


def canonical_prefix(record: FileRecord, timestamp: int) -> str:
    """Name prefix shared by every canonical name of a file: TYPE_YYYYMMDD_HHMMSS_FP_."""
    type_segment = MEDIA_TYPE_PREFIXES.get(record.media_type)
    if type_segment is None:
        raise TaskDataError(f"Unsupported media type: {record.media_type}")
    time_segment = time.strftime("%Y%m%d_%H%M%S", time.gmtime(timestamp))
    return f"{type_segment}_{time_segment}_{record.content_fingerprint.upper()}_"


def file_extension(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def is_canonical_name(name: str, prefix: str, extension: str) -> bool:
    return re.fullmatch(re.escape(prefix) + r"\d+" + re.escape(extension), name) is not None


def next_free_path(
    directory: Path, prefix: str, extension: str, taken_names: Collection[str] = ()
) -> Path:
    """First ``<prefix><n><extension>`` in ``directory`` not taken, counting from 1.

    A name is taken if a file exists under it or it is in ``taken_names``.
    """
    counter = 1
    while True:
        candidate = directory / f"{prefix}{counter}{extension}"
        if candidate.name not in taken_names and not candidate.exists():
            return candidate
        counter += 1


def find_applied_adjust(directory: Path, prefix: str, extension: str, size: int) -> Path | None:
    """Find a file an earlier, uncommitted run already renamed to its canonical name."""
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except FileNotFoundError:
        return None

    for entry in entries:
        if not is_canonical_name(entry.name, prefix, extension):
            continue
        if entry.is_file(follow_symlinks=False) and entry.stat().st_size == size:
            return Path(entry.path)
    return None


def apply_file_times(path: Path, timestamp: int, exiftool: ExiftoolRunner | None = None) -> None:
    """Set creation (where exiftool can write it) and modification times of a file."""
    if exiftool is not None:
        exiftool.write_file_dates(str(path), timestamp)
    os.utime(path, (timestamp, timestamp))


def adjust_file(
    directory: Path,
    record: FileRecord,
    timestamp: int,
    exiftool: ExiftoolRunner | None = None,
    taken_names: Collection[str] = (),
) -> Path:
    """Retime and rename a file to its canonical name; return its new path.

    A file that already carries a canonical name for ``timestamp`` is only
    retimed. Names in ``taken_names`` are never chosen as the new name. If
    the file is gone but a same-sized file with the canonical prefix sits in
    its directory, an earlier run renamed it before its task was retired, and
    that file is returned instead.

    Raises:
        FileNotFoundError: Neither the file nor a renamed copy exists.
    """
    prefix = canonical_prefix(record, timestamp)
    extension = file_extension(record.name)
    source = directory / record.name

    if not source.is_file():
        applied = find_applied_adjust(directory, prefix, extension, record.size)
        if applied is None:
            raise FileNotFoundError(f"File not found: {source}")
        logger.debug("%s was already renamed to %s", source, applied.name)
        apply_file_times(applied, timestamp, exiftool)
        return applied

    apply_file_times(source, timestamp, exiftool)

    if is_canonical_name(record.name, prefix, extension):
        return source

    target = next_free_path(directory, prefix, extension, taken_names)
    source.rename(target)
    return target


def delete_file(path: Path) -> bool:
    """Delete a file; return False if it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
