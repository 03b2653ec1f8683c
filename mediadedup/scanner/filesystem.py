"""Filesystem traversal utilities for discovering media files."""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from mediadedup.database.models import MediaType, ParsedFilename
from mediadedup.extractor.media_types import media_type_for_extension

logger = logging.getLogger(__name__)

# (directory relative to the container root, file name)
FileKey = tuple[str, str]


@dataclass
class FileInfo:
    path: Path
    directory_path: str
    parsed_filename: ParsedFilename
    media_type: MediaType
    size: int
    stat_result: os.stat_result

    @property
    def key(self) -> FileKey:
        return (self.directory_path, self.parsed_filename.full)


def parse_filename(filename: str) -> ParsedFilename:
    if not filename:
        return ParsedFilename(full=filename, base=filename, extension=None)

    dot_index = filename.rfind(".")

    if dot_index <= 0 or dot_index == len(filename) - 1:
        return ParsedFilename(full=filename, base=filename.rstrip("."), extension=None)

    extension = filename[dot_index + 1 :].lower()
    base = filename[:dot_index]

    return ParsedFilename(full=filename, base=base, extension=extension)


def relative_posix_path(path: Path, root: Path) -> str:
    """Path relative to ``root`` with forward slashes, '' for the root itself."""
    try:
        relative = path.relative_to(root)
    except ValueError:
        return PurePosixPath(path).as_posix()
    posix = PurePosixPath(relative).as_posix()
    return "" if posix == "." else posix


def walk_media_files(
    scan_root: Path,
    container_root: Path,
    skip: set[FileKey] | None = None,
    max_path_length: int = 4096,
) -> Iterator[FileInfo]:
    """Yield supported media files below ``scan_root`` in sorted order.

    Directory paths are reported relative to ``container_root``. Files whose
    key is in ``skip`` are not yielded. Subdirectories that deny access are
    logged and skipped; any other error listing a directory, and any error on
    ``scan_root`` itself, propagates.
    """
    yield from _walk_recursive(
        scan_root, container_root, skip or set(), max_path_length, is_root=True
    )


def _walk_recursive(
    current_dir: Path,
    container_root: Path,
    skip: set[FileKey],
    max_path_length: int,
    is_root: bool = False,
) -> Iterator[FileInfo]:
    entries = _list_entries(current_dir, is_root)
    directory_path = relative_posix_path(current_dir, container_root)

    subdirs: list[Path] = []
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
                continue
        except PermissionError:
            logger.warning("Permission denied: %s", entry.path)
            continue

        if (directory_path, entry.name) in skip:
            logger.debug("Skipping already processed file: %s", entry.path)
            continue

        file_info = _process_entry(entry, directory_path, max_path_length)
        if file_info:
            yield file_info

    for subdir in subdirs:
        yield from _walk_recursive(subdir, container_root, skip, max_path_length)


def _list_entries(directory: Path, is_root: bool = False) -> list[os.DirEntry]:
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)
    except PermissionError:
        if is_root:
            raise
        logger.warning("Permission denied scanning directory: %s", directory)
        return []


def _process_entry(
    entry: os.DirEntry,
    directory_path: str,
    max_path_length: int,
) -> FileInfo | None:
    parsed = parse_filename(entry.name)
    media_type = media_type_for_extension(parsed.extension)
    if media_type is None:
        return None

    try:
        if entry.is_symlink():
            return None

        if not entry.is_file(follow_symlinks=False):
            return None

        if len(entry.path) > max_path_length:
            logger.warning("Path too long, skipping: %s", entry.path)
            return None

        stat_result = entry.stat(follow_symlinks=False)

        return FileInfo(
            path=Path(entry.path),
            directory_path=directory_path,
            parsed_filename=parsed,
            media_type=media_type,
            size=stat_result.st_size,
            stat_result=stat_result,
        )

    except PermissionError:
        logger.warning("Permission denied: %s", entry.path)
        return None
    except FileNotFoundError:
        logger.warning("File disappeared during scan: %s", entry.path)
        return None
    except OSError as e:
        logger.error("Error processing %s: %s", entry.path, e)
        return None
