"""Scanner module for filesystem traversal."""

from .filesystem import FileInfo, parse_filename, relative_posix_path, walk_media_files
from .progress import ProgressReporter, ScanStats
from .scanner import Scanner

__all__ = [
    "Scanner",
    "ScanStats",
    "FileInfo",
    "parse_filename",
    "relative_posix_path",
    "walk_media_files",
    "ProgressReporter",
]
