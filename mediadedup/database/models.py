"""Data models for the database."""

import sqlite3
from dataclasses import dataclass
from enum import Enum


class ScanStatus(Enum):
    """Status of a scan session."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class MediaType(Enum):
    """Category of a tracked media file."""

    PICTURE = "picture"
    VIDEO = "video"


class TaskOperation(Enum):
    """Stored tag of a pending task."""

    ADJUST = "adjust"
    DELETE = "delete"


@dataclass(frozen=True)
class Container:
    """Represents a physical partition record."""

    id: int
    partition_id: str | None
    disk_id: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Container":
        return cls(id=row["id"], partition_id=row["partition_id"], disk_id=row["disk_id"])


@dataclass
class ScanSession:
    """Represents a scan session record."""

    id: int
    container_id: int
    root_path: str
    status: ScanStatus
    started_at: int
    completed_at: int | None
    files_processed: int
    files_total: int | None
    error_message: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ScanSession":
        return cls(
            id=row["id"],
            container_id=row["container_id"],
            root_path=row["root_path"],
            status=ScanStatus(row["status"]),
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            files_processed=row["files_processed"],
            files_total=row["files_total"],
            error_message=row["error_message"],
        )


@dataclass
class FileRecord:
    """Represents a tracked media file record."""

    id: int | None
    container_id: int
    path: str
    name: str
    media_type: MediaType
    size: int
    metadata_timestamp: int | None
    filesystem_creation_time: int | None
    filesystem_modified_time: int | None
    filename_timestamp: int | None
    content_fingerprint: str
    last_scan_session_id: int | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "FileRecord":
        return cls(
            id=row["id"],
            container_id=row["container_id"],
            path=row["path"],
            name=row["name"],
            media_type=MediaType(row["media_type"]),
            size=row["size"],
            metadata_timestamp=row["metadata_timestamp"],
            filesystem_creation_time=row["filesystem_creation_time"],
            filesystem_modified_time=row["filesystem_modified_time"],
            filename_timestamp=row["filename_timestamp"],
            content_fingerprint=row["content_fingerprint"],
            last_scan_session_id=row["last_scan_session_id"],
        )

    @property
    def timestamps(self) -> list[int]:
        """All known timestamps of the file, absent values dropped."""
        candidates = (
            self.metadata_timestamp,
            self.filename_timestamp,
            self.filesystem_creation_time,
            self.filesystem_modified_time,
        )
        return [value for value in candidates if value is not None]


@dataclass
class ParsedFilename:
    """Parsed components of a filename."""

    full: str
    base: str
    extension: str | None
