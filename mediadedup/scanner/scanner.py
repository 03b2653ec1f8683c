"""Main scanner implementation."""

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from mediadedup.containers import ContainerIdentity, ContainerResolver
from mediadedup.database import Database, FileRecord, ScanSession, ScanStatus
from mediadedup.extractor.fingerprint import Fingerprinter, FingerprintResult
from mediadedup.scanner.filesystem import (
    FileInfo,
    FileKey,
    relative_posix_path,
    walk_media_files,
)
from mediadedup.scanner.progress import ProgressReporter, ScanStats
from mediadedup.timestamps import parse_filename_timestamp

logger = logging.getLogger(__name__)

ResumePrompt = Callable[[ScanSession], bool]

_RECORD_COLUMNS = (
    "media_type",
    "size",
    "metadata_timestamp",
    "filesystem_creation_time",
    "filesystem_modified_time",
    "filename_timestamp",
    "content_fingerprint",
)


class Scanner:
    """Scans a directory tree and keeps the file inventory of its container current.

    A scan runs inside a session bound to ``(container, root path)``. Records
    are upserted in batches and stamped with the session id, so an
    interrupted session can be resumed by skipping files it already stamped.
    When every file is processed, records under the root that the session did
    not stamp are removed.
    """

    def __init__(
        self,
        db: Database,
        resolver: ContainerResolver | None = None,
        fingerprinter: Fingerprinter | None = None,
        batch_size: int = 100,
        progress_interval: int = 1000,
        max_path_length: int = 4096,
    ):
        self.db = db
        self.resolver = resolver or ContainerResolver()
        self.fingerprinter = fingerprinter or Fingerprinter()
        self.batch_size = max(1, batch_size)
        self.progress = ProgressReporter(interval=progress_interval)
        self.max_path_length = max_path_length

    def scan(
        self,
        source_root: Path,
        force_restart: bool = False,
        confirm_resume: ResumePrompt | None = None,
    ) -> ScanStats:
        """Scan ``source_root``, resuming an interrupted session when allowed.

        ``confirm_resume`` is asked whether to resume an in-progress session
        found for the same root; without it the session is resumed unless
        ``force_restart`` is set.
        """
        source_root = Path(source_root).resolve()
        if not source_root.is_dir():
            raise NotADirectoryError(f"Directory not found: {source_root}")

        location = self.resolver.locate(source_root)
        container_id = self.get_or_create_container(location.identity)
        root_path = relative_posix_path(source_root, location.mount_point)

        print(f"Starting scan of {source_root}")
        print(
            f"Container: partition={location.identity.partition_id or '-'}, "
            f"disk={location.identity.disk_id}"
        )

        session, resumed = self._start_session(
            container_id, root_path, force_restart, confirm_resume
        )
        stats = ScanStats(session_id=session.id, resumed=resumed)

        processed: set[FileKey] = set()
        if resumed:
            processed = self.get_processed_keys(session.id)
            stats.files_skipped = len(processed)
            stats.files_processed = len(processed)
            self.progress.report_resume(session.id, len(processed))

        try:
            self._scan_files(
                source_root, location.mount_point, container_id, session.id, processed, stats
            )
            stats.files_removed = self._remove_orphans(container_id, root_path, session.id)
            self._complete_session(session.id, stats)
        except KeyboardInterrupt:
            self.db.conn.commit()
            self.progress.report_interruption(stats)
            raise
        except Exception as e:
            self.db.conn.rollback()
            self._fail_session(session.id, str(e))
            raise

        self.progress.report_completion(stats)
        return stats

    def get_or_create_container(self, identity: ContainerIdentity) -> int:
        row = self.db.conn.execute(
            "SELECT id FROM containers WHERE partition_id IS ? AND disk_id = ?",
            (identity.partition_id, identity.disk_id),
        ).fetchone()
        if row:
            return row["id"]

        cursor = self.db.conn.execute(
            "INSERT INTO containers (partition_id, disk_id, created_at) VALUES (?, ?, ?)",
            (identity.partition_id, identity.disk_id, int(time.time())),
        )
        self.db.conn.commit()
        assert cursor.lastrowid is not None
        logger.info("Registered new container %s", identity)
        return cursor.lastrowid

    def find_incomplete_session(self, container_id: int, root_path: str) -> ScanSession | None:
        row = self.db.conn.execute(
            """
            SELECT * FROM scan_sessions
            WHERE container_id = ? AND root_path = ? AND status = ?
            ORDER BY started_at DESC, id DESC
            LIMIT 1
            """,
            (container_id, root_path, ScanStatus.IN_PROGRESS.value),
        ).fetchone()
        return ScanSession.from_row(row) if row else None

    def get_processed_keys(self, session_id: int) -> set[FileKey]:
        rows = self.db.conn.execute(
            "SELECT path, name FROM files WHERE last_scan_session_id = ?",
            (session_id,),
        ).fetchall()
        return {(row["path"], row["name"]) for row in rows}

    def _start_session(
        self,
        container_id: int,
        root_path: str,
        force_restart: bool,
        confirm_resume: ResumePrompt | None,
    ) -> tuple[ScanSession, bool]:
        existing = self.find_incomplete_session(container_id, root_path)
        if existing is not None:
            if not force_restart and (confirm_resume is None or confirm_resume(existing)):
                logger.debug("Resuming scan session %d", existing.id)
                return existing, True
            logger.debug("Restarting: marking scan session %d failed", existing.id)
            self._fail_session(existing.id, "Superseded by a restarted scan")

        return self._create_session(container_id, root_path), False

    def _create_session(self, container_id: int, root_path: str) -> ScanSession:
        now = int(time.time())
        cursor = self.db.conn.execute(
            """
            INSERT INTO scan_sessions (container_id, root_path, status, started_at)
            VALUES (?, ?, ?, ?)
            """,
            (container_id, root_path, ScanStatus.IN_PROGRESS.value, now),
        )
        self.db.conn.commit()
        assert cursor.lastrowid is not None
        return ScanSession(
            id=cursor.lastrowid,
            container_id=container_id,
            root_path=root_path,
            status=ScanStatus.IN_PROGRESS,
            started_at=now,
            completed_at=None,
            files_processed=0,
            files_total=None,
        )

    def _scan_files(
        self,
        source_root: Path,
        mount_point: Path,
        container_id: int,
        session_id: int,
        processed: set[FileKey],
        stats: ScanStats,
    ) -> None:
        files = list(walk_media_files(source_root, mount_point, processed, self.max_path_length))
        stats.files_discovered = len(files)
        self.progress.report_discovery(len(files))
        self._update_session_progress(session_id, stats)
        self.db.conn.commit()

        for start in range(0, len(files), self.batch_size):
            batch = files[start : start + self.batch_size]
            self._process_batch(container_id, session_id, batch, stats)
            self._update_session_progress(session_id, stats)
            self.db.conn.commit()
            self.progress.report_if_needed(stats, str(batch[-1].path))

    def _process_batch(
        self,
        container_id: int,
        session_id: int,
        batch: list[FileInfo],
        stats: ScanStats,
    ) -> None:
        results = {
            r.source_file: r
            for r in self.fingerprinter.fingerprint_batch([str(f.path) for f in batch])
        }

        for file_info in batch:
            try:
                record = _build_record(
                    container_id, session_id, file_info, results.get(str(file_info.path))
                )
            except (OSError, ValueError) as e:
                logger.warning("Failed to process %s: %s", file_info.path, e)
                stats.files_failed += 1
                self._keep_existing(container_id, session_id, file_info.key)
                continue

            outcome = self._upsert(record)
            if outcome == "added":
                stats.files_added += 1
            elif outcome == "updated":
                stats.files_updated += 1
            else:
                stats.files_unchanged += 1
            stats.files_processed += 1
            stats.total_bytes += record.size

    def _upsert(self, record: FileRecord) -> str:
        """Insert or update a record by its key; return 'added', 'updated' or 'unchanged'."""
        existing = self.db.conn.execute(
            "SELECT * FROM files WHERE container_id = ? AND path = ? AND name = ?",
            (record.container_id, record.path, record.name),
        ).fetchone()

        params = {
            "container_id": record.container_id,
            "path": record.path,
            "name": record.name,
            "media_type": record.media_type.value,
            "size": record.size,
            "metadata_timestamp": record.metadata_timestamp,
            "filesystem_creation_time": record.filesystem_creation_time,
            "filesystem_modified_time": record.filesystem_modified_time,
            "filename_timestamp": record.filename_timestamp,
            "content_fingerprint": record.content_fingerprint,
            "last_scan_session_id": record.last_scan_session_id,
        }
        self.db.conn.execute(
            """
            INSERT INTO files (
                container_id, path, name, media_type, size,
                metadata_timestamp, filesystem_creation_time, filesystem_modified_time,
                filename_timestamp, content_fingerprint, last_scan_session_id
            ) VALUES (
                :container_id, :path, :name, :media_type, :size,
                :metadata_timestamp, :filesystem_creation_time, :filesystem_modified_time,
                :filename_timestamp, :content_fingerprint, :last_scan_session_id
            )
            ON CONFLICT(container_id, path, name) DO UPDATE SET
                media_type = excluded.media_type,
                size = excluded.size,
                metadata_timestamp = excluded.metadata_timestamp,
                filesystem_creation_time = excluded.filesystem_creation_time,
                filesystem_modified_time = excluded.filesystem_modified_time,
                filename_timestamp = excluded.filename_timestamp,
                content_fingerprint = excluded.content_fingerprint,
                last_scan_session_id = excluded.last_scan_session_id
            """,
            params,
        )

        if existing is None:
            return "added"
        if any(existing[column] != params[column] for column in _RECORD_COLUMNS):
            return "updated"
        return "unchanged"

    def _keep_existing(self, container_id: int, session_id: int, key: FileKey) -> None:
        # The file is still on disk; keep its old record out of orphan cleanup.
        self.db.conn.execute(
            """
            UPDATE files SET last_scan_session_id = ?
            WHERE container_id = ? AND path = ? AND name = ?
            """,
            (session_id, container_id, key[0], key[1]),
        )

    def _remove_orphans(self, container_id: int, root_path: str, session_id: int) -> int:
        if root_path:
            cursor = self.db.conn.execute(
                """
                DELETE FROM files
                WHERE container_id = ?
                  AND (path = ? OR substr(path, 1, ?) = ?)
                  AND (last_scan_session_id IS NULL OR last_scan_session_id != ?)
                """,
                (container_id, root_path, len(root_path) + 1, root_path + "/", session_id),
            )
        else:
            cursor = self.db.conn.execute(
                """
                DELETE FROM files
                WHERE container_id = ?
                  AND (last_scan_session_id IS NULL OR last_scan_session_id != ?)
                """,
                (container_id, session_id),
            )
        if cursor.rowcount:
            logger.info("Removed %d records of files no longer on disk", cursor.rowcount)
        return cursor.rowcount

    def _update_session_progress(self, session_id: int, stats: ScanStats) -> None:
        self.db.conn.execute(
            "UPDATE scan_sessions SET files_processed = ?, files_total = ? WHERE id = ?",
            (stats.files_processed, stats.files_total, session_id),
        )

    def _complete_session(self, session_id: int, stats: ScanStats) -> None:
        self.db.conn.execute(
            """
            UPDATE scan_sessions
            SET status = ?, completed_at = ?, files_processed = ?, files_total = ?
            WHERE id = ?
            """,
            (
                ScanStatus.COMPLETED.value,
                int(time.time()),
                stats.files_processed,
                stats.files_total,
                session_id,
            ),
        )
        self.db.conn.commit()

    def _fail_session(self, session_id: int, error_message: str) -> None:
        self.db.conn.execute(
            """
            UPDATE scan_sessions
            SET status = ?, completed_at = ?, error_message = ?
            WHERE id = ?
            """,
            (ScanStatus.FAILED.value, int(time.time()), error_message, session_id),
        )
        self.db.conn.commit()


def _build_record(
    container_id: int,
    session_id: int,
    file_info: FileInfo,
    result: FingerprintResult | None,
) -> FileRecord:
    if result is None or result.value is None:
        reason = result.error if result else "no fingerprint result"
        raise OSError(f"Could not fingerprint file: {reason}")

    stat_result = file_info.stat_result
    return FileRecord(
        id=None,
        container_id=container_id,
        path=file_info.directory_path,
        name=file_info.parsed_filename.full,
        media_type=file_info.media_type,
        size=file_info.size,
        metadata_timestamp=result.value.timestamp,
        filesystem_creation_time=_get_birthtime(stat_result),
        filesystem_modified_time=int(stat_result.st_mtime),
        filename_timestamp=parse_filename_timestamp(file_info.parsed_filename.full),
        content_fingerprint=result.value.fingerprint,
        last_scan_session_id=session_id,
    )


def _get_birthtime(stat_result: os.stat_result) -> int | None:
    try:
        return int(stat_result.st_birthtime)
    except AttributeError:
        return None
