"""Tests for scanner module."""

# pylint: disable=redefined-outer-name

import errno
import os
import shutil
from pathlib import Path

import pytest

from mediadedup.containers import DeviceInfoError
from mediadedup.database import Database
from mediadedup.extractor.fingerprint import FingerprintResult
from mediadedup.scanner import Scanner


def _files(db: Database) -> dict[tuple[str, str], dict]:
    rows = db.conn.execute("SELECT * FROM files ORDER BY path, name").fetchall()
    return {(row["path"], row["name"]): dict(row) for row in rows}


def _sessions(db: Database) -> list[dict]:
    rows = db.conn.execute("SELECT * FROM scan_sessions ORDER BY id").fetchall()
    return [dict(row) for row in rows]


@pytest.fixture
def library(drive: Path, make_photo, make_video) -> list[Path]:
    """Five media files and one unsupported file on the drive."""
    files = [
        make_photo(drive / "DCIM" / "IMG_20230115_143052.jpg"),
        make_photo(drive / "DCIM" / "IMG_20230116_080000.jpg", **{"EXIF:Model": "EOS R5"}),
        make_video(drive / "DCIM" / "clip.mp4"),
        make_photo(drive / "Backup" / "holiday.jpg"),
        make_photo(drive / "Backup" / "old" / "scan.png", **{"EXIF:Make": "Epson"}),
    ]
    (drive / "DCIM" / "notes.txt").write_text("not media")
    return files


class TestScanner:
    """Tests for Scanner class."""

    def test_scan_empty_directory(self, drive: Path, scanner: Scanner, temp_db: Database):
        stats = scanner.scan(drive)

        assert stats.files_processed == 0
        (session,) = _sessions(temp_db)
        assert session["status"] == "completed"
        assert session["root_path"] == ""

    def test_scan_stores_file_records(
        self, drive: Path, library, scanner: Scanner, temp_db: Database
    ):
        stats = scanner.scan(drive)

        assert stats.files_processed == 5
        assert stats.files_added == 5
        assert stats.total_bytes == sum(p.stat().st_size for p in library)

        records = _files(temp_db)
        assert set(records) == {
            ("Backup", "holiday.jpg"),
            ("Backup/old", "scan.png"),
            ("DCIM", "IMG_20230115_143052.jpg"),
            ("DCIM", "IMG_20230116_080000.jpg"),
            ("DCIM", "clip.mp4"),
        }

        photo = records[("DCIM", "IMG_20230115_143052.jpg")]
        assert photo["media_type"] == "picture"
        assert photo["metadata_timestamp"] == 1673793052
        assert photo["filename_timestamp"] == 1673793052
        assert photo["filesystem_modified_time"] == int(library[0].stat().st_mtime)
        assert photo["last_scan_session_id"] == stats.session_id
        assert photo["content_fingerprint"]

        video = records[("DCIM", "clip.mp4")]
        assert video["media_type"] == "video"
        assert video["metadata_timestamp"] == 1656957600
        assert video["filename_timestamp"] is None

        assert (
            records[("Backup", "holiday.jpg")]["content_fingerprint"]
            == photo["content_fingerprint"]
        )

    def test_registers_container_once(
        self, drive: Path, library, scanner: Scanner, temp_db: Database, identity
    ):
        scanner.scan(drive)
        scanner.scan(drive / "DCIM")

        rows = temp_db.conn.execute("SELECT * FROM containers").fetchall()
        assert len(rows) == 1
        assert rows[0]["partition_id"] == identity.partition_id
        assert rows[0]["disk_id"] == identity.disk_id

    def test_rescan_of_unchanged_directory(
        self, drive: Path, library, scanner: Scanner, temp_db: Database
    ):
        scanner.scan(drive)
        before = _files(temp_db)

        stats = scanner.scan(drive)

        assert stats.files_added == 0
        assert stats.files_updated == 0
        assert stats.files_removed == 0
        assert stats.files_unchanged == 5
        assert stats.files_processed == 5

        sessions = _sessions(temp_db)
        assert [s["status"] for s in sessions] == ["completed", "completed"]
        assert sessions[1]["files_processed"] == 5

        after = _files(temp_db)
        assert set(after) == set(before)
        for key, row in after.items():
            assert row["id"] == before[key]["id"]
            assert row["last_scan_session_id"] == sessions[1]["id"]

    def test_rescan_detects_changed_file(
        self, drive: Path, library, scanner: Scanner, make_photo
    ):
        scanner.scan(drive)
        make_photo(library[0], **{"EXIF:Model": "EOS 6D"})

        stats = scanner.scan(drive)

        assert stats.files_updated == 1
        assert stats.files_unchanged == 4

    def test_removes_records_of_deleted_files(
        self, drive: Path, library, scanner: Scanner, temp_db: Database
    ):
        scanner.scan(drive)
        library[2].unlink()

        stats = scanner.scan(drive)

        assert stats.files_removed == 1
        assert len(_files(temp_db)) == 4
        assert ("DCIM", "clip.mp4") not in _files(temp_db)

    def test_subdirectory_scan_leaves_other_records(
        self, drive: Path, library, scanner: Scanner, temp_db: Database, make_photo
    ):
        make_photo(drive / "DCIM2" / "other.jpg")
        scanner.scan(drive)
        shutil.rmtree(drive / "Backup")
        (drive / "DCIM2" / "other.jpg").unlink()
        library[2].unlink()

        stats = scanner.scan(drive / "DCIM")

        assert stats.files_removed == 1
        records = _files(temp_db)
        assert ("Backup", "holiday.jpg") in records
        assert ("DCIM2", "other.jpg") in records
        assert _sessions(temp_db)[-1]["root_path"] == "DCIM"

    def test_resumes_interrupted_scan(
        self,
        drive: Path,
        library,
        temp_db: Database,
        resolver,
        fingerprinter,
        monkeypatch,
    ):
        original = fingerprinter.fingerprint_batch
        calls = []

        def interrupting(paths):
            calls.append(paths)
            if len(calls) == 2:
                raise KeyboardInterrupt
            return original(paths)

        monkeypatch.setattr(fingerprinter, "fingerprint_batch", interrupting)
        scanner = Scanner(temp_db, resolver, fingerprinter, batch_size=2)
        with pytest.raises(KeyboardInterrupt):
            scanner.scan(drive)

        (session,) = _sessions(temp_db)
        assert session["status"] == "in_progress"
        assert session["files_processed"] == 2
        assert session["files_total"] == 5
        assert len(_files(temp_db)) == 2

        monkeypatch.setattr(fingerprinter, "fingerprint_batch", original)
        prompted = []
        stats = scanner.scan(drive, confirm_resume=lambda s: prompted.append(s.id) or True)

        assert prompted == [session["id"]]
        assert stats.resumed
        assert stats.session_id == session["id"]
        assert stats.files_skipped == 2
        assert stats.files_discovered == 3
        assert stats.files_added == 3
        assert stats.files_processed == 5
        assert stats.files_total == 5
        assert stats.files_removed == 0

        (session,) = _sessions(temp_db)
        assert session["status"] == "completed"
        assert len(_files(temp_db)) == 5

    def test_declined_resume_restarts(
        self, drive: Path, library, scanner: Scanner, temp_db: Database
    ):
        session_id = self._stale_session(scanner, drive)

        stats = scanner.scan(drive, confirm_resume=lambda _: False)

        assert not stats.resumed
        assert stats.session_id != session_id
        assert stats.files_processed == 5
        stale, fresh = _sessions(temp_db)
        assert stale["status"] == "failed"
        assert stale["error_message"]
        assert fresh["status"] == "completed"

    def test_force_restart_skips_prompt(
        self, drive: Path, library, scanner: Scanner, temp_db: Database
    ):
        self._stale_session(scanner, drive)

        def prompt(_):
            raise AssertionError("should not be asked")

        stats = scanner.scan(drive, force_restart=True, confirm_resume=prompt)

        assert not stats.resumed
        assert [s["status"] for s in _sessions(temp_db)] == ["failed", "completed"]

    def test_unhandled_error_fails_session(
        self, drive: Path, library, scanner: Scanner, temp_db: Database, monkeypatch
    ):
        def broken(paths):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(scanner.fingerprinter, "fingerprint_batch", broken)

        with pytest.raises(RuntimeError):
            scanner.scan(drive)

        (session,) = _sessions(temp_db)
        assert session["status"] == "failed"
        assert session["error_message"] == "disk on fire"

    def test_traversal_error_fails_session_and_keeps_records(
        self, drive: Path, library, scanner: Scanner, temp_db: Database, monkeypatch
    ):
        scanner.scan(drive)
        real_scandir = os.scandir

        def scandir(path):
            if Path(path).name == "DCIM":
                raise OSError(errno.EIO, "Input/output error", str(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)

        with pytest.raises(OSError):
            scanner.scan(drive)

        assert len(_files(temp_db)) == 5
        assert ("DCIM", "clip.mp4") in _files(temp_db)
        assert [s["status"] for s in _sessions(temp_db)] == ["completed", "failed"]

    def test_single_file_failure_is_skipped(
        self, drive: Path, library, scanner: Scanner, temp_db: Database, monkeypatch
    ):
        scanner.scan(drive)
        original = scanner.fingerprinter.fingerprint_batch
        broken_path = str(library[3])

        def failing_one(paths):
            return [
                FingerprintResult(r.source_file, None, "I/O error")
                if r.source_file == broken_path
                else r
                for r in original(paths)
            ]

        monkeypatch.setattr(scanner.fingerprinter, "fingerprint_batch", failing_one)
        stats = scanner.scan(drive)

        assert stats.files_failed == 1
        assert stats.files_processed == 4
        assert stats.files_removed == 0
        assert ("Backup", "holiday.jpg") in _files(temp_db)
        assert _sessions(temp_db)[-1]["status"] == "completed"

    def test_rejects_file_as_root(self, library, scanner: Scanner):
        with pytest.raises(NotADirectoryError):
            scanner.scan(library[0])

    def test_unidentifiable_device(self, tmp_path: Path, scanner: Scanner, temp_db: Database):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()

        with pytest.raises(DeviceInfoError):
            scanner.scan(elsewhere)

        assert not _sessions(temp_db)

    @staticmethod
    def _stale_session(scanner: Scanner, drive: Path) -> int:
        location = scanner.resolver.locate(drive)
        container_id = scanner.get_or_create_container(location.identity)
        cursor = scanner.db.conn.execute(
            """
            INSERT INTO scan_sessions (container_id, root_path, status, started_at)
            VALUES (?, '', 'in_progress', 1700000000)
            """,
            (container_id,),
        )
        scanner.db.conn.commit()
        return cursor.lastrowid
