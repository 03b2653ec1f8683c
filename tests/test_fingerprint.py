"""Tests for metadata parsing and content fingerprinting."""

# pylint: disable=redefined-outer-name

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from mediadedup.extractor.exiftool import ExiftoolError, ExiftoolNotFoundError, ExiftoolRunner
from mediadedup.extractor.ffprobe import FfprobeNotFoundError, FfprobeResult, FfprobeRunner
from mediadedup.extractor.fingerprint import Fingerprinter, hash_file_header
from mediadedup.extractor.parser import (
    get_first_value,
    parse_creation_time,
    parse_exif_date,
    photo_metadata_lines,
    video_creation_time,
    video_metadata_lines,
)


class TestParseExifDate:
    """Tests for parse_exif_date function."""

    def test_standard_format(self) -> None:
        assert parse_exif_date("2023:01:15 14:30:52") == 1673793052

    def test_with_timezone(self) -> None:
        assert parse_exif_date("2023:01:15 14:30:52+02:00") == 1673793052

    def test_subseconds(self) -> None:
        assert parse_exif_date("2023:01:15 14:30:52.25") == 1673793052

    def test_zero_date(self) -> None:
        assert parse_exif_date("0000:00:00 00:00:00") is None

    def test_none_and_non_string(self) -> None:
        assert parse_exif_date(None) is None
        assert parse_exif_date(20230115) is None


class TestParseCreationTime:
    """Tests for parse_creation_time function."""

    def test_utc_suffix(self) -> None:
        assert parse_creation_time("2023-01-15T14:30:52.000000Z") == 1673793052

    def test_naive_is_utc(self) -> None:
        assert parse_creation_time("2023-01-15T14:30:52") == 1673793052

    def test_garbage(self) -> None:
        assert parse_creation_time("yesterday") is None


class TestGetFirstValue:
    """Tests for get_first_value function."""

    def test_returns_first_existing(self) -> None:
        metadata = {"EXIF:ModifyDate": "b"}
        assert get_first_value(metadata, "EXIF:DateTimeOriginal", "EXIF:ModifyDate") == "b"

    def test_returns_none_if_all_missing(self) -> None:
        assert get_first_value({}, "a", "b") is None


class TestPhotoMetadataLines:
    """Tests for photo_metadata_lines function."""

    def test_excludes_file_groups(self) -> None:
        metadata = {
            "SourceFile": "/mnt/a/photo.jpg",
            "ExifTool:ExifToolVersion": 12.76,
            "File:FileName": "photo.jpg",
            "File:Directory": "/mnt/a",
            "System:FileModifyDate": "2024:01:01 00:00:00",
            "EXIF:Make": "Canon",
        }
        assert photo_metadata_lines(metadata) == ["EXIF:Make=Canon"]

    def test_structured_values_are_stable(self) -> None:
        first = photo_metadata_lines({"XMP:Subject": {"b": 1, "a": 2}})
        second = photo_metadata_lines({"XMP:Subject": {"a": 2, "b": 1}})
        assert first == second == ['XMP:Subject={"a":2,"b":1}']


class TestVideoMetadataLines:
    """Tests for video metadata rendering."""

    def test_renders_format_tags_and_video_streams(self) -> None:
        probe = FfprobeResult(
            "/mnt/a/clip.mp4",
            format={
                "duration": "12.5",
                "format_name": "mov,mp4",
                "tags": {"creation_time": "2023-01-15T14:30:52Z", "FileName": "clip.mp4"},
            },
            streams=[
                {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080,
                 "avg_frame_rate": "30/1"},
                {"codec_type": "audio", "codec_name": "aac"},
            ],
        )

        assert video_metadata_lines(probe) == [
            "Duration=12.5",
            "Format=mov,mp4",
            "creation_time=2023-01-15T14:30:52Z",
            "VideoStream=h264,1920x1080,30/1",
        ]
        assert video_creation_time(probe) == 1673793052


class TestFingerprinter:
    """Tests for Fingerprinter with fake external tools."""

    def test_photo_copies_share_fingerprint(self, tmp_path: Path, fingerprinter, make_photo):
        first = make_photo(tmp_path / "a" / "IMG_0001.jpg")
        second = make_photo(tmp_path / "b" / "copy of photo.jpg")

        fp1 = fingerprinter.fingerprint(first)
        fp2 = fingerprinter.fingerprint(second)

        assert fp1.fingerprint == fp2.fingerprint
        assert fp1.source == "exif"
        assert fp1.timestamp == 1673793052

    def test_different_tags_differ(self, tmp_path: Path, fingerprinter, make_photo):
        first = make_photo(tmp_path / "a.jpg")
        second = make_photo(tmp_path / "b.jpg", **{"EXIF:Model": "EOS R5"})

        assert fingerprinter.fingerprint(first) != fingerprinter.fingerprint(second)

    def test_photo_falls_back_to_header_hash(self, tmp_path: Path, fingerprinter):
        photo = tmp_path / "broken.jpg"
        photo.write_bytes(b"\xff\xd8\xff\xe0not really json")

        result = fingerprinter.fingerprint(photo)

        assert result.source == "bytes"
        assert result.timestamp is None
        assert result.fingerprint == hash_file_header(photo)

    def test_video_uses_probe(self, tmp_path: Path, fingerprinter, make_video):
        first = make_video(tmp_path / "a" / "clip.mp4")
        second = make_video(tmp_path / "b" / "renamed.mp4")

        fp1 = fingerprinter.fingerprint(first)

        assert fp1.source == "ffprobe"
        assert fp1.timestamp == 1656957600
        assert fp1.fingerprint == fingerprinter.fingerprint(second).fingerprint

    def test_video_probe_failure_falls_back(self, tmp_path: Path, fingerprinter):
        clip = tmp_path / "clip.mov"
        clip.write_bytes(b"\x00\x00\x00\x18ftypqt  ")

        assert fingerprinter.fingerprint(clip).source == "bytes"

    def test_header_hash_reads_prefix_only(self, tmp_path: Path):
        first = tmp_path / "first.bin"
        second = tmp_path / "second.bin"
        first.write_bytes(b"a" * 16 + b"tail-1")
        second.write_bytes(b"a" * 16 + b"tail-2")

        assert hash_file_header(first, 16) == hash_file_header(second, 16)
        assert hash_file_header(first) != hash_file_header(second)

    def test_batch_uses_one_exiftool_call(
        self, tmp_path: Path, fingerprinter, exiftool, make_photo, make_video
    ):
        paths = [
            str(make_photo(tmp_path / "a.jpg")),
            str(make_photo(tmp_path / "b.jpg")),
            str(make_video(tmp_path / "c.mp4")),
        ]

        results = fingerprinter.fingerprint_batch(paths)

        assert [r.source_file for r in results] == paths
        assert all(r.error is None for r in results)
        assert exiftool.calls == [paths[:2]]

    def test_batch_reports_unreadable_file(self, tmp_path: Path, fingerprinter):
        missing = str(tmp_path / "gone.mp4")

        (result,) = fingerprinter.fingerprint_batch([missing])

        assert result.value is None
        assert result.error


class TestExiftoolRunner:
    """Tests for ExiftoolRunner."""

    @patch("shutil.which")
    def test_raises_if_not_found(self, mock_which: Mock) -> None:
        mock_which.return_value = None
        with pytest.raises(ExiftoolNotFoundError):
            ExiftoolRunner()

    @patch.object(ExiftoolRunner, "_check_exiftool", return_value="12.76")
    @patch("subprocess.run")
    def test_extract_batch_marks_errors(self, mock_run: Mock, _: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[],
            returncode=1,
            stdout='[{"SourceFile": "a.jpg", "EXIF:Make": "Canon"},'
            ' {"SourceFile": "b.jpg", "ExifTool:Error": "File format error"}]',
            stderr="",
        )

        results = ExiftoolRunner().extract_batch(["a.jpg", "b.jpg", "c.jpg"])

        assert results[0].error is None
        assert results[0].metadata["EXIF:Make"] == "Canon"
        assert results[1].error == "File format error"
        assert results[2].error == "No output from exiftool"

    @patch.object(ExiftoolRunner, "_check_exiftool", return_value="12.76")
    @patch("subprocess.run")
    def test_write_file_dates(self, mock_run: Mock, _: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)

        ExiftoolRunner().write_file_dates("a.jpg", 1673793052)

        cmd = mock_run.call_args.args[0]
        assert "-FileCreateDate=2023:01:15 14:30:52+00:00" in cmd
        assert "-FileModifyDate=2023:01:15 14:30:52+00:00" in cmd

    @patch.object(ExiftoolRunner, "_check_exiftool", return_value="12.76")
    @patch("subprocess.run")
    def test_write_file_dates_failure(self, mock_run: Mock, _: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stderr="Error: File not found"
        )

        with pytest.raises(ExiftoolError):
            ExiftoolRunner().write_file_dates("a.jpg", 1673793052)


class TestFfprobeRunner:
    """Tests for FfprobeRunner."""

    @patch("shutil.which")
    def test_raises_if_not_found(self, mock_which: Mock) -> None:
        mock_which.return_value = None
        with pytest.raises(FfprobeNotFoundError):
            FfprobeRunner()

    @patch.object(FfprobeRunner, "_check_ffprobe", return_value="/usr/bin/ffprobe")
    @patch("subprocess.run")
    def test_nonzero_exit_is_error(self, mock_run: Mock, _: Mock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="Invalid data found"
        )

        result = FfprobeRunner().probe("clip.mp4")

        assert result.error == "Invalid data found"

    @patch.object(FfprobeRunner, "_check_ffprobe", return_value="/usr/bin/ffprobe")
    @patch("subprocess.run")
    def test_timeout_is_error(self, mock_run: Mock, _: Mock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="ffprobe", timeout=1)

        assert FfprobeRunner().probe("clip.mp4").error == "ffprobe timeout"
