"""Exiftool wrapper for photo metadata extraction and file date writing."""

import json
import shutil
import subprocess
import time
from dataclasses import dataclass


class ExiftoolNotFoundError(Exception):
    """Raised when exiftool is not installed."""


class ExiftoolError(Exception):
    """Raised when exiftool fails to write to a file."""


@dataclass
class ExiftoolResult:
    """Result from exiftool extraction."""

    source_file: str
    metadata: dict
    error: str | None = None


class ExiftoolRunner:
    """Wrapper for exiftool command execution."""

    EXIFTOOL_ARGS = ["-json", "-struct", "-G0", "-n"]

    def __init__(self) -> None:
        self.version = self._check_exiftool()

    def _check_exiftool(self) -> str:
        path = shutil.which("exiftool")
        if not path:
            raise ExiftoolNotFoundError(
                "exiftool is required but not found.\n"
                "Please install exiftool: https://exiftool.org/install.html"
            )

        result = subprocess.run(
            ["exiftool", "-ver"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    def extract_batch(self, file_paths: list[str]) -> list[ExiftoolResult]:
        """Extract metadata from multiple files in a single exiftool call."""
        if not file_paths:
            return []

        cmd = ["exiftool"] + self.EXIFTOOL_ARGS + file_paths

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return [ExiftoolResult(fp, {}, str(e)) for fp in file_paths]

        if result.returncode not in (0, 1):
            return [ExiftoolResult(fp, {}, result.stderr) for fp in file_paths]

        try:
            data_list = json.loads(result.stdout) if result.stdout.strip() else []
        except json.JSONDecodeError as e:
            return [ExiftoolResult(fp, {}, f"JSON parse error: {e}") for fp in file_paths]

        results = []
        data_by_source = {d.get("SourceFile", ""): d for d in data_list}

        for fp in file_paths:
            data = data_by_source.get(fp)
            if data is None:
                results.append(ExiftoolResult(fp, {}, "No output from exiftool"))
            elif "ExifTool:Error" in data:
                results.append(ExiftoolResult(fp, data, str(data["ExifTool:Error"])))
            else:
                results.append(ExiftoolResult(fp, data))

        return results

    def extract_single(self, file_path: str) -> ExiftoolResult:
        """Extract metadata from a single file."""
        results = self.extract_batch([file_path])
        return results[0] if results else ExiftoolResult(file_path, {}, "No result")

    def write_file_dates(self, file_path: str, timestamp: int) -> None:
        """Set the filesystem creation and modification dates of a file."""
        stamp = time.strftime("%Y:%m:%d %H:%M:%S+00:00", time.gmtime(timestamp))
        cmd = [
            "exiftool",
            "-overwrite_original",
            "-q",
            f"-FileCreateDate={stamp}",
            f"-FileModifyDate={stamp}",
            file_path,
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        if result.returncode != 0:
            raise ExiftoolError(
                f"exiftool could not set dates on {file_path}: {result.stderr.strip()}"
            )
