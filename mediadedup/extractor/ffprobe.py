"""Ffprobe wrapper for video container and stream metadata."""

import json
import shutil
import subprocess
from dataclasses import dataclass, field


class FfprobeNotFoundError(Exception):
    """Raised when ffprobe is not installed."""


@dataclass
class FfprobeResult:
    """Result from an ffprobe run."""

    source_file: str
    format: dict = field(default_factory=dict)
    streams: list[dict] = field(default_factory=list)
    error: str | None = None

    @property
    def video_streams(self) -> list[dict]:
        return [s for s in self.streams if str(s.get("codec_type", "")).lower() == "video"]


class FfprobeRunner:
    """Wrapper for ffprobe command execution."""

    FFPROBE_ARGS = ["-v", "error", "-show_format", "-show_streams", "-of", "json"]

    def __init__(self, timeout: float = 60.0) -> None:
        self.timeout = timeout
        self.path = self._check_ffprobe()

    def _check_ffprobe(self) -> str:
        path = shutil.which("ffprobe")
        if not path:
            raise FfprobeNotFoundError(
                "ffprobe is required but not found.\n"
                "Please install FFmpeg: https://ffmpeg.org/download.html"
            )
        return path

    def probe(self, file_path: str) -> FfprobeResult:
        cmd = [self.path] + self.FFPROBE_ARGS + [file_path]

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=max(1.0, self.timeout),
            )
        except subprocess.TimeoutExpired:
            return FfprobeResult(file_path, error="ffprobe timeout")
        except OSError as e:
            return FfprobeResult(file_path, error=str(e))

        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "ffprobe error"
            return FfprobeResult(file_path, error=message)

        try:
            parsed = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            return FfprobeResult(file_path, error=f"JSON parse error: {e}")

        format_section = parsed.get("format")
        streams = parsed.get("streams")
        if not isinstance(format_section, dict):
            return FfprobeResult(file_path, error="No format section in ffprobe output")

        return FfprobeResult(
            file_path,
            format=format_section,
            streams=[s for s in streams if isinstance(s, dict)] if isinstance(streams, list) else [],
        )
