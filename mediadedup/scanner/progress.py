"""Progress reporting utilities for scanning."""

import sys
import time
from dataclasses import dataclass, field


@dataclass
class ScanStats:
    """Statistics for an ongoing scan operation."""

    session_id: int | None = None
    resumed: bool = False
    files_skipped: int = 0  # processed by an earlier run of a resumed session
    files_discovered: int = 0
    files_processed: int = 0
    files_added: int = 0
    files_updated: int = 0
    files_unchanged: int = 0
    files_failed: int = 0
    files_removed: int = 0
    total_bytes: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def files_total(self) -> int:
        return self.files_skipped + self.files_discovered

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time


class ProgressReporter:
    """Reports scan progress to the user."""

    def __init__(self, interval: int = 1000):
        self.interval = interval
        self._last_report_count = 0

    def report_discovery(self, count: int) -> None:
        print(f"Discovered {count:,} media files to process")

    def report_if_needed(self, stats: ScanStats, current_file: str) -> None:
        if stats.files_processed - self._last_report_count >= self.interval:
            self._print_progress(stats, current_file)
            self._last_report_count = stats.files_processed

    def report_completion(self, stats: ScanStats) -> None:
        duration = _format_duration(stats.elapsed_seconds)
        print(f"\nScan complete: {stats.files_processed:,} files ({duration})")
        print(
            f"New: {stats.files_added:,}, updated: {stats.files_updated:,}, "
            f"unchanged: {stats.files_unchanged:,}, removed: {stats.files_removed:,}, "
            f"failed: {stats.files_failed:,}"
        )
        print(f"Total size: {_format_bytes(stats.total_bytes)}")

    def report_interruption(self, stats: ScanStats) -> None:
        print(
            f"\nScan interrupted. Progress saved; run the scan again to resume.\n"
            f"Processed: {stats.files_processed:,} files"
        )

    def report_resume(self, session_id: int, files_processed: int) -> None:
        print(f"Resuming scan session #{session_id}")
        print(f"Skipping {files_processed:,} previously processed files...")

    def _print_progress(self, stats: ScanStats, current_file: str) -> None:
        print(
            f"[{stats.files_processed:,}/{stats.files_total:,} files] {current_file}",
            file=sys.stderr,
        )


def _format_duration(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _format_bytes(size: int) -> str:
    size_f = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_f < 1024:
            return f"{size_f:.2f} {unit}"
        size_f /= 1024
    return f"{size_f:.2f} PB"
