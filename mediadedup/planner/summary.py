"""Inventory summary report."""

from dataclasses import dataclass, field

from mediadedup.database import Database


@dataclass
class TimestampDuplicates:
    """Files grouped by equal size and metadata timestamp."""

    groups: int = 0
    duplicate_files: int = 0
    unique_size: int = 0
    total_size: int = 0

    @property
    def wasted_space(self) -> int:
        return self.total_size - self.unique_size


@dataclass
class DatabaseSummary:
    total_files: int = 0
    containers: int = 0
    sessions_by_status: dict[str, int] = field(default_factory=dict)
    pending_tasks: dict[str, int] = field(default_factory=dict)
    duplicates: TimestampDuplicates = field(default_factory=TimestampDuplicates)

    @property
    def pending_task_count(self) -> int:
        return sum(self.pending_tasks.values())


def summarize(db: Database) -> DatabaseSummary:
    """Collect inventory counts and the timestamp-based duplicate estimate.

    The duplicate estimate treats files with equal size and metadata
    timestamp as copies of each other. It is reported on its own and does not
    feed the planner, which groups by content fingerprint instead.
    """
    conn = db.conn
    summary = DatabaseSummary()

    summary.total_files = conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]
    summary.containers = conn.execute("SELECT COUNT(*) FROM containers").fetchone()[0]

    for row in conn.execute(
        "SELECT status, COUNT(*) AS n FROM scan_sessions GROUP BY status ORDER BY status"
    ):
        summary.sessions_by_status[row["status"]] = row["n"]

    for row in conn.execute(
        "SELECT operation, COUNT(*) AS n FROM tasks GROUP BY operation ORDER BY operation"
    ):
        summary.pending_tasks[row["operation"]] = row["n"]

    for row in conn.execute(
        """
        SELECT size, COUNT(*) AS n
        FROM files
        WHERE metadata_timestamp IS NOT NULL
        GROUP BY size, metadata_timestamp
        HAVING COUNT(*) >= 2
        """
    ):
        summary.duplicates.groups += 1
        summary.duplicates.duplicate_files += row["n"]
        summary.duplicates.unique_size += row["size"]
        summary.duplicates.total_size += row["size"] * row["n"]

    return summary
