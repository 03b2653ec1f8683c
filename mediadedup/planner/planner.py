"""Dedup planner: turns duplicate groups into pending tasks."""

import logging
from dataclasses import dataclass
from itertools import groupby

from mediadedup.database import Database, FileRecord, TaskOperation

logger = logging.getLogger(__name__)


@dataclass
class DuplicateGroup:
    """Files sharing size and content fingerprint, ordered by id."""

    size: int
    fingerprint: str
    members: list[FileRecord]

    @property
    def canonical_timestamp(self) -> int | None:
        """Earliest timestamp known for any member, None if none has one."""
        timestamps = [ts for member in self.members for ts in member.timestamps]
        return min(timestamps) if timestamps else None


@dataclass
class PlanStats:
    """Outcome of a planning run."""

    groups: int = 0
    duplicate_files: int = 0
    adjust_tasks: int = 0
    delete_tasks: int = 0

    @property
    def tasks_created(self) -> int:
        return self.adjust_tasks + self.delete_tasks


class DedupPlanner:
    """Rebuilds the task list from the current file inventory.

    Every group of two or more files with the same size and fingerprint yields
    one ``adjust`` task for the member with the lowest id, carrying the
    group's canonical timestamp, and one ``delete`` task for every other
    member. Planning replaces all existing tasks, so running it twice on the
    same inventory produces the same tasks.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def plan(self) -> PlanStats:
        """Clear existing tasks and plan new ones in a single transaction."""
        stats = PlanStats()

        with self.db.transaction() as conn:
            conn.execute("DELETE FROM tasks")

            for group in self.find_duplicate_groups():
                stats.groups += 1
                stats.duplicate_files += len(group.members)

                keep, *duplicates = group.members
                conn.execute(
                    "INSERT INTO tasks (file_id, operation, new_timestamp) VALUES (?, ?, ?)",
                    (keep.id, TaskOperation.ADJUST.value, group.canonical_timestamp),
                )
                stats.adjust_tasks += 1

                if group.canonical_timestamp is None:
                    logger.warning(
                        "No timestamp known for duplicate group of %s/%s; "
                        "its adjust task will fail until one is found",
                        keep.path,
                        keep.name,
                    )

                conn.executemany(
                    "INSERT INTO tasks (file_id, operation, new_timestamp) VALUES (?, ?, NULL)",
                    [(member.id, TaskOperation.DELETE.value) for member in duplicates],
                )
                stats.delete_tasks += len(duplicates)

        logger.info(
            "Planned %d tasks for %d duplicate groups", stats.tasks_created, stats.groups
        )
        return stats

    def find_duplicate_groups(self) -> list[DuplicateGroup]:
        """Return all groups of two or more files with equal size and fingerprint."""
        rows = self.db.conn.execute(
            """
            SELECT f.*
            FROM files f
            JOIN (
                SELECT size, content_fingerprint
                FROM files
                WHERE content_fingerprint != ''
                GROUP BY size, content_fingerprint
                HAVING COUNT(*) >= 2
            ) d ON d.size = f.size AND d.content_fingerprint = f.content_fingerprint
            ORDER BY f.size, f.content_fingerprint, f.id
            """
        ).fetchall()

        records = [FileRecord.from_row(row) for row in rows]
        return [
            DuplicateGroup(size=size, fingerprint=fingerprint, members=list(members))
            for (size, fingerprint), members in groupby(
                records, key=lambda r: (r.size, r.content_fingerprint)
            )
        ]
