"""Applies pending tasks to the files on attached containers."""

import logging
import sqlite3
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import assert_never

from mediadedup.containers import ContainerResolver
from mediadedup.database import Container, Database, FileRecord
from mediadedup.executor.operations import (
    AdjustOperation,
    DeleteOperation,
    Operation,
    TaskDataError,
    adjust_file,
    decode_operation,
    delete_file,
)
from mediadedup.extractor.exiftool import ExiftoolError, ExiftoolRunner

logger = logging.getLogger(__name__)

ReconnectPrompt = Callable[[Container], bool]

# Platforms whose file creation time exiftool can set
CREATION_TIME_PLATFORMS = ("win32", "darwin")

TASK_ERRORS = (OSError, TaskDataError, ExiftoolError, sqlite3.IntegrityError)


@dataclass
class PendingTask:
    id: int
    operation: str
    new_timestamp: int | None
    file: FileRecord


@dataclass
class TaskOutcome:
    """What happened to a single task during a run."""

    task_id: int
    operation: str
    status: str  # 'applied', 'failed' or 'skipped'
    path: str | None = None
    message: str | None = None


@dataclass
class ExecutionStats:
    containers_processed: int = 0
    containers_skipped: int = 0
    tasks_applied: int = 0
    tasks_failed: int = 0
    tasks_skipped: int = 0
    outcomes: list[TaskOutcome] = field(default_factory=list)

    def record(self, outcome: TaskOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == "applied":
            self.tasks_applied += 1
        elif outcome.status == "failed":
            self.tasks_failed += 1
        else:
            self.tasks_skipped += 1


class TaskExecutor:
    """Executes pending tasks container by container.

    Each task runs in its own transaction: the filesystem is changed first,
    then the file record is updated and the task deleted, then the
    transaction commits. A task whose filesystem change fails is rolled back
    and stays pending. Tasks of containers that are not attached are left
    untouched for a later run.
    """

    def __init__(
        self,
        db: Database,
        resolver: ContainerResolver | None = None,
        exiftool: ExiftoolRunner | None = None,
    ) -> None:
        self.db = db
        self.resolver = resolver or ContainerResolver()
        if exiftool is None and sys.platform in CREATION_TIME_PLATFORMS:
            exiftool = ExiftoolRunner()
        self.exiftool = exiftool

    def pending_task_count(self) -> int:
        return self.db.conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0]

    def run(self, confirm_reconnect: ReconnectPrompt | None = None) -> ExecutionStats:
        """Execute all pending tasks.

        ``confirm_reconnect`` is asked once per container that is not
        attached; when it returns True the lookup is repeated.
        """
        stats = ExecutionStats()
        self._report_detached_tasks(stats)

        for container in self._containers_with_tasks():
            mount_point = self._find_mount(container, confirm_reconnect)
            if mount_point is None:
                logger.warning(
                    "Container %d (partition=%s, disk=%s) is not attached, skipping",
                    container.id,
                    container.partition_id,
                    container.disk_id,
                )
                stats.containers_skipped += 1
                continue

            logger.info("Container %d found at %s", container.id, mount_point)
            stats.containers_processed += 1
            for task in self._tasks_for(container.id):
                stats.record(self.execute_task(task, mount_point))

        return stats

    def execute_task(self, task: PendingTask, mount_point: Path) -> TaskOutcome:
        """Apply one task and retire it, or roll it back and keep it pending."""
        directory = mount_point / task.file.path
        try:
            operation = decode_operation(task.operation, task.new_timestamp)
            with self.db.transaction() as conn:
                path = self._apply(conn, operation, task, directory)
        except TASK_ERRORS as e:
            logger.warning("Task %d (%s) failed: %s", task.id, task.operation, e)
            return TaskOutcome(
                task.id, task.operation, "failed", str(directory / task.file.name), str(e)
            )
        return TaskOutcome(task.id, task.operation, "applied", str(path))

    def _apply(
        self,
        conn: sqlite3.Connection,
        operation: Operation,
        task: PendingTask,
        directory: Path,
    ) -> Path:
        match operation:
            case AdjustOperation(new_timestamp=timestamp):
                target = adjust_file(
                    directory,
                    task.file,
                    timestamp,
                    self.exiftool,
                    taken_names=self._names_in_directory(conn, task.file),
                )
                conn.execute(
                    """
                    UPDATE files
                    SET name = ?, filename_timestamp = ?,
                        filesystem_creation_time = ?, filesystem_modified_time = ?
                    WHERE id = ?
                    """,
                    (target.name, timestamp, timestamp, timestamp, task.file.id),
                )
                conn.execute("DELETE FROM tasks WHERE id = ?", (task.id,))
                return target
            case DeleteOperation():
                path = directory / task.file.name
                if not delete_file(path):
                    logger.debug("%s was already deleted", path)
                conn.execute("DELETE FROM tasks WHERE id = ?", (task.id,))
                conn.execute("DELETE FROM files WHERE id = ?", (task.file.id,))
                return path
            case _:
                assert_never(operation)

    def _names_in_directory(self, conn: sqlite3.Connection, record: FileRecord) -> set[str]:
        """Names other records hold in the same directory of the same container."""
        rows = conn.execute(
            "SELECT name FROM files WHERE container_id = ? AND path = ? AND id != ?",
            (record.container_id, record.path, record.id),
        ).fetchall()
        return {row["name"] for row in rows}

    def _find_mount(
        self, container: Container, confirm_reconnect: ReconnectPrompt | None
    ) -> Path | None:
        mount_point = self.resolver.find_mount(container)
        if mount_point is None and confirm_reconnect is not None and confirm_reconnect(container):
            self.resolver.clear_cache()
            mount_point = self.resolver.find_mount(container)
        return mount_point

    def _report_detached_tasks(self, stats: ExecutionStats) -> None:
        rows = self.db.conn.execute(
            "SELECT id, operation FROM tasks WHERE file_id IS NULL ORDER BY id"
        ).fetchall()
        for row in rows:
            stats.record(
                TaskOutcome(row["id"], row["operation"], "skipped", message="Task has no file")
            )

    def _containers_with_tasks(self) -> list[Container]:
        rows = self.db.conn.execute(
            """
            SELECT DISTINCT c.id, c.partition_id, c.disk_id
            FROM containers c
            JOIN files f ON f.container_id = c.id
            JOIN tasks t ON t.file_id = f.id
            ORDER BY c.id
            """
        ).fetchall()
        return [Container.from_row(row) for row in rows]

    def _tasks_for(self, container_id: int) -> list[PendingTask]:
        rows = self.db.conn.execute(
            """
            SELECT t.id AS task_id, t.operation, t.new_timestamp, f.*
            FROM tasks t
            JOIN files f ON f.id = t.file_id
            WHERE f.container_id = ?
            ORDER BY t.id
            """,
            (container_id,),
        ).fetchall()
        return [
            PendingTask(
                id=row["task_id"],
                operation=row["operation"],
                new_timestamp=row["new_timestamp"],
                file=FileRecord.from_row(row),
            )
            for row in rows
        ]
