"""Execution of planned deduplication tasks."""

from .executor import ExecutionStats, PendingTask, TaskExecutor, TaskOutcome
from .operations import (
    AdjustOperation,
    DeleteOperation,
    Operation,
    TaskDataError,
    adjust_file,
    canonical_prefix,
    decode_operation,
    delete_file,
)

__all__ = [
    "TaskExecutor",
    "ExecutionStats",
    "PendingTask",
    "TaskOutcome",
    "AdjustOperation",
    "DeleteOperation",
    "Operation",
    "TaskDataError",
    "adjust_file",
    "canonical_prefix",
    "decode_operation",
    "delete_file",
]
