"""Duplicate planning and inventory reporting."""

from .planner import DedupPlanner, DuplicateGroup, PlanStats
from .summary import DatabaseSummary, TimestampDuplicates, summarize

__all__ = [
    "DedupPlanner",
    "DuplicateGroup",
    "PlanStats",
    "DatabaseSummary",
    "TimestampDuplicates",
    "summarize",
]
