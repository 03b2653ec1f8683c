"""Database module for mediadedup."""

from .connection import Database
from .models import (
    Container,
    FileRecord,
    MediaType,
    ScanSession,
    ScanStatus,
    TaskOperation,
)
from .schema import create_schema

__all__ = [
    "Database",
    "create_schema",
    "Container",
    "ScanSession",
    "FileRecord",
    "MediaType",
    "ScanStatus",
    "TaskOperation",
]
