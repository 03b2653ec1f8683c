"""Media Deduplicator - find and collapse duplicate photos and videos across drives."""

__version__ = "0.1.0"

from mediadedup.database import Database
from mediadedup.scanner import Scanner

__all__ = ["Database", "Scanner"]
