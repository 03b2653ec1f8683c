"""Capture time extraction from media filenames."""

import os
from dataclasses import dataclass
from datetime import datetime, timezone

from .patterns import PATTERNS, DateFields, TimestampPattern


@dataclass(frozen=True)
class FilenameTimestamp:
    """Result of a successful filename match."""

    timestamp: int  # Unix seconds, UTC
    pattern: str  # Name of the matching pattern


def to_unix_timestamp(fields: DateFields) -> int | None:
    """Convert date fields read as UTC to Unix seconds, None if not a real date."""
    try:
        dt = datetime(*fields, tzinfo=timezone.utc)
    except ValueError:
        return None
    return int(dt.timestamp())


def match_filename_timestamp(filename: str) -> FilenameTimestamp | None:
    """Find the first pattern producing a valid timestamp for a filename.

    The extension is stripped before matching. A pattern that matches but
    yields an impossible date (month 13, Feb 30) does not stop the search.
    """
    if not filename or not filename.strip():
        return None

    stem = os.path.splitext(filename)[0]

    for pattern in PATTERNS:
        match = pattern.regex.search(stem)
        if not match:
            continue
        timestamp = to_unix_timestamp(pattern.extract(match))
        if timestamp is not None:
            return FilenameTimestamp(timestamp=timestamp, pattern=pattern.name)

    return None


def parse_filename_timestamp(filename: str) -> int | None:
    """Return the capture time encoded in a filename as Unix seconds, if any."""
    result = match_filename_timestamp(filename)
    return result.timestamp if result else None


__all__ = [
    "PATTERNS",
    "FilenameTimestamp",
    "TimestampPattern",
    "match_filename_timestamp",
    "parse_filename_timestamp",
    "to_unix_timestamp",
]
