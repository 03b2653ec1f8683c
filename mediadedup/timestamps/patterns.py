"""Filename timestamp patterns.

The table is ordered and the first pattern that matches with a valid
calendar date wins. Order is priority, not specificity: a later pattern may
describe some names more precisely, but an earlier match is still taken.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

# (year, month, day, hour, minute, second)
DateFields = tuple[int, int, int, int, int, int]


@dataclass(frozen=True)
class TimestampPattern:
    """One entry of the ordered filename pattern table."""

    name: str
    regex: re.Pattern[str]
    extract: Callable[[re.Match[str]], DateFields]


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _compact_datetime(match: re.Match[str]) -> DateFields:
    date_part, time_part = match.group(1), match.group(2)
    return (
        int(date_part[0:4]),
        int(date_part[4:6]),
        int(date_part[6:8]),
        int(time_part[0:2]),
        int(time_part[2:4]),
        int(time_part[4:6]),
    )


def _compact_date(match: re.Match[str]) -> DateFields:
    date_part = match.group(1)
    return (int(date_part[0:4]), int(date_part[4:6]), int(date_part[6:8]), 0, 0, 0)


def _six_groups(match: re.Match[str]) -> DateFields:
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    return (year, month, day, hour, minute, second)


def _three_groups(match: re.Match[str]) -> DateFields:
    year, month, day = (int(g) for g in match.groups()[:3])
    return (year, month, day, 0, 0, 0)


PATTERNS: tuple[TimestampPattern, ...] = (
    # IMG_20230115_143052.jpg, VID_20230115_143052123.mp4
    TimestampPattern(
        "camera_compact",
        _compile(r"(?:IMG|VID)_(\d{8})_(\d{6})(?:\d{3})?"),
        _compact_datetime,
    ),
    # 20230115_143052.jpg, 20230115_143052_1.jpg
    TimestampPattern(
        "generic_compact",
        _compile(r"^(\d{8})_(\d{6})(?:\d{3})?(?:[_-]\d+)?"),
        _compact_datetime,
    ),
    # IMG-20230115-WA0001.jpg
    TimestampPattern(
        "messaging_dashed",
        _compile(r"(?:IMG|VID)-(\d{8})-WA\d+"),
        _compact_date,
    ),
    # WhatsApp Image 2023-01-15 at 14.30.52.jpeg
    TimestampPattern(
        "messaging_verbose",
        _compile(r"WhatsApp (?:Image|Video) (\d{4})-(\d{2})-(\d{2}) at (\d{2})\.(\d{2})\.(\d{2})"),
        _six_groups,
    ),
    # PHOTO-2023-01-15-14-30-52.jpg
    TimestampPattern(
        "share_sheet_dashed",
        _compile(r"(?:PHOTO|VIDEO)-(\d{4})-(\d{2})-(\d{2})-(\d{2})-(\d{2})-(\d{2})"),
        _six_groups,
    ),
    # Screenshot_20230115-143052.png
    TimestampPattern(
        "screenshot_compact",
        _compile(r"Screenshot[_\s](\d{8})-(\d{6})"),
        _compact_datetime,
    ),
    # Screenshot 2023-01-15 at 14.30.52.png
    TimestampPattern(
        "screenshot_verbose",
        _compile(r"Screenshot (\d{4})-(\d{2})-(\d{2}) at (\d{2})\.(\d{2})\.(\d{2})"),
        _six_groups,
    ),
    # signal-2023-01-15-143052.jpg
    TimestampPattern(
        "signal_dashed",
        _compile(r"signal-(\d{4})-(\d{2})-(\d{2})-(\d{2})(\d{2})(\d{2})"),
        _six_groups,
    ),
    # 2023-01-15_14-30-52.jpg, 2023_01_15 14.30.52.jpg
    TimestampPattern(
        "generic_dashed",
        _compile(r"(\d{4})[_-](\d{2})[_-](\d{2})[_\s]+(\d{2})[._-](\d{2})[._-](\d{2})"),
        _six_groups,
    ),
    # holiday_2023-01-15.jpg, 20230115-beach.jpg
    TimestampPattern(
        "date_only",
        _compile(r"(?:^|[_-])(\d{4})-?(\d{2})-?(\d{2})(?:[_-]|$)"),
        _three_groups,
    ),
)
