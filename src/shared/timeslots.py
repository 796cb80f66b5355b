"""Wall-clock ``HH:MM`` helpers shared by booking and availability.

Times are fixed-width, zero-padded 24h strings, so comparing two of them as
strings orders them exactly like comparing their minutes since midnight.
Every interval is half-open: ``[start, end)``.
"""

from __future__ import annotations

import re
from typing import NamedTuple

HHMM_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")
# The older client sometimes sends "9:30"; accepted on input, padded on the way in.
LENIENT_HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_DAY = 24 * 60


class TimeSlot(NamedTuple):
    start: str
    end: str

    @property
    def duration_minutes(self) -> int:
        return to_minutes(self.end) - to_minutes(self.start)


def normalize_hhmm(value: str) -> str:
    """Return ``value`` as zero-padded ``HH:MM``; raise ValueError if malformed."""
    cleaned = value.strip()
    if not LENIENT_HHMM_PATTERN.match(cleaned):
        raise ValueError(f"'{value}' is not a valid HH:MM time")
    hours, minutes = cleaned.split(":")
    return f"{int(hours):02d}:{minutes}"


def to_minutes(value: str) -> int:
    hours, minutes = normalize_hhmm(value).split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"{total} minutes is outside a single day")
    return f"{total // 60:02d}:{total % 60:02d}"


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b
