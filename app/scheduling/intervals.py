"""
Interval values shared by the scheduling core.

All intervals are half-open ``[start, end)`` over timezone-aware datetimes.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional, Tuple
from zoneinfo import ZoneInfo


class BlockSource(str, Enum):
    ONE_OFF = "oneOff"
    RECURRING = "recurring"
    MOVED = "moved"
    BOOKING = "booking"


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class BlockedInterval(Interval):
    """A blocked range, tagged with where it came from."""

    source: BlockSource = BlockSource.ONE_OFF
    source_id: Optional[str] = None
    label: Optional[str] = None


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Check if two half-open ranges overlap. Touching ranges do not."""
    return start1 < end2 and end1 > start2


def overlaps_any(candidate: Interval, blocked: Iterable[Interval]) -> bool:
    return any(candidate.overlaps(b) for b in blocked)


def local_instant(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Combine a calendar date and a time-of-day in ``tz``."""
    return datetime.combine(day, at, tzinfo=tz)


def day_window(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """Return ``[midnight, next midnight)`` of ``day`` in ``tz``."""
    return (
        local_instant(day, time(0, 0), tz),
        local_instant(day + timedelta(days=1), time(0, 0), tz),
    )


def sort_by_start(intervals: Iterable[Interval]) -> list:
    return sorted(intervals, key=lambda i: (i.start, i.end))


def ensure_aware(value: datetime, tz: ZoneInfo) -> datetime:
    """Read naive datetimes as local time in ``tz``."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=tz)
    return value


def same_awareness(a: datetime, b: datetime) -> bool:
    """True when both values are naive or both are aware, i.e. comparable."""
    return (a.utcoffset() is None) == (b.utcoffset() is None)
