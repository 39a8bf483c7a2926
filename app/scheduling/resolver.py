"""
Exception resolution for recurring series.

Turns the occurrence dates of one series plus its exception records into the
intervals that are actually blocked and the nominal intervals that were freed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.scheduling.intervals import BlockSource, BlockedInterval, Interval, local_instant
from app.schemas.unavailability import OccurrenceStatus, RecurringSeries, SeriesException


@dataclass(frozen=True)
class ResolvedOccurrence:
    nominal: Interval
    status: OccurrenceStatus
    effective: Optional[Interval] = None
    exception: Optional[SeriesException] = None


@dataclass
class ResolvedSeries:
    blocked: List[BlockedInterval] = field(default_factory=list)
    freed: List[Interval] = field(default_factory=list)


def nominal_interval(series: RecurringSeries, day: date, tz: ZoneInfo) -> Interval:
    return Interval(
        start=local_instant(day, series.startTime, tz),
        end=local_instant(day, series.endTime, tz),
    )


def index_exceptions(exceptions: Iterable[SeriesException]) -> Dict[datetime, SeriesException]:
    """Key exceptions by their original occurrence start instant."""
    return {ex.originalStartTime: ex for ex in exceptions}


def resolve_occurrences(
    series: RecurringSeries,
    occurrence_dates: Iterable[date],
    exceptions: Iterable[SeriesException],
    tz: ZoneInfo,
) -> List[ResolvedOccurrence]:
    lookup = index_exceptions(exceptions)
    resolved = []
    for day in occurrence_dates:
        nominal = nominal_interval(series, day, tz)
        exception = lookup.get(nominal.start)
        if exception is None:
            resolved.append(ResolvedOccurrence(nominal, OccurrenceStatus.SCHEDULED, nominal))
        elif exception.is_cancellation:
            resolved.append(ResolvedOccurrence(nominal, OccurrenceStatus.CANCELLED, None, exception))
        else:
            moved = Interval(start=exception.newStartTime, end=exception.newEndTime)
            resolved.append(ResolvedOccurrence(nominal, OccurrenceStatus.MOVED, moved, exception))
    return resolved


def resolve(
    series: RecurringSeries,
    occurrence_dates: Iterable[date],
    exceptions: Iterable[SeriesException],
    tz: ZoneInfo,
) -> ResolvedSeries:
    """
    Apply a series' exceptions to its occurrences.

    - no exception: the nominal interval is blocked
    - cancellation: the nominal interval is freed
    - move: the nominal interval is freed and the new interval is blocked instead

    Exceptions that match no occurrence are ignored.
    """
    result = ResolvedSeries()
    for occurrence in resolve_occurrences(series, occurrence_dates, exceptions, tz):
        if occurrence.status == OccurrenceStatus.SCHEDULED:
            result.blocked.append(BlockedInterval(
                start=occurrence.nominal.start,
                end=occurrence.nominal.end,
                source=BlockSource.RECURRING,
                source_id=series.id,
                label=series.title,
            ))
            continue

        result.freed.append(occurrence.nominal)
        if occurrence.status == OccurrenceStatus.MOVED:
            result.blocked.append(BlockedInterval(
                start=occurrence.effective.start,
                end=occurrence.effective.end,
                source=BlockSource.MOVED,
                source_id=series.id,
                label=series.title,
            ))
    return result
