"""
Unavailability aggregation.

Merges one-off blocks and every recurring series of a stylist into one list of
blocked intervals ordered by start. Overlapping intervals are kept distinct so
each one still carries its source and label.
"""

from datetime import datetime
from typing import Iterable, List
from zoneinfo import ZoneInfo

from app.scheduling.intervals import BlockSource, BlockedInterval, intervals_overlap, sort_by_start
from app.scheduling.recurrence import expand, occurs_on
from app.scheduling.resolver import resolve
from app.schemas.unavailability import OneOffUnavailability, RecurringSeries


def series_blocked_intervals(
    series: RecurringSeries,
    window_start: datetime,
    window_end: datetime,
    tz: ZoneInfo,
) -> List[BlockedInterval]:
    rule = series.recurrence_rule()
    first_day = window_start.astimezone(tz).date()
    last_day = window_end.astimezone(tz).date()
    days = set(expand(rule, series.seriesStartDate, series.seriesEndDate, first_day, last_day))

    # A moved occurrence can land inside the window while its original date is outside
    for exception in series.exceptions:
        if exception.is_cancellation:
            continue
        if not intervals_overlap(exception.newStartTime, exception.newEndTime, window_start, window_end):
            continue
        original_day = exception.originalStartTime.astimezone(tz).date()
        if original_day not in days and occurs_on(rule, series.seriesStartDate, series.seriesEndDate, original_day):
            days.add(original_day)

    resolved = resolve(series, sorted(days), series.exceptions, tz)
    return [
        block for block in resolved.blocked
        if intervals_overlap(block.start, block.end, window_start, window_end)
    ]


def one_off_blocked_intervals(
    entries: Iterable[OneOffUnavailability],
    window_start: datetime,
    window_end: datetime,
) -> List[BlockedInterval]:
    return [
        BlockedInterval(
            start=entry.startTime,
            end=entry.endTime,
            source=BlockSource.ONE_OFF,
            source_id=entry.id,
            label=entry.reason,
        )
        for entry in entries
        if intervals_overlap(entry.startTime, entry.endTime, window_start, window_end)
    ]


def collect_blocked_intervals(
    one_offs: Iterable[OneOffUnavailability],
    series_list: Iterable[RecurringSeries],
    window_start: datetime,
    window_end: datetime,
    tz: ZoneInfo,
) -> List[BlockedInterval]:
    blocked = one_off_blocked_intervals(one_offs, window_start, window_end)
    for series in series_list:
        blocked.extend(series_blocked_intervals(series, window_start, window_end, tz))
    return sort_by_start(blocked)
