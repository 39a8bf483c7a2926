"""
Slot generation.

Walks a fixed grid across the working interval and keeps every candidate of the
requested duration that fits inside working hours and overlaps no blocked
interval. Slots are never packed or coalesced.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.scheduling.errors import InvalidTimeRange
from app.scheduling.intervals import Interval, local_instant, overlaps_any
from app.schemas.availability import WorkingHoursRule


def working_interval_for(
    rules: Iterable[WorkingHoursRule],
    day: date,
    tz: ZoneInfo,
) -> Optional[Interval]:
    """Working interval of ``day``, or None when the stylist is not working."""
    weekday = day.weekday()
    for rule in rules:
        if rule.weekday == weekday:
            return Interval(
                start=local_instant(day, rule.startTime, tz),
                end=local_instant(day, rule.endTime, tz),
            )
    return None


def generate_slots(
    working: Optional[Interval],
    blocked: Iterable[Interval],
    service_duration_minutes: int,
    slot_granularity_minutes: int = 30,
) -> List[Interval]:
    if service_duration_minutes <= 0:
        raise InvalidTimeRange("Service duration must be a positive number of minutes")
    if slot_granularity_minutes <= 0:
        raise InvalidTimeRange("Slot granularity must be a positive number of minutes")
    if working is None:
        return []

    blocked = list(blocked)
    duration = timedelta(minutes=service_duration_minutes)
    step = timedelta(minutes=slot_granularity_minutes)

    slots = []
    candidate_start = working.start
    while candidate_start < working.end:
        candidate_end = candidate_start + duration
        # Later candidates end later still
        if candidate_end > working.end:
            break

        candidate = Interval(start=candidate_start, end=candidate_end)
        if not overlaps_any(candidate, blocked):
            slots.append(candidate)

        candidate_start += step

    return slots
