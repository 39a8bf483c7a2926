"""
Recurrence rules and their expansion into occurrence dates.

Rules are stored as compact strings such as ``FREQ=WEEKLY;BYDAY=MO,WE;INTERVAL=2``
and parsed once into a :class:`RecurrenceRule`. Expansion works on calendar dates
only; turning a date into an instant is the caller's business.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator, Optional, Tuple

from dateutil.relativedelta import relativedelta

from app.scheduling.errors import InvalidRecurrenceRule


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


# Index matches date.weekday(): Monday is 0
WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

_KNOWN_KEYS = {"FREQ", "BYDAY", "INTERVAL", "COUNT", "UNTIL"}


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    weekdays: Tuple[int, ...] = ()
    interval: int = 1
    count: Optional[int] = None
    until: Optional[date] = None

    def __post_init__(self):
        if self.interval < 1:
            raise InvalidRecurrenceRule("INTERVAL must be a positive integer")
        if self.count is not None and self.count < 1:
            raise InvalidRecurrenceRule("COUNT must be a positive integer")
        if self.count is not None and self.until is not None:
            raise InvalidRecurrenceRule("COUNT and UNTIL cannot be combined")
        if self.weekdays and self.frequency != Frequency.WEEKLY:
            raise InvalidRecurrenceRule("BYDAY is only supported for weekly rules")
        if any(wd < 0 or wd > 6 for wd in self.weekdays):
            raise InvalidRecurrenceRule("Weekday out of range")
        if tuple(sorted(set(self.weekdays))) != self.weekdays:
            object.__setattr__(self, "weekdays", tuple(sorted(set(self.weekdays))))

    def with_default_weekday(self, series_start: date) -> "RecurrenceRule":
        """Give a weekly rule without BYDAY the weekday of the series start."""
        if self.frequency == Frequency.WEEKLY and not self.weekdays:
            return replace(self, weekdays=(series_start.weekday(),))
        return self

    def to_rrule(self) -> str:
        parts = [f"FREQ={self.frequency.value}"]
        if self.weekdays:
            parts.append("BYDAY=" + ",".join(WEEKDAY_CODES[wd] for wd in self.weekdays))
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append(f"UNTIL={self.until.strftime('%Y%m%d')}")
        return ";".join(parts)

    def __str__(self) -> str:
        return self.to_rrule()


def _positive_int(key: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise InvalidRecurrenceRule(f"{key} must be an integer, got {raw!r}")
    if value < 1:
        raise InvalidRecurrenceRule(f"{key} must be a positive integer")
    return value


def _parse_until(raw: str) -> date:
    for fmt in ("%Y%m%dT%H%M%SZ", "%Y%m%dT%H%M%S", "%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise InvalidRecurrenceRule(f"UNTIL has an unsupported format: {raw!r}")


def parse_rrule(value: str) -> RecurrenceRule:
    """Parse a compact rule string, raising InvalidRecurrenceRule when malformed."""
    if not value or not value.strip():
        raise InvalidRecurrenceRule("Recurrence rule is empty")

    text = value.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    parts = {}
    for chunk in text.split(";"):
        if not chunk.strip():
            continue
        key, sep, raw = chunk.partition("=")
        key = key.strip().upper()
        raw = raw.strip()
        if not sep or not raw:
            raise InvalidRecurrenceRule(f"Malformed rule part: {chunk!r}")
        if key not in _KNOWN_KEYS:
            raise InvalidRecurrenceRule(f"Unsupported rule part: {key}")
        if key in parts:
            raise InvalidRecurrenceRule(f"Duplicate rule part: {key}")
        parts[key] = raw

    if "FREQ" not in parts:
        raise InvalidRecurrenceRule("FREQ is required")
    try:
        frequency = Frequency(parts["FREQ"].upper())
    except ValueError:
        raise InvalidRecurrenceRule(f"Unsupported frequency: {parts['FREQ']}")

    weekdays = []
    if "BYDAY" in parts:
        for code in parts["BYDAY"].split(","):
            code = code.strip().upper()
            if code not in WEEKDAY_CODES:
                raise InvalidRecurrenceRule(f"Unknown weekday code: {code!r}")
            weekdays.append(WEEKDAY_CODES.index(code))

    return RecurrenceRule(
        frequency=frequency,
        weekdays=tuple(weekdays),
        interval=_positive_int("INTERVAL", parts["INTERVAL"]) if "INTERVAL" in parts else 1,
        count=_positive_int("COUNT", parts["COUNT"]) if "COUNT" in parts else None,
        until=_parse_until(parts["UNTIL"]) if "UNTIL" in parts else None,
    )


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _daily(rule: RecurrenceRule, start: date, skip_to: date) -> Iterator[date]:
    steps = max(0, _ceil_div((skip_to - start).days, rule.interval))
    day = start + timedelta(days=steps * rule.interval)
    step = timedelta(days=rule.interval)
    while True:
        yield day
        day += step


def _weekly(rule: RecurrenceRule, start: date, skip_to: date) -> Iterator[date]:
    weekdays = rule.weekdays or (start.weekday(),)
    start_monday = start - timedelta(days=start.weekday())
    # Week 0 is the week containing the series start; only every Nth week is used
    week = max(0, (skip_to - start_monday).days // 7)
    week = _ceil_div(week, rule.interval) * rule.interval
    while True:
        monday = start_monday + timedelta(weeks=week)
        for wd in weekdays:
            day = monday + timedelta(days=wd)
            if day >= start:
                yield day
        week += rule.interval


def _monthly(rule: RecurrenceRule, start: date, skip_to: date) -> Iterator[date]:
    months = (skip_to.year - start.year) * 12 + (skip_to.month - start.month)
    step = max(0, _ceil_div(months, rule.interval))
    while True:
        candidate = start + relativedelta(months=step * rule.interval)
        # relativedelta clamps to month end; a clamped date is a skipped month
        if candidate.day == start.day:
            yield candidate
        step += 1


_GENERATORS = {
    Frequency.DAILY: _daily,
    Frequency.WEEKLY: _weekly,
    Frequency.MONTHLY: _monthly,
}


def expand(
    rule: RecurrenceRule,
    series_start: date,
    series_end: Optional[date],
    window_start: date,
    window_end: date,
) -> Iterator[date]:
    """
    Yield the occurrence dates of a series inside ``[window_start, window_end]``.

    Dates come out ascending and unique, limited to the series' own range and to
    the rule's COUNT/UNTIL. An empty window intersection yields nothing.
    """
    last = window_end
    for bound in (series_end, rule.until):
        if bound is not None and bound < last:
            last = bound
    first = max(series_start, window_start)
    if first > last:
        return

    generate = _GENERATORS[rule.frequency]
    if rule.count is None:
        for day in generate(rule, series_start, first):
            if day > last:
                return
            if day >= first:
                yield day
        return

    # COUNT is measured from the series start, so walk from there
    for index, day in enumerate(generate(rule, series_start, series_start)):
        if index >= rule.count or day > last:
            return
        if day >= first:
            yield day


def occurs_on(
    rule: RecurrenceRule,
    series_start: date,
    series_end: Optional[date],
    day: date,
) -> bool:
    """Return True if the series has an occurrence on ``day``."""
    return next(expand(rule, series_start, series_end, day, day), None) == day
