from datetime import date, datetime, time, timezone

from app.scheduling.intervals import BlockSource, Interval
from app.scheduling.resolver import resolve, resolve_occurrences
from app.schemas.unavailability import OccurrenceStatus, RecurringSeries, SeriesException

from conftest import OSLO, STYLIST_ID, at

LUNCH = RecurringSeries(
    id="series-lunch",
    stylistId=STYLIST_ID,
    title="Lunch",
    startTime=time(12, 0),
    endTime=time(13, 0),
    rrule="FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR",
    seriesStartDate=date(2026, 3, 2),
)

WEEK = [date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4)]


def test_occurrences_without_exceptions_are_blocked():
    result = resolve(LUNCH, WEEK, [], OSLO)

    assert [(b.start, b.end) for b in result.blocked] == [
        (at(2026, 3, 2, 12), at(2026, 3, 2, 13)),
        (at(2026, 3, 3, 12), at(2026, 3, 3, 13)),
        (at(2026, 3, 4, 12), at(2026, 3, 4, 13)),
    ]
    assert all(b.source == BlockSource.RECURRING for b in result.blocked)
    assert all(b.source_id == "series-lunch" and b.label == "Lunch" for b in result.blocked)
    assert result.freed == []


def test_cancellation_frees_the_occurrence():
    cancel = SeriesException(id="ex-1", seriesId=LUNCH.id, originalStartTime=at(2026, 3, 3, 12))

    result = resolve(LUNCH, WEEK, [cancel], OSLO)

    assert [b.start for b in result.blocked] == [at(2026, 3, 2, 12), at(2026, 3, 4, 12)]
    assert result.freed == [Interval(at(2026, 3, 3, 12), at(2026, 3, 3, 13))]


def test_move_blocks_the_new_interval_instead():
    move = SeriesException(
        id="ex-1",
        seriesId=LUNCH.id,
        originalStartTime=at(2026, 3, 3, 12),
        newStartTime=at(2026, 3, 3, 14),
        newEndTime=at(2026, 3, 3, 15),
    )

    result = resolve(LUNCH, WEEK, [move], OSLO)

    moved = [b for b in result.blocked if b.source == BlockSource.MOVED]
    assert [(b.start, b.end) for b in moved] == [(at(2026, 3, 3, 14), at(2026, 3, 3, 15))]
    assert moved[0].label == "Lunch"
    assert Interval(at(2026, 3, 3, 12), at(2026, 3, 3, 13)) in result.freed
    assert at(2026, 3, 3, 12) not in [b.start for b in result.blocked]


def test_exception_matches_same_instant_in_another_zone():
    # 11:00 UTC is 12:00 in Oslo in March
    cancel = SeriesException(
        id="ex-1",
        seriesId=LUNCH.id,
        originalStartTime=datetime(2026, 3, 2, 11, 0, tzinfo=timezone.utc),
    )

    result = resolve(LUNCH, WEEK, [cancel], OSLO)

    assert at(2026, 3, 2, 12) not in [b.start for b in result.blocked]


def test_unmatched_exception_is_ignored():
    stray = SeriesException(id="ex-1", seriesId=LUNCH.id, originalStartTime=at(2026, 3, 2, 12, 30))

    result = resolve(LUNCH, WEEK, [stray], OSLO)

    assert len(result.blocked) == 3
    assert result.freed == []


def test_resolved_occurrence_statuses():
    cancel = SeriesException(id="ex-1", seriesId=LUNCH.id, originalStartTime=at(2026, 3, 2, 12))
    move = SeriesException(
        id="ex-2",
        seriesId=LUNCH.id,
        originalStartTime=at(2026, 3, 3, 12),
        newStartTime=at(2026, 3, 3, 15),
        newEndTime=at(2026, 3, 3, 16),
    )

    occurrences = resolve_occurrences(LUNCH, WEEK, [cancel, move], OSLO)

    assert [o.status for o in occurrences] == [
        OccurrenceStatus.CANCELLED, OccurrenceStatus.MOVED, OccurrenceStatus.SCHEDULED,
    ]
    assert occurrences[0].effective is None
    assert occurrences[0].exception.id == "ex-1"
    assert occurrences[1].effective == Interval(at(2026, 3, 3, 15), at(2026, 3, 3, 16))
    assert occurrences[2].effective == occurrences[2].nominal
