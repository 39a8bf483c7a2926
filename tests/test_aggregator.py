from datetime import date, time

from app.scheduling.aggregator import collect_blocked_intervals, series_blocked_intervals
from app.scheduling.intervals import BlockSource, day_window
from app.schemas.unavailability import OneOffUnavailability, RecurringSeries, SeriesException

from conftest import OSLO, STYLIST_ID, at


def make_series(**overrides):
    fields = dict(
        id="series-1",
        stylistId=STYLIST_ID,
        title="Lunch",
        startTime=time(12, 0),
        endTime=time(13, 0),
        rrule="FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR",
        seriesStartDate=date(2026, 3, 2),
    )
    fields.update(overrides)
    return RecurringSeries(**fields)


def one_off(id, start, end, reason=None):
    return OneOffUnavailability(id=id, stylistId=STYLIST_ID, startTime=start, endTime=end, reason=reason)


def test_merges_sources_ordered_by_start():
    start, end = day_window(date(2026, 3, 2), OSLO)
    entries = [
        one_off("oo-2", at(2026, 3, 2, 15), at(2026, 3, 2, 16), "Dentist"),
        one_off("oo-1", at(2026, 3, 2, 9), at(2026, 3, 2, 10)),
    ]

    blocked = collect_blocked_intervals(entries, [make_series()], start, end, OSLO)

    assert [(b.start, b.source) for b in blocked] == [
        (at(2026, 3, 2, 9), BlockSource.ONE_OFF),
        (at(2026, 3, 2, 12), BlockSource.RECURRING),
        (at(2026, 3, 2, 15), BlockSource.ONE_OFF),
    ]
    assert blocked[2].label == "Dentist"
    assert blocked[1].source_id == "series-1"


def test_overlapping_blocks_are_kept_distinct():
    start, end = day_window(date(2026, 3, 2), OSLO)
    entries = [one_off("oo-1", at(2026, 3, 2, 11, 30), at(2026, 3, 2, 12, 30))]

    blocked = collect_blocked_intervals(entries, [make_series()], start, end, OSLO)

    assert len(blocked) == 2


def test_one_off_spanning_window_edge_is_included():
    start, end = day_window(date(2026, 3, 2), OSLO)
    entries = [one_off("oo-1", at(2026, 3, 1, 22), at(2026, 3, 2, 10))]

    blocked = collect_blocked_intervals(entries, [], start, end, OSLO)

    assert [(b.start, b.end) for b in blocked] == [(at(2026, 3, 1, 22), at(2026, 3, 2, 10))]


def test_touching_one_off_is_not_included():
    start, end = day_window(date(2026, 3, 2), OSLO)
    entries = [one_off("oo-1", at(2026, 3, 1, 20), at(2026, 3, 2, 0))]

    assert collect_blocked_intervals(entries, [], start, end, OSLO) == []


def test_weekend_has_no_recurring_blocks():
    start, end = day_window(date(2026, 3, 7), OSLO)

    assert series_blocked_intervals(make_series(), start, end, OSLO) == []


def test_occurrence_moved_onto_another_day_blocks_that_day():
    # Friday's lunch moved to Monday afternoon
    series = make_series(exceptions=[SeriesException(
        id="ex-1",
        seriesId="series-1",
        originalStartTime=at(2026, 3, 6, 12),
        newStartTime=at(2026, 3, 9, 14),
        newEndTime=at(2026, 3, 9, 15),
    )])
    start, end = day_window(date(2026, 3, 9), OSLO)

    blocked = series_blocked_intervals(series, start, end, OSLO)

    assert [(b.start, b.source) for b in blocked] == [
        (at(2026, 3, 9, 12), BlockSource.RECURRING),
        (at(2026, 3, 9, 14), BlockSource.MOVED),
    ]


def test_occurrence_moved_away_frees_its_original_day():
    series = make_series(exceptions=[SeriesException(
        id="ex-1",
        seriesId="series-1",
        originalStartTime=at(2026, 3, 6, 12),
        newStartTime=at(2026, 3, 9, 14),
        newEndTime=at(2026, 3, 9, 15),
    )])
    start, end = day_window(date(2026, 3, 6), OSLO)

    assert series_blocked_intervals(series, start, end, OSLO) == []


def test_move_from_a_non_occurrence_is_ignored():
    # Saturday is not an occurrence, so the exception matches nothing
    series = make_series(exceptions=[SeriesException(
        id="ex-1",
        seriesId="series-1",
        originalStartTime=at(2026, 3, 7, 12),
        newStartTime=at(2026, 3, 9, 14),
        newEndTime=at(2026, 3, 9, 15),
    )])
    start, end = day_window(date(2026, 3, 9), OSLO)

    blocked = series_blocked_intervals(series, start, end, OSLO)

    assert [b.source for b in blocked] == [BlockSource.RECURRING]


def test_series_ended_before_window_blocks_nothing():
    series = make_series(seriesEndDate=date(2026, 3, 6))
    start, end = day_window(date(2026, 3, 9), OSLO)

    assert series_blocked_intervals(series, start, end, OSLO) == []
