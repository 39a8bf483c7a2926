"""
Recurring series mutations.

Series move through active -> edited -> deleted. Single occurrences are cancelled
or moved through exceptions keyed by (seriesId, originalStartTime); the series
document itself is never touched by a per-occurrence change.
"""

import logging
from datetime import date, datetime, time
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.scheduling.errors import InvalidTimeRange, OccurrenceNotFound, SeriesNotFound
from app.scheduling.intervals import ensure_aware
from app.scheduling.recurrence import RecurrenceRule, expand, occurs_on, parse_rrule
from app.scheduling.resolver import ResolvedOccurrence, nominal_interval, resolve_occurrences
from app.schemas.unavailability import (
    REQUIRED_SERIES_FIELDS, RecurringSeries, RecurringSeriesCreate, RecurringSeriesUpdate, SeriesException,
)

logger = logging.getLogger(__name__)


def validate_series_fields(
    start_time: time,
    end_time: time,
    rrule: str,
    series_start_date: date,
    series_end_date: Optional[date],
) -> RecurrenceRule:
    """Validate a series definition and return its normalized rule."""
    if end_time <= start_time:
        raise InvalidTimeRange("Series end time must be after its start time")
    if series_end_date is not None and series_end_date < series_start_date:
        raise InvalidTimeRange("Series end date cannot be before its start date")
    return parse_rrule(rrule).with_default_weekday(series_start_date)


def is_occurrence_start(
    series: RecurringSeries,
    rule: RecurrenceRule,
    instant: datetime,
    tz: ZoneInfo,
) -> bool:
    """True if ``instant`` is the nominal start of one of the series' occurrences."""
    day = instant.astimezone(tz).date()
    if not occurs_on(rule, series.seriesStartDate, series.seriesEndDate, day):
        return False
    return nominal_interval(series, day, tz).start == instant


def find_orphaned_exceptions(series: RecurringSeries, tz: ZoneInfo) -> List[SeriesException]:
    rule = series.recurrence_rule()
    return [
        exception for exception in series.exceptions
        if not is_occurrence_start(series, rule, exception.originalStartTime, tz)
    ]


class SeriesMutationService:
    """Service for creating, editing and deleting recurring unavailability."""

    def __init__(self, repository, tz: Optional[ZoneInfo] = None):
        self.repository = repository
        self.tz = tz or settings.tz

    async def list_series(self, stylist_id: str) -> List[RecurringSeries]:
        return await self.repository.get_recurring_series_with_exceptions(stylist_id)

    async def get_series(self, stylist_id: str, series_id: str) -> RecurringSeries:
        series = await self.repository.get_series(series_id)
        if series is None or series.stylistId != stylist_id:
            raise SeriesNotFound(f"Series {series_id} not found")
        return series

    async def create_series(self, stylist_id: str, series_in: RecurringSeriesCreate) -> RecurringSeries:
        rule = validate_series_fields(
            series_in.startTime,
            series_in.endTime,
            series_in.rrule,
            series_in.seriesStartDate,
            series_in.seriesEndDate,
        )
        series = await self.repository.insert_series(
            stylist_id,
            series_in.title,
            series_in.startTime,
            series_in.endTime,
            rule.to_rrule(),
            series_in.seriesStartDate,
            series_in.seriesEndDate,
        )
        logger.info(f"Created recurring series {series.id} ({series.rrule}) for stylist {stylist_id}")
        return series

    async def update_series(
        self, stylist_id: str, series_id: str, series_update: RecurringSeriesUpdate
    ) -> Tuple[RecurringSeries, int]:
        """
        Apply an edit and drop the exceptions it orphaned.

        Returns the updated series and the number of exceptions removed.
        """
        current = await self.get_series(stylist_id, series_id)
        update_data = series_update.model_dump(exclude_unset=True)
        cleared = [name for name in REQUIRED_SERIES_FIELDS if name in update_data and update_data[name] is None]
        if cleared:
            raise InvalidTimeRange(f"{', '.join(cleared)} cannot be cleared on a series")
        merged = RecurringSeries.model_validate({**current.model_dump(), **update_data})

        rule = validate_series_fields(
            merged.startTime,
            merged.endTime,
            merged.rrule,
            merged.seriesStartDate,
            merged.seriesEndDate,
        )
        merged = merged.model_copy(update={"rrule": rule.to_rrule()})
        await self.repository.save_series(merged)
        logger.info(f"Updated recurring series {series_id} for stylist {stylist_id}: {sorted(update_data)}")

        orphans = find_orphaned_exceptions(merged, self.tz)
        removed = 0
        if orphans:
            try:
                removed = await self.repository.delete_exceptions([ex.id for ex in orphans])
                logger.info(f"Removed {removed} orphaned exceptions from series {series_id}")
            except Exception as e:
                # Unmatched exceptions are ignored by resolution
                logger.error(f"Failed to remove orphaned exceptions from series {series_id}: {e}", exc_info=True)

        orphan_ids = {ex.id for ex in orphans} if removed else set()
        merged = merged.model_copy(update={
            "exceptions": [ex for ex in merged.exceptions if ex.id not in orphan_ids]
        })
        return merged, removed

    async def delete_series(self, stylist_id: str, series_id: str) -> None:
        await self.get_series(stylist_id, series_id)
        await self.repository.delete_series(series_id)
        logger.info(f"Deleted recurring series {series_id} for stylist {stylist_id}")

    async def cancel_occurrence(
        self, stylist_id: str, series_id: str, original_start: datetime
    ) -> SeriesException:
        series, original_start = await self._occurrence(stylist_id, series_id, original_start)
        exception = await self.repository.upsert_exception(series.id, original_start, None, None)
        logger.info(f"Cancelled occurrence {original_start.isoformat()} of series {series_id}")
        return exception

    async def move_occurrence(
        self,
        stylist_id: str,
        series_id: str,
        original_start: datetime,
        new_start: datetime,
        new_end: datetime,
    ) -> SeriesException:
        new_start = ensure_aware(new_start, self.tz)
        new_end = ensure_aware(new_end, self.tz)
        if new_end <= new_start:
            raise InvalidTimeRange("Moved occurrence must end after it starts")

        series, original_start = await self._occurrence(stylist_id, series_id, original_start)
        exception = await self.repository.upsert_exception(series.id, original_start, new_start, new_end)
        logger.info(
            f"Moved occurrence {original_start.isoformat()} of series {series_id} "
            f"to {new_start.isoformat()} - {new_end.isoformat()}"
        )
        return exception

    async def restore_occurrence(self, stylist_id: str, series_id: str, exception_id: str) -> None:
        """Remove an exception so the occurrence blocks its nominal time again."""
        await self.get_series(stylist_id, series_id)
        removed = await self.repository.delete_exception(series_id, exception_id)
        if not removed:
            raise OccurrenceNotFound(f"Exception {exception_id} not found on series {series_id}")
        logger.info(f"Restored occurrence (exception {exception_id}) of series {series_id}")

    async def list_occurrences(
        self, stylist_id: str, series_id: str, start: date, end: date
    ) -> List[ResolvedOccurrence]:
        if end < start:
            raise InvalidTimeRange("End date cannot be before start date")
        series = await self.get_series(stylist_id, series_id)
        days = expand(series.recurrence_rule(), series.seriesStartDate, series.seriesEndDate, start, end)
        return resolve_occurrences(series, days, series.exceptions, self.tz)

    async def _occurrence(
        self, stylist_id: str, series_id: str, original_start: datetime
    ) -> Tuple[RecurringSeries, datetime]:
        series = await self.get_series(stylist_id, series_id)
        original_start = ensure_aware(original_start, self.tz)
        if not is_occurrence_start(series, series.recurrence_rule(), original_start, self.tz):
            raise OccurrenceNotFound(
                f"Series {series_id} has no occurrence starting at {original_start.isoformat()}"
            )
        return series, original_start
