"""
Availability service - working hours, unavailability and bookable slots.

Slot queries are recomputed from storage on every call; nothing here keeps
scheduling state between requests.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.scheduling.aggregator import collect_blocked_intervals
from app.scheduling.errors import InvalidTimeRange, UnavailabilityNotFound
from app.scheduling.intervals import (
    BlockSource, BlockedInterval, Interval, day_window, ensure_aware, sort_by_start,
)
from app.scheduling.slots import generate_slots, working_interval_for
from app.schemas.availability import WorkingHoursRule, WorkingHoursRuleIn
from app.schemas.unavailability import OneOffUnavailability, OneOffUnavailabilityCreate

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for working hours, blocked time and slot generation."""

    def __init__(
        self,
        repository,
        tz: Optional[ZoneInfo] = None,
        fetch_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.tz = tz or settings.tz
        self.fetch_timeout = settings.FETCH_TIMEOUT_SECONDS if fetch_timeout is None else fetch_timeout

    async def _fetch(self, coro):
        if self.fetch_timeout:
            return await asyncio.wait_for(coro, timeout=self.fetch_timeout)
        return await coro

    # Working hours

    async def get_working_hours(self, stylist_id: str) -> List[WorkingHoursRule]:
        return await self.repository.get_working_hours(stylist_id)

    async def get_working_interval(self, stylist_id: str, day: date) -> Optional[Interval]:
        """Working interval for ``day``; None means the stylist is not working."""
        rules = await self._fetch(self.repository.get_working_hours(stylist_id))
        return working_interval_for(rules, day, self.tz)

    async def replace_working_hours(
        self, stylist_id: str, rules_in: List[WorkingHoursRuleIn]
    ) -> List[WorkingHoursRule]:
        """Replace the whole weekly schedule; one rule per weekday."""
        seen = set()
        rules = []
        for rule in rules_in:
            if rule.weekday in seen:
                raise InvalidTimeRange(f"More than one rule for weekday {rule.weekday}")
            if rule.endTime <= rule.startTime:
                raise InvalidTimeRange("Working hours must end after they start")
            seen.add(rule.weekday)
            rules.append(WorkingHoursRule(
                stylistId=stylist_id,
                weekday=rule.weekday,
                startTime=rule.startTime,
                endTime=rule.endTime,
            ))

        saved = await self.repository.replace_working_hours(stylist_id, rules)
        logger.info(f"Replaced working hours for stylist {stylist_id}: {len(saved)} working days")
        return saved

    # One-off unavailability

    async def list_unavailability(
        self, stylist_id: str, start: datetime, end: datetime
    ) -> List[OneOffUnavailability]:
        start, end = self._window(start, end)
        return await self.repository.get_one_off_unavailability(stylist_id, start, end)

    async def add_unavailability(
        self, stylist_id: str, unavailability_in: OneOffUnavailabilityCreate
    ) -> OneOffUnavailability:
        start, end = self._window(unavailability_in.startTime, unavailability_in.endTime)
        created = await self.repository.add_one_off_unavailability(
            stylist_id, start, end, unavailability_in.reason
        )
        logger.info(f"Added unavailability {created.id} for stylist {stylist_id}")
        return created

    async def remove_unavailability(self, stylist_id: str, unavailability_id: str) -> None:
        removed = await self.repository.remove_one_off_unavailability(stylist_id, unavailability_id)
        if not removed:
            raise UnavailabilityNotFound(f"Unavailability {unavailability_id} not found")
        logger.info(f"Removed unavailability {unavailability_id} for stylist {stylist_id}")

    # Blocked time

    async def get_blocked_intervals(
        self, stylist_id: str, start: datetime, end: datetime
    ) -> List[BlockedInterval]:
        """One-off and recurring unavailability overlapping the window, ordered by start."""
        start, end = self._window(start, end)
        one_offs, series = await asyncio.gather(
            self._fetch(self.repository.get_one_off_unavailability(stylist_id, start, end)),
            self._fetch(self.repository.get_recurring_series_with_exceptions(stylist_id)),
        )
        return collect_blocked_intervals(one_offs, series, start, end, self.tz)

    async def get_booked_intervals(
        self, stylist_id: str, start: datetime, end: datetime
    ) -> List[BlockedInterval]:
        """Pending and confirmed bookings overlapping the window."""
        start, end = self._window(start, end)
        bookings = await self._fetch(self.repository.get_active_bookings(stylist_id, start, end))
        return [
            BlockedInterval(
                start=booking.startTime,
                end=booking.endTime,
                source=BlockSource.BOOKING,
                source_id=booking.id,
            )
            for booking in bookings
        ]

    # Slots

    async def get_day_schedule(
        self,
        stylist_id: str,
        day: date,
        service_duration_minutes: int,
        slot_granularity_minutes: Optional[int] = None,
    ) -> Tuple[Optional[Interval], List[Interval]]:
        """Return the working interval of ``day`` together with its bookable slots."""
        granularity = settings.SLOT_GRANULARITY_MINUTES if slot_granularity_minutes is None else slot_granularity_minutes
        start, end = day_window(day, self.tz)

        # The three reads are independent
        working, unavailable, booked = await asyncio.gather(
            self.get_working_interval(stylist_id, day),
            self.get_blocked_intervals(stylist_id, start, end),
            self.get_booked_intervals(stylist_id, start, end),
        )

        slots = generate_slots(
            working,
            sort_by_start(unavailable + booked),
            service_duration_minutes,
            granularity,
        )
        logger.debug(
            f"Generated {len(slots)} slots for stylist {stylist_id} on {day} "
            f"({service_duration_minutes} min, grid {granularity} min, "
            f"{len(unavailable)} unavailable, {len(booked)} booked)"
        )
        return working, slots

    async def generate_slots(
        self,
        stylist_id: str,
        day: date,
        service_duration_minutes: int,
        slot_granularity_minutes: Optional[int] = None,
    ) -> List[Interval]:
        """Bookable slots of the requested duration on ``day``, ascending by start."""
        _, slots = await self.get_day_schedule(
            stylist_id, day, service_duration_minutes, slot_granularity_minutes
        )
        return slots

    async def is_bookable(self, stylist_id: str, start: datetime, end: datetime) -> bool:
        """Check an arbitrary interval against working hours and all blocked time."""
        start, end = self._window(start, end)
        working = await self.get_working_interval(stylist_id, start.astimezone(self.tz).date())
        if working is None or not working.contains(Interval(start=start, end=end)):
            return False

        unavailable, booked = await asyncio.gather(
            self.get_blocked_intervals(stylist_id, start, end),
            self.get_booked_intervals(stylist_id, start, end),
        )
        return not (unavailable or booked)

    def _window(self, start: datetime, end: datetime) -> Tuple[datetime, datetime]:
        start = ensure_aware(start, self.tz)
        end = ensure_aware(end, self.tz)
        if end <= start:
            raise InvalidTimeRange("End must be after start")
        return start, end
