"""
Shared fixtures: in-memory repositories standing in for MongoDB, and an
HTTP client wired to them through dependency overrides.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_availability_repository, get_booking_repository
from app.core.auth import create_access_token
from app.scheduling.intervals import intervals_overlap
from app.schemas.availability import WorkingHoursRule
from app.schemas.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from app.schemas.unavailability import OneOffUnavailability, RecurringSeries, SeriesException
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.series_service import SeriesMutationService

OSLO = ZoneInfo("Europe/Oslo")
STYLIST_ID = "stylist-1"
OTHER_STYLIST_ID = "stylist-2"
CLIENT_ID = "client-1"


def at(year, month, day, hour=0, minute=0) -> datetime:
    """Local wall-clock instant in Europe/Oslo."""
    return datetime(year, month, day, hour, minute, tzinfo=OSLO)


class MemoryAvailabilityRepository:
    """Same calls as AvailabilityRepository, kept in dicts."""

    def __init__(self, bookings: Optional[Dict[str, Booking]] = None):
        self.rules: Dict[str, List[WorkingHoursRule]] = {}
        self.one_offs: Dict[str, OneOffUnavailability] = {}
        self.series: Dict[str, RecurringSeries] = {}
        self.exceptions: Dict[str, SeriesException] = {}
        self.bookings = bookings if bookings is not None else {}
        self.fail_exception_delete = False

    async def get_working_hours(self, stylist_id):
        return sorted(self.rules.get(stylist_id, []), key=lambda r: r.weekday)

    async def replace_working_hours(self, stylist_id, rules):
        self.rules[stylist_id] = [
            rule.model_copy(update={"id": str(ObjectId()), "stylistId": stylist_id}) for rule in rules
        ]
        return await self.get_working_hours(stylist_id)

    async def get_one_off_unavailability(self, stylist_id, start, end):
        entries = [
            entry for entry in self.one_offs.values()
            if entry.stylistId == stylist_id and intervals_overlap(entry.startTime, entry.endTime, start, end)
        ]
        return sorted(entries, key=lambda e: e.startTime)

    async def add_one_off_unavailability(self, stylist_id, start, end, reason=None):
        entry = OneOffUnavailability(
            id=str(ObjectId()), stylistId=stylist_id, startTime=start, endTime=end, reason=reason
        )
        self.one_offs[entry.id] = entry
        return entry

    async def remove_one_off_unavailability(self, stylist_id, unavailability_id):
        entry = self.one_offs.get(unavailability_id)
        if entry is None or entry.stylistId != stylist_id:
            return False
        del self.one_offs[unavailability_id]
        return True

    def _with_exceptions(self, series: RecurringSeries) -> RecurringSeries:
        exceptions = sorted(
            (ex for ex in self.exceptions.values() if ex.seriesId == series.id),
            key=lambda ex: ex.originalStartTime,
        )
        return series.model_copy(update={"exceptions": exceptions})

    async def get_recurring_series_with_exceptions(self, stylist_id):
        return [self._with_exceptions(s) for s in self.series.values() if s.stylistId == stylist_id]

    async def get_series(self, series_id):
        series = self.series.get(series_id)
        return self._with_exceptions(series) if series else None

    async def insert_series(self, stylist_id, title, start_time, end_time, rrule, series_start_date, series_end_date):
        series = RecurringSeries(
            id=str(ObjectId()),
            stylistId=stylist_id,
            title=title,
            startTime=start_time,
            endTime=end_time,
            rrule=rrule,
            seriesStartDate=series_start_date,
            seriesEndDate=series_end_date,
        )
        self.series[series.id] = series
        return series

    async def save_series(self, series):
        self.series[series.id] = series.model_copy(update={"exceptions": []})

    async def delete_series(self, series_id):
        for exception_id in [ex.id for ex in self.exceptions.values() if ex.seriesId == series_id]:
            del self.exceptions[exception_id]
        return self.series.pop(series_id, None) is not None

    async def upsert_exception(self, series_id, original_start, new_start=None, new_end=None):
        for exception in self.exceptions.values():
            if exception.seriesId == series_id and exception.originalStartTime == original_start:
                updated = exception.model_copy(update={"newStartTime": new_start, "newEndTime": new_end})
                self.exceptions[exception.id] = updated
                return updated
        created = SeriesException(
            id=str(ObjectId()),
            seriesId=series_id,
            originalStartTime=original_start,
            newStartTime=new_start,
            newEndTime=new_end,
        )
        self.exceptions[created.id] = created
        return created

    async def delete_exception(self, series_id, exception_id):
        exception = self.exceptions.get(exception_id)
        if exception is None or exception.seriesId != series_id:
            return False
        del self.exceptions[exception_id]
        return True

    async def delete_exceptions(self, exception_ids):
        if self.fail_exception_delete:
            raise RuntimeError("storage unavailable")
        removed = 0
        for exception_id in exception_ids:
            if self.exceptions.pop(exception_id, None) is not None:
                removed += 1
        return removed

    async def get_active_bookings(self, stylist_id, start, end):
        return sorted(
            (
                b for b in self.bookings.values()
                if b.stylistId == stylist_id
                and b.status in ACTIVE_BOOKING_STATUSES
                and intervals_overlap(b.startTime, b.endTime, start, end)
            ),
            key=lambda b: b.startTime,
        )


class MemoryBookingRepository:
    """Same calls as BookingRepository; shares its booking dict with the availability side."""

    def __init__(self, bookings: Dict[str, Booking]):
        self.bookings = bookings
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        # Strictly increasing so creation order is unambiguous
        self._clock += timedelta(seconds=1)
        return self._clock

    async def insert_booking(self, stylist_id, client_id, start, end, notes=None):
        booking = Booking(
            id=str(ObjectId()),
            stylistId=stylist_id,
            clientId=client_id,
            startTime=start,
            endTime=end,
            status=BookingStatus.PENDING,
            notes=notes,
            createdAt=self._now(),
        )
        self.bookings[booking.id] = booking
        return booking

    async def get_booking(self, booking_id):
        return self.bookings.get(booking_id)

    async def find_overlapping_active(self, stylist_id, start, end):
        return sorted(
            (
                b for b in self.bookings.values()
                if b.stylistId == stylist_id
                and b.status in ACTIVE_BOOKING_STATUSES
                and intervals_overlap(b.startTime, b.endTime, start, end)
            ),
            key=lambda b: (b.createdAt, b.id),
        )

    async def update_status(self, booking_id, status):
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        updated = booking.model_copy(update={"status": status, "updatedAt": self._now()})
        self.bookings[booking_id] = updated
        return updated

    async def delete_booking(self, booking_id):
        return self.bookings.pop(booking_id, None) is not None


def weekday_rules(stylist_id=STYLIST_ID, start=time(9, 0), end=time(17, 0), days=range(0, 5)):
    return [
        WorkingHoursRule(id=str(ObjectId()), stylistId=stylist_id, weekday=day, startTime=start, endTime=end)
        for day in days
    ]


@pytest.fixture
def tz():
    return OSLO


@pytest.fixture
def bookings():
    return {}


@pytest.fixture
def repository(bookings):
    repo = MemoryAvailabilityRepository(bookings)
    # Monday to Friday, 09:00-17:00
    repo.rules[STYLIST_ID] = weekday_rules()
    return repo


@pytest.fixture
def booking_repository(bookings):
    return MemoryBookingRepository(bookings)


@pytest.fixture
def availability_service(repository, tz):
    return AvailabilityService(repository, tz=tz, fetch_timeout=1.0)


@pytest.fixture
def series_service(repository, tz):
    return SeriesMutationService(repository, tz=tz)


@pytest.fixture
def booking_service(booking_repository, availability_service):
    return BookingService(booking_repository, availability_service)


@pytest.fixture
def stylist_token():
    return create_access_token({"sub": STYLIST_ID, "role": "stylist"})


@pytest.fixture
def client_token():
    return create_access_token({"sub": CLIENT_ID, "role": "client"})


@pytest_asyncio.fixture
async def client(repository, booking_repository):
    from main import app

    app.dependency_overrides[get_availability_repository] = lambda: repository
    app.dependency_overrides[get_booking_repository] = lambda: booking_repository
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
