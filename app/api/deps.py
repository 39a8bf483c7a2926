"""API dependencies: repositories and services per request."""

from fastapi import Depends, HTTPException, status

from app.db.availability import AvailabilityRepository
from app.db.bookings import BookingRepository
from app.db.mongodb import db
from app.scheduling.errors import (
    BookingNotFound, InvalidBookingTransition, InvalidRecurrenceRule, InvalidTimeRange,
    OccurrenceNotFound, SchedulingError, SeriesNotFound, SlotConflict, UnavailabilityNotFound,
)
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.series_service import SeriesMutationService


def get_availability_repository() -> AvailabilityRepository:
    return AvailabilityRepository(db.db)


def get_booking_repository() -> BookingRepository:
    return BookingRepository(db.db)


def get_availability_service(
    repository=Depends(get_availability_repository),
) -> AvailabilityService:
    return AvailabilityService(repository)


def get_series_service(
    repository=Depends(get_availability_repository),
) -> SeriesMutationService:
    return SeriesMutationService(repository)


def get_booking_service(
    repository=Depends(get_booking_repository),
    availability: AvailabilityService = Depends(get_availability_service),
) -> BookingService:
    return BookingService(repository, availability)


_ERROR_STATUS = {
    SeriesNotFound: status.HTTP_404_NOT_FOUND,
    OccurrenceNotFound: status.HTTP_404_NOT_FOUND,
    UnavailabilityNotFound: status.HTTP_404_NOT_FOUND,
    BookingNotFound: status.HTTP_404_NOT_FOUND,
    InvalidRecurrenceRule: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidTimeRange: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SlotConflict: status.HTTP_409_CONFLICT,
    InvalidBookingTransition: status.HTTP_409_CONFLICT,
}


def to_http_exception(error: SchedulingError) -> HTTPException:
    """Map a scheduling error onto the HTTP status the endpoints answer with."""
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
