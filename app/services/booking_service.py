"""
Booking creation and lifecycle.

Slots shown to a client can be taken before the client books, so creation
re-validates the interval and then re-checks for a racing writer after insert.
"""

import logging
from datetime import datetime
from typing import List, Optional

from app.scheduling.errors import BookingNotFound, InvalidBookingTransition, SlotConflict
from app.scheduling.intervals import ensure_aware
from app.schemas.booking import Booking, BookingCreate, BookingStatus
from app.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class BookingService:

    def __init__(self, repository, availability: AvailabilityService):
        self.repository = repository
        self.availability = availability

    async def create_booking(self, client_id: Optional[str], booking_in: BookingCreate) -> Booking:
        """
        Create a pending booking.

        Raises SlotConflict when the interval is outside working hours, blocked,
        or lost to a booking created concurrently. Callers should re-fetch slots.
        """
        tz = self.availability.tz
        start = ensure_aware(booking_in.startTime, tz)
        end = ensure_aware(booking_in.endTime, tz)

        if not await self.availability.is_bookable(booking_in.stylistId, start, end):
            logger.info(
                f"Rejected booking for stylist {booking_in.stylistId} at {start.isoformat()}: slot not available"
            )
            raise SlotConflict("The selected time is no longer available, please choose another slot")

        booking = await self.repository.insert_booking(
            booking_in.stylistId, client_id, start, end, booking_in.notes
        )

        # Optimistic re-check: the earliest overlapping booking wins
        overlapping = await self.repository.find_overlapping_active(booking_in.stylistId, start, end)
        if overlapping and overlapping[0].id != booking.id:
            await self.repository.delete_booking(booking.id)
            logger.info(
                f"Booking {booking.id} lost a race to {overlapping[0].id} for stylist {booking_in.stylistId}"
            )
            raise SlotConflict("The selected time was just booked by someone else, please choose another slot")

        logger.info(f"Created booking {booking.id} for stylist {booking_in.stylistId} at {start.isoformat()}")
        return booking

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    async def update_status(self, booking_id: str, status: BookingStatus) -> Booking:
        booking = await self.get_booking(booking_id)
        if status == booking.status:
            return booking
        if status not in ALLOWED_TRANSITIONS[booking.status]:
            raise InvalidBookingTransition(
                f"Cannot change booking from {booking.status.value} to {status.value}"
            )
        updated = await self.repository.update_status(booking_id, status)
        logger.info(f"Booking {booking_id} changed from {booking.status.value} to {status.value}")
        return updated

    async def list_active_bookings(self, stylist_id: str, start: datetime, end: datetime) -> List[Booking]:
        tz = self.availability.tz
        return await self.repository.find_overlapping_active(
            stylist_id, ensure_aware(start, tz), ensure_aware(end, tz)
        )
