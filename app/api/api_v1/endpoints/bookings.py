from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List
from datetime import datetime
import logging

from app.api.deps import get_booking_service, to_http_exception
from app.core.auth import get_current_user_id
from app.scheduling.errors import SchedulingError
from app.schemas.booking import Booking, BookingCreate, BookingStatusUpdate
from app.services.booking_service import BookingService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_new_booking(
    booking_in: BookingCreate,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """
    Create a new booking as a client.
    Answers 409 when the slot was taken meanwhile; the client should re-fetch slots.
    """
    try:
        return await service.create_booking(current_user_id, booking_in)
    except SchedulingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error in create_new_booking: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while creating the booking"
        )

@router.get("/stylist/{stylist_id}", response_model=List[Booking])
async def get_stylist_bookings(
    stylist_id: str,
    start: datetime = Query(..., description="Window start (ISO 8601)"),
    end: datetime = Query(..., description="Window end (ISO 8601)"),
    service: BookingService = Depends(get_booking_service),
):
    """
    Get pending and confirmed bookings of a stylist overlapping a window
    """
    return await service.list_active_bookings(stylist_id, start, end)

@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """
    Get booking details (accessible to both client and stylist)
    """
    try:
        booking = await service.get_booking(booking_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    if current_user_id not in (booking.clientId, booking.stylistId):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this booking"
        )
    return booking

@router.post("/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    status_update: BookingStatusUpdate,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """
    Move a booking through its lifecycle. Cancelled bookings free their slot.
    """
    try:
        booking = await service.get_booking(booking_id)
        if current_user_id not in (booking.clientId, booking.stylistId):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to update this booking"
            )
        return await service.update_status(booking_id, status_update.status)
    except HTTPException:
        raise
    except SchedulingError as e:
        raise to_http_exception(e)
