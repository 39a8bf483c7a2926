from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Dict, Any
from datetime import datetime
import logging

from app.api.deps import get_availability_service, to_http_exception
from app.core.auth import get_current_stylist_id
from app.scheduling.errors import SchedulingError
from app.schemas.unavailability import OneOffUnavailability, OneOffUnavailabilityCreate
from app.services.availability_service import AvailabilityService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/{stylist_id}", response_model=List[OneOffUnavailability])
async def get_stylist_unavailability(
    stylist_id: str,
    start: datetime = Query(..., description="Window start (ISO 8601)"),
    end: datetime = Query(..., description="Window end (ISO 8601)"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Get a stylist's one-off unavailability overlapping a window
    """
    try:
        return await service.list_unavailability(stylist_id, start, end)
    except SchedulingError as e:
        raise to_http_exception(e)

@router.post("/me", response_model=OneOffUnavailability, status_code=status.HTTP_201_CREATED)
async def add_my_unavailability(
    unavailability_in: OneOffUnavailabilityCreate,
    stylist_id: str = Depends(get_current_stylist_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Block a single time range for the current stylist
    """
    try:
        return await service.add_unavailability(stylist_id, unavailability_in)
    except SchedulingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error in add_my_unavailability: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while adding unavailability"
        )

@router.delete("/me/{unavailability_id}", response_model=Dict[str, Any])
async def remove_my_unavailability(
    unavailability_id: str,
    stylist_id: str = Depends(get_current_stylist_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Remove a one-off unavailability of the current stylist
    """
    try:
        await service.remove_unavailability(stylist_id, unavailability_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"message": f"Unavailability {unavailability_id} removed successfully"}
