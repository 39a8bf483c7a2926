from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Dict, Any, Optional
from datetime import date, datetime
import logging

from app.api.deps import get_availability_service, to_http_exception
from app.core.auth import get_current_stylist_id
from app.core.config import settings
from app.scheduling.errors import SchedulingError
from app.schemas.availability import (
    BlockedIntervalResponse, Slot, SlotsResponse, WorkingHoursRule, WorkingHoursUpdate,
)
from app.services.availability_service import AvailabilityService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/{stylist_id}/slots", response_model=SlotsResponse)
async def get_available_slots(
    stylist_id: str,
    date: date = Query(..., description="Day to generate slots for (YYYY-MM-DD)"),
    duration: int = Query(..., gt=0, description="Service duration in minutes"),
    granularity: Optional[int] = Query(None, gt=0, description="Grid step in minutes"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Get bookable slots for a stylist on one day.
    Slots are recomputed on every call; re-fetch whenever date or duration changes.
    """
    try:
        working, slots = await service.get_day_schedule(stylist_id, date, duration, granularity)
    except SchedulingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error in get_available_slots: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while generating slots"
        )

    return SlotsResponse(
        stylistId=stylist_id,
        date=date,
        serviceDurationMinutes=duration,
        slotGranularityMinutes=settings.SLOT_GRANULARITY_MINUTES if granularity is None else granularity,
        isWorkingDay=working is not None,
        slots=[Slot(start=slot.start, end=slot.end) for slot in slots],
    )


@router.get("/{stylist_id}/working-hours", response_model=List[WorkingHoursRule])
async def get_working_hours(
    stylist_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Get a stylist's weekly working hours
    """
    return await service.get_working_hours(stylist_id)

@router.get("/{stylist_id}/blocked", response_model=List[BlockedIntervalResponse])
async def get_blocked_intervals(
    stylist_id: str,
    start: datetime = Query(..., description="Window start (ISO 8601)"),
    end: datetime = Query(..., description="Window end (ISO 8601)"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Get one-off and recurring unavailability overlapping a window, ordered by start
    """
    try:
        blocked = await service.get_blocked_intervals(stylist_id, start, end)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [
        BlockedIntervalResponse(
            start=block.start,
            end=block.end,
            source=block.source.value,
            sourceId=block.source_id,
            label=block.label,
        )
        for block in blocked
    ]

@router.put("/me/working-hours", response_model=Dict[str, Any])
async def update_my_working_hours(
    working_hours: WorkingHoursUpdate,
    stylist_id: str = Depends(get_current_stylist_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Replace current stylist's weekly working hours
    """
    try:
        rules = await service.replace_working_hours(stylist_id, working_hours.to_rules())
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "message": "Working hours updated successfully",
        "workingHours": [rule.model_dump(mode="json") for rule in rules],
    }
