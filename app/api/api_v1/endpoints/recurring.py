from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Dict, Any
from datetime import date
import logging

from app.api.deps import get_series_service, to_http_exception
from app.core.auth import get_current_stylist_id
from app.scheduling.errors import SchedulingError
from app.schemas.unavailability import (
    OccurrenceCancel, OccurrenceMove, OccurrenceResponse, RecurringSeries,
    RecurringSeriesCreate, RecurringSeriesUpdate, RecurringSeriesUpdateResponse, SeriesException,
)
from app.services.series_service import SeriesMutationService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/{stylist_id}", response_model=List[RecurringSeries])
async def get_stylist_recurring_unavailability(
    stylist_id: str,
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Get a stylist's recurring unavailability series with their exceptions
    """
    return await service.list_series(stylist_id)

@router.get("/{stylist_id}/{series_id}/occurrences", response_model=List[OccurrenceResponse])
async def get_series_occurrences(
    stylist_id: str,
    series_id: str,
    start: date = Query(..., description="First date (YYYY-MM-DD)"),
    end: date = Query(..., description="Last date (YYYY-MM-DD)"),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Get every occurrence of a series between two dates, with exceptions applied.
    """
    try:
        series = await service.get_series(stylist_id, series_id)
        occurrences = await service.list_occurrences(stylist_id, series_id, start, end)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [
        OccurrenceResponse(
            seriesId=series.id,
            title=series.title,
            originalStartTime=occurrence.nominal.start,
            originalEndTime=occurrence.nominal.end,
            status=occurrence.status,
            startTime=occurrence.effective.start if occurrence.effective else None,
            endTime=occurrence.effective.end if occurrence.effective else None,
            exceptionId=occurrence.exception.id if occurrence.exception else None,
        )
        for occurrence in occurrences
    ]

@router.post("/me", response_model=RecurringSeries, status_code=status.HTTP_201_CREATED)
async def create_my_series(
    series_in: RecurringSeriesCreate,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Create a recurring unavailability series for the current stylist
    """
    try:
        return await service.create_series(stylist_id, series_in)
    except SchedulingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error in create_my_series: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while creating the series"
        )

@router.put("/me/{series_id}", response_model=RecurringSeriesUpdateResponse)
async def update_my_series(
    series_id: str,
    series_update: RecurringSeriesUpdate,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Edit a series. Exceptions that no longer match an occurrence are removed.
    """
    try:
        series, removed = await service.update_series(stylist_id, series_id, series_update)
    except SchedulingError as e:
        raise to_http_exception(e)

    return RecurringSeriesUpdateResponse(series=series, orphanedExceptionsRemoved=removed)

@router.delete("/me/{series_id}", response_model=Dict[str, Any])
async def delete_my_series(
    series_id: str,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Delete a series together with all of its exceptions
    """
    try:
        await service.delete_series(stylist_id, series_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"message": f"Series {series_id} deleted successfully"}

@router.post("/me/{series_id}/occurrences/cancel", response_model=SeriesException)
async def cancel_my_occurrence(
    series_id: str,
    body: OccurrenceCancel,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Cancel a single occurrence; its time becomes bookable
    """
    try:
        return await service.cancel_occurrence(stylist_id, series_id, body.originalStartTime)
    except SchedulingError as e:
        raise to_http_exception(e)

@router.post("/me/{series_id}/occurrences/move", response_model=SeriesException)
async def move_my_occurrence(
    series_id: str,
    body: OccurrenceMove,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Move a single occurrence to a new time range
    """
    try:
        return await service.move_occurrence(
            stylist_id, series_id, body.originalStartTime, body.newStartTime, body.newEndTime
        )
    except SchedulingError as e:
        raise to_http_exception(e)

@router.delete("/me/{series_id}/exceptions/{exception_id}", response_model=Dict[str, Any])
async def restore_my_occurrence(
    series_id: str,
    exception_id: str,
    stylist_id: str = Depends(get_current_stylist_id),
    service: SeriesMutationService = Depends(get_series_service),
):
    """
    Remove an exception, restoring the occurrence to its normal time
    """
    try:
        await service.restore_occurrence(stylist_id, series_id, exception_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"message": f"Exception {exception_id} removed successfully"}
