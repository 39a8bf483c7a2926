from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date, datetime, time
from enum import Enum

from app.scheduling.intervals import same_awareness
from app.scheduling.recurrence import RecurrenceRule, parse_rrule

class OneOffUnavailabilityCreate(BaseModel):
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None

class OneOffUnavailability(BaseModel):
    id: str
    stylistId: str
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None

class SeriesException(BaseModel):
    id: str
    seriesId: str
    originalStartTime: datetime
    newStartTime: Optional[datetime] = None
    newEndTime: Optional[datetime] = None

    @property
    def is_cancellation(self) -> bool:
        return self.newStartTime is None or self.newEndTime is None

class RecurringSeriesBase(BaseModel):
    title: Optional[str] = None
    startTime: time  # Time of day, e.g. "12:00"
    endTime: time
    rrule: str = Field(..., description="e.g. FREQ=WEEKLY;BYDAY=MO,WE;INTERVAL=2")
    seriesStartDate: date
    seriesEndDate: Optional[date] = None

class RecurringSeriesCreate(RecurringSeriesBase):
    pass

# A series update may clear title and seriesEndDate, never these
REQUIRED_SERIES_FIELDS = ("startTime", "endTime", "rrule", "seriesStartDate")

class RecurringSeriesUpdate(BaseModel):
    title: Optional[str] = None
    startTime: Optional[time] = None
    endTime: Optional[time] = None
    rrule: Optional[str] = None
    seriesStartDate: Optional[date] = None
    seriesEndDate: Optional[date] = None

    @model_validator(mode="after")
    def check_required_not_cleared(self):
        cleared = [
            name for name in REQUIRED_SERIES_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self

class RecurringSeries(RecurringSeriesBase):
    id: str
    stylistId: str
    exceptions: List[SeriesException] = []

    def recurrence_rule(self) -> RecurrenceRule:
        """Parse the stored rule; weekly rules without BYDAY use the start weekday."""
        return parse_rrule(self.rrule).with_default_weekday(self.seriesStartDate)

class RecurringSeriesUpdateResponse(BaseModel):
    series: RecurringSeries
    orphanedExceptionsRemoved: int = 0

class OccurrenceCancel(BaseModel):
    originalStartTime: datetime

class OccurrenceMove(BaseModel):
    originalStartTime: datetime
    newStartTime: datetime
    newEndTime: datetime

    @model_validator(mode="after")
    def check_order(self):
        if same_awareness(self.newStartTime, self.newEndTime) and self.newEndTime <= self.newStartTime:
            raise ValueError("newEndTime must be after newStartTime")
        return self

class OccurrenceStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    MOVED = "moved"

class OccurrenceResponse(BaseModel):
    seriesId: str
    title: Optional[str] = None
    originalStartTime: datetime
    originalEndTime: datetime
    status: OccurrenceStatus
    startTime: Optional[datetime] = None  # Effective interval, absent when cancelled
    endTime: Optional[datetime] = None
    exceptionId: Optional[str] = None
