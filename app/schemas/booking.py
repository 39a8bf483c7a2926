from pydantic import BaseModel, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from app.scheduling.intervals import same_awareness

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Only these statuses block new slots
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

class BookingCreate(BaseModel):
    stylistId: str
    startTime: datetime
    endTime: datetime
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if same_awareness(self.startTime, self.endTime) and self.endTime <= self.startTime:
            raise ValueError("endTime must be after startTime")
        return self

class BookingStatusUpdate(BaseModel):
    status: BookingStatus

class Booking(BaseModel):
    id: str
    stylistId: str
    clientId: Optional[str] = None
    startTime: datetime
    endTime: datetime
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
