from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional, Union
from datetime import date, datetime, time

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

def _weekday_value(value: Union[int, str]) -> Union[int, str]:
    # Accept "monday".."sunday" as well as 0..6
    if isinstance(value, str) and value.strip().lower() in DAY_NAMES:
        return DAY_NAMES.index(value.strip().lower())
    return value

class WorkingHoursRuleIn(BaseModel):
    weekday: int = Field(..., ge=0, le=6, description="0 = Monday, 6 = Sunday")
    startTime: time
    endTime: time

    @field_validator("weekday", mode="before")
    @classmethod
    def normalize_weekday(cls, value):
        return _weekday_value(value)

class WorkingHoursUpdate(BaseModel):
    """
    Full replacement of a stylist's weekly schedule.

    Either send ``rules`` (one per weekday) or the compact form with
    ``workDays`` sharing one ``startTime``/``endTime``.
    """
    rules: Optional[List[WorkingHoursRuleIn]] = None
    workDays: Optional[List[int]] = None
    startTime: Optional[time] = None
    endTime: Optional[time] = None

    @field_validator("workDays", mode="before")
    @classmethod
    def normalize_work_days(cls, value):
        if value is None:
            return value
        return [_weekday_value(v) for v in value]

    @model_validator(mode="after")
    def check_shape(self):
        if self.rules is None and self.workDays is None:
            raise ValueError("Either rules or workDays must be provided")
        if self.rules is not None and self.workDays is not None:
            raise ValueError("Send rules or workDays, not both")
        if self.workDays is not None and (self.startTime is None or self.endTime is None):
            raise ValueError("startTime and endTime are required with workDays")
        return self

    def to_rules(self) -> List[WorkingHoursRuleIn]:
        if self.rules is not None:
            return list(self.rules)
        return [
            WorkingHoursRuleIn(weekday=day, startTime=self.startTime, endTime=self.endTime)
            for day in self.workDays
        ]

class WorkingHoursRule(BaseModel):
    id: Optional[str] = None
    stylistId: str
    weekday: int
    startTime: time
    endTime: time

class Slot(BaseModel):
    start: datetime
    end: datetime

class SlotsResponse(BaseModel):
    stylistId: str
    date: date
    serviceDurationMinutes: int
    slotGranularityMinutes: int
    isWorkingDay: bool
    slots: List[Slot]

class BlockedIntervalResponse(BaseModel):
    start: datetime
    end: datetime
    source: str
    sourceId: Optional[str] = None
    label: Optional[str] = None
