"""MongoDB access for working hours, unavailability, recurring series and their exceptions."""

from typing import Any, Dict, Iterable, List, Optional
from datetime import date, datetime, time
from bson import ObjectId
from pymongo import DeleteMany, UpdateOne

from app.schemas.availability import WorkingHoursRule
from app.schemas.booking import ACTIVE_BOOKING_STATUSES, Booking
from app.schemas.unavailability import OneOffUnavailability, RecurringSeries, SeriesException


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except Exception:
        return None

def _time_to_str(value: time) -> str:
    return value.strftime("%H:%M:%S")

def _date_to_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None

def _to_rule(doc: Dict[str, Any]) -> WorkingHoursRule:
    return WorkingHoursRule(
        id=str(doc["_id"]),
        stylistId=doc["stylistId"],
        weekday=doc["weekday"],
        startTime=doc["startTime"],
        endTime=doc["endTime"],
    )

def _to_one_off(doc: Dict[str, Any]) -> OneOffUnavailability:
    return OneOffUnavailability(
        id=str(doc["_id"]),
        stylistId=doc["stylistId"],
        startTime=doc["startTime"],
        endTime=doc["endTime"],
        reason=doc.get("reason"),
    )

def _to_exception(doc: Dict[str, Any]) -> SeriesException:
    return SeriesException(
        id=str(doc["_id"]),
        seriesId=doc["seriesId"],
        originalStartTime=doc["originalStartTime"],
        newStartTime=doc.get("newStartTime"),
        newEndTime=doc.get("newEndTime"),
    )

def _to_series(doc: Dict[str, Any], exceptions: List[SeriesException]) -> RecurringSeries:
    return RecurringSeries(
        id=str(doc["_id"]),
        stylistId=doc["stylistId"],
        title=doc.get("title"),
        startTime=doc["startTime"],
        endTime=doc["endTime"],
        rrule=doc["rrule"],
        seriesStartDate=doc["seriesStartDate"],
        seriesEndDate=doc.get("seriesEndDate"),
        exceptions=exceptions,
    )

def booking_from_doc(doc: Dict[str, Any]) -> Booking:
    return Booking(
        id=str(doc["_id"]),
        stylistId=doc["stylistId"],
        clientId=doc.get("clientId"),
        startTime=doc["startTime"],
        endTime=doc["endTime"],
        status=doc["status"],
        notes=doc.get("notes"),
        createdAt=doc.get("createdAt"),
        updatedAt=doc.get("updatedAt"),
    )

class AvailabilityRepository:
    """
    Storage calls consumed by the scheduler.

    Every read returns fresh pydantic models; nothing is cached between calls.
    """

    def __init__(self, database):
        self.db = database

    # Working hours

    async def get_working_hours(self, stylist_id: str) -> List[WorkingHoursRule]:
        cursor = self.db.stylist_availability_rules.find({"stylistId": stylist_id}).sort("weekday", 1)
        return [_to_rule(doc) for doc in await cursor.to_list(length=None)]

    async def replace_working_hours(self, stylist_id: str, rules: Iterable[WorkingHoursRule]) -> List[WorkingHoursRule]:
        """
        Replace the stylist's weekly rules with the new set.

        Kept weekdays are upserted in place before dropped ones are deleted, so a
        concurrent read never sees a day that stays working as missing.
        """
        rules = list(rules)
        requests = [
            UpdateOne(
                {"stylistId": stylist_id, "weekday": rule.weekday},
                {"$set": {
                    "startTime": _time_to_str(rule.startTime),
                    "endTime": _time_to_str(rule.endTime),
                }},
                upsert=True
            )
            for rule in rules
        ]
        requests.append(DeleteMany({
            "stylistId": stylist_id,
            "weekday": {"$nin": [rule.weekday for rule in rules]},
        }))
        await self.db.stylist_availability_rules.bulk_write(requests, ordered=True)
        return await self.get_working_hours(stylist_id)

    # One-off unavailability

    async def get_one_off_unavailability(
        self, stylist_id: str, start: datetime, end: datetime
    ) -> List[OneOffUnavailability]:
        # Overlap, not containment: blocks spanning the window edges count
        cursor = self.db.stylist_unavailability.find({
            "stylistId": stylist_id,
            "startTime": {"$lt": end},
            "endTime": {"$gt": start},
        }).sort("startTime", 1)
        return [_to_one_off(doc) for doc in await cursor.to_list(length=None)]

    async def add_one_off_unavailability(
        self, stylist_id: str, start: datetime, end: datetime, reason: Optional[str] = None
    ) -> OneOffUnavailability:
        doc = {"stylistId": stylist_id, "startTime": start, "endTime": end, "reason": reason}
        result = await self.db.stylist_unavailability.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_one_off(doc)

    async def remove_one_off_unavailability(self, stylist_id: str, unavailability_id: str) -> bool:
        object_id = to_object_id(unavailability_id)
        if object_id is None:
            return False
        result = await self.db.stylist_unavailability.delete_one({"_id": object_id, "stylistId": stylist_id})
        return result.deleted_count > 0

    # Recurring series

    async def _exceptions_for(self, series_ids: List[str]) -> Dict[str, List[SeriesException]]:
        grouped = {series_id: [] for series_id in series_ids}
        if not series_ids:
            return grouped
        cursor = self.db.recurring_unavailability_exceptions.find(
            {"seriesId": {"$in": series_ids}}
        ).sort("originalStartTime", 1)
        for doc in await cursor.to_list(length=None):
            grouped.setdefault(doc["seriesId"], []).append(_to_exception(doc))
        return grouped

    async def get_recurring_series_with_exceptions(self, stylist_id: str) -> List[RecurringSeries]:
        cursor = self.db.stylist_recurring_unavailability.find({"stylistId": stylist_id}).sort("seriesStartDate", 1)
        docs = await cursor.to_list(length=None)
        exceptions = await self._exceptions_for([str(doc["_id"]) for doc in docs])
        return [_to_series(doc, exceptions.get(str(doc["_id"]), [])) for doc in docs]

    async def get_series(self, series_id: str) -> Optional[RecurringSeries]:
        object_id = to_object_id(series_id)
        if object_id is None:
            return None
        doc = await self.db.stylist_recurring_unavailability.find_one({"_id": object_id})
        if not doc:
            return None
        exceptions = await self._exceptions_for([series_id])
        return _to_series(doc, exceptions.get(series_id, []))

    async def insert_series(
        self,
        stylist_id: str,
        title: Optional[str],
        start_time: time,
        end_time: time,
        rrule: str,
        series_start_date: date,
        series_end_date: Optional[date],
    ) -> RecurringSeries:
        doc = {
            "stylistId": stylist_id,
            "title": title,
            "startTime": _time_to_str(start_time),
            "endTime": _time_to_str(end_time),
            "rrule": rrule,
            "seriesStartDate": _date_to_str(series_start_date),
            "seriesEndDate": _date_to_str(series_end_date),
        }
        result = await self.db.stylist_recurring_unavailability.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_series(doc, [])

    async def save_series(self, series: RecurringSeries) -> None:
        await self.db.stylist_recurring_unavailability.update_one(
            {"_id": ObjectId(series.id)},
            {"$set": {
                "title": series.title,
                "startTime": _time_to_str(series.startTime),
                "endTime": _time_to_str(series.endTime),
                "rrule": series.rrule,
                "seriesStartDate": _date_to_str(series.seriesStartDate),
                "seriesEndDate": _date_to_str(series.seriesEndDate),
            }}
        )

    async def delete_series(self, series_id: str) -> bool:
        """Delete a series and, first, all of its exceptions."""
        object_id = to_object_id(series_id)
        if object_id is None:
            return False
        await self.db.recurring_unavailability_exceptions.delete_many({"seriesId": series_id})
        result = await self.db.stylist_recurring_unavailability.delete_one({"_id": object_id})
        return result.deleted_count > 0

    # Series exceptions

    async def upsert_exception(
        self,
        series_id: str,
        original_start: datetime,
        new_start: Optional[datetime] = None,
        new_end: Optional[datetime] = None,
    ) -> SeriesException:
        """Create or overwrite the exception keyed by (seriesId, originalStartTime)."""
        key = {"seriesId": series_id, "originalStartTime": original_start}
        await self.db.recurring_unavailability_exceptions.update_one(
            key,
            {"$set": {"newStartTime": new_start, "newEndTime": new_end}},
            upsert=True
        )
        doc = await self.db.recurring_unavailability_exceptions.find_one(key)
        return _to_exception(doc)

    async def delete_exception(self, series_id: str, exception_id: str) -> bool:
        object_id = to_object_id(exception_id)
        if object_id is None:
            return False
        result = await self.db.recurring_unavailability_exceptions.delete_one(
            {"_id": object_id, "seriesId": series_id}
        )
        return result.deleted_count > 0

    async def delete_exceptions(self, exception_ids: List[str]) -> int:
        object_ids = [oid for oid in (to_object_id(i) for i in exception_ids) if oid is not None]
        if not object_ids:
            return 0
        result = await self.db.recurring_unavailability_exceptions.delete_many({"_id": {"$in": object_ids}})
        return result.deleted_count

    # Bookings (read side used by the scheduler)

    async def get_active_bookings(self, stylist_id: str, start: datetime, end: datetime) -> List[Booking]:
        cursor = self.db.bookings.find({
            "stylistId": stylist_id,
            "status": {"$in": [s.value for s in ACTIVE_BOOKING_STATUSES]},
            "startTime": {"$lt": end},
            "endTime": {"$gt": start},
        }).sort("startTime", 1)
        return [booking_from_doc(doc) for doc in await cursor.to_list(length=None)]
