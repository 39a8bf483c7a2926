"""MongoDB access for bookings."""

from typing import List, Optional
from datetime import datetime, timezone
from bson import ObjectId

from app.db.availability import to_object_id, booking_from_doc
from app.schemas.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus


class BookingRepository:

    def __init__(self, database):
        self.db = database

    async def insert_booking(
        self,
        stylist_id: str,
        client_id: Optional[str],
        start: datetime,
        end: datetime,
        notes: Optional[str] = None,
    ) -> Booking:
        doc = {
            "stylistId": stylist_id,
            "clientId": client_id,
            "startTime": start,
            "endTime": end,
            "status": BookingStatus.PENDING.value,
            "notes": notes,
            "createdAt": datetime.now(timezone.utc),
        }
        result = await self.db.bookings.insert_one(doc)
        doc["_id"] = result.inserted_id
        return booking_from_doc(doc)

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        object_id = to_object_id(booking_id)
        if object_id is None:
            return None
        doc = await self.db.bookings.find_one({"_id": object_id})
        return booking_from_doc(doc) if doc else None

    async def find_overlapping_active(self, stylist_id: str, start: datetime, end: datetime) -> List[Booking]:
        cursor = self.db.bookings.find({
            "stylistId": stylist_id,
            "status": {"$in": [s.value for s in ACTIVE_BOOKING_STATUSES]},
            "startTime": {"$lt": end},
            "endTime": {"$gt": start},
        }).sort([("createdAt", 1), ("_id", 1)])
        return [booking_from_doc(doc) for doc in await cursor.to_list(length=None)]

    async def update_status(self, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        object_id = to_object_id(booking_id)
        if object_id is None:
            return None
        await self.db.bookings.update_one(
            {"_id": object_id},
            {"$set": {"status": status.value, "updatedAt": datetime.now(timezone.utc)}}
        )
        return await self.get_booking(booking_id)

    async def delete_booking(self, booking_id: str) -> bool:
        result = await self.db.bookings.delete_one({"_id": ObjectId(booking_id)})
        return result.deleted_count > 0
