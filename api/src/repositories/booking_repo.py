"""
Booking repository.

Bookings belong to a customer identified by Firebase uid; every lookup that
serves a customer request is scoped by that uid.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import structlog
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from api.src.repositories.base import (
    BaseRepository,
    date_to_datetime,
    is_object_id,
    to_object_id,
    utcnow,
)

logger = structlog.get_logger(__name__)


class BookingRepository(BaseRepository):
    """Repository for customer bookings."""

    collection_name = "bookings"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("bookingId", ASCENDING)], unique=True)
        await self.collection.create_index([("firebaseUid", ASCENDING), ("createdAt", DESCENDING)])
        await self.collection.create_index([("payment.status", ASCENDING)])
        await self.collection.create_index(
            [
                ("theatre.screen.screenNumber", ASCENDING),
                ("showtime.date", ASCENDING),
                ("showtime.time", ASCENDING),
            ]
        )

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a booking.

        Raises:
            DuplicateValueError: If the bookingId is already taken
        """
        now = utcnow()
        document = {**document, "createdAt": now, "updatedAt": now}
        with self.translate_errors():
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("booking_created", booking_id=document["bookingId"], seats=len(document.get("seats", [])))
        return document

    async def find_for_customer(
        self,
        firebase_uid: str,
        reference: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Find a customer's booking by bookingId or document id.

        Args:
            firebase_uid: Owner of the booking
            reference: ``bookingId`` (e.g. BK12345678ABCD) or ObjectId hex

        Returns:
            Booking document or None
        """
        clauses: List[Dict[str, Any]] = [{"bookingId": reference}]
        if is_object_id(reference):
            clauses.append({"_id": to_object_id(reference)})
        return await self.collection.find_one({"$or": clauses, "firebaseUid": firebase_uid})

    async def list_for_customer(
        self,
        firebase_uid: str,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of a customer's bookings and the total count."""
        query: Dict[str, Any] = {"firebaseUid": firebase_uid}
        if status:
            query["status"] = status
        if start_date or end_date:
            window: Dict[str, Any] = {}
            if start_date:
                window["$gte"] = date_to_datetime(start_date)
            if end_date:
                window["$lte"] = date_to_datetime(end_date)
            query["showtime.date"] = window

        direction = DESCENDING if sort_order == "desc" else ASCENDING
        cursor = (
            self.collection.find(query)
            .sort(sort_by, direction)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        bookings = await cursor.to_list()
        total = await self.collection.count_documents(query)
        return bookings, total

    async def list_confirmed_for_show(
        self,
        screen_id: str,
        show_date: date,
        showtime: str,
    ) -> List[Dict[str, Any]]:
        """Confirmed bookings for one screening."""
        cursor = self.collection.find(
            {
                "theatre.screen.screenNumber": screen_id,
                "showtime.date": date_to_datetime(show_date),
                "showtime.time": showtime,
                "status": "confirmed",
            }
        )
        return await cursor.to_list()

    async def update(self, booking_oid: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Set fields (dotted paths allowed) and return the updated booking."""
        return await self.collection.find_one_and_update(
            {"_id": to_object_id(booking_oid)},
            {"$set": {**fields, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
