"""
Screen show repository.

A show document holds the showtimes of one movie on one screen for one
calendar day; (screenId, bookingDate, movieId) is unique.
"""

from typing import Any, Dict, List, Optional

import structlog
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from api.src.repositories.base import BaseRepository, to_object_id, utcnow

logger = structlog.get_logger(__name__)

ACTIVE = "Active"
INACTIVE = "Inactive"


class ShowRepository(BaseRepository):
    """Repository for per-day screen shows."""

    collection_name = "screen_shows"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("screenId", ASCENDING), ("bookingDate", ASCENDING), ("movieId", ASCENDING)],
            unique=True,
        )
        await self.collection.create_index([("screenId", ASCENDING), ("bookingDate", ASCENDING)])
        await self.collection.create_index([("theatreOwnerId", ASCENDING)])

    async def list_for_screen(self, screen_id: str, booking_date: Optional[str] = None) -> List[Dict[str, Any]]:
        """Shows of a screen, newest date first, optionally for one date."""
        query: Dict[str, Any] = {"screenId": screen_id}
        if booking_date:
            query["bookingDate"] = booking_date
        cursor = self.collection.find(query).sort([("bookingDate", DESCENDING), ("createdAt", DESCENDING)])
        return await cursor.to_list()

    async def list_active_for_movie(self, movie_id: Any, booking_date: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"movieId": to_object_id(movie_id), "status": ACTIVE}
        if booking_date:
            query["bookingDate"] = booking_date
        cursor = self.collection.find(query).sort([("bookingDate", ASCENDING), ("screenId", ASCENDING)])
        return await cursor.to_list()

    async def find_show(self, screen_id: str, booking_date: str, showtime: str) -> Optional[Dict[str, Any]]:
        """The show on a screen and day that lists the given showtime."""
        return await self.collection.find_one(
            {"screenId": screen_id, "bookingDate": booking_date, "showtimes": showtime}
        )

    async def upsert(
        self,
        screen_id: str,
        booking_date: str,
        movie_id: Any,
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create or update the show for (screen, date, movie).

        Returns:
            Stored show document
        """
        movie_oid = to_object_id(movie_id)
        now = utcnow()
        with self.translate_errors():
            return await self.collection.find_one_and_update(
                {"screenId": screen_id, "bookingDate": booking_date, "movieId": movie_oid},
                {
                    "$set": {
                        **fields,
                        "screenId": screen_id,
                        "bookingDate": booking_date,
                        "movieId": movie_oid,
                        "updatedAt": now,
                    },
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )

    async def delete(self, show_id: Any) -> bool:
        result = await self.collection.delete_one({"_id": to_object_id(show_id)})
        return result.deleted_count > 0

    async def deactivate_before(self, booking_date: str) -> int:
        """
        Mark every active show dated before ``booking_date`` inactive.

        Returns:
            Number of shows deactivated
        """
        result = await self.collection.update_many(
            {"bookingDate": {"$lt": booking_date}, "status": ACTIVE},
            {"$set": {"status": INACTIVE, "updatedAt": utcnow()}},
        )
        return result.modified_count
