"""Screen seat layout repository (one document per screen id)."""

from typing import Any, Dict, Optional

from pymongo import ASCENDING, ReturnDocument

from api.src.repositories.base import BaseRepository, utcnow


class ScreenLayoutRepository(BaseRepository):
    """Repository for seat maps keyed by the string screen id."""

    collection_name = "screen_layouts"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("screenId", ASCENDING)], unique=True)

    async def find_by_screen(self, screen_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"screenId": screen_id})

    async def upsert(self, screen_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or replace a screen's layout.

        The seats array is always replaced in full.

        Args:
            screen_id: Screen id
            fields: meta, seatClasses, seats and optional descriptive fields

        Returns:
            Stored layout
        """
        document = {
            "seatClasses": [],
            "seats": [],
            **fields,
            "screenId": screen_id,
            "updatedAt": utcnow(),
        }
        with self.translate_errors():
            return await self.collection.find_one_and_update(
                {"screenId": screen_id},
                {"$set": document},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
