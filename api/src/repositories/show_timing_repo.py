"""
Show timing repository.

One document per (owner, type) for weekday and weekend templates and one
per (owner, date) for special days. Both are covered by a single unique
index on (theatreOwnerId, type, specialDate); templates have no date.
"""

from datetime import date
from typing import Any, Dict, List, Optional

import structlog
from pymongo import ASCENDING, ReturnDocument

from api.src.models.show_timing import TimingType
from api.src.repositories.base import BaseRepository, date_to_datetime, to_object_id, utcnow

logger = structlog.get_logger(__name__)


class ShowTimingRepository(BaseRepository):
    """Repository for owner showtime templates."""

    collection_name = "show_timings"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("theatreOwnerId", ASCENDING), ("type", ASCENDING), ("specialDate", ASCENDING)],
            unique=True,
        )

    async def list_active(self, owner_id: Any) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"theatreOwnerId": to_object_id(owner_id), "isActive": True}).sort(
            [("type", ASCENDING), ("specialDate", ASCENDING)]
        )
        return await cursor.to_list()

    async def find_template(self, owner_id: Any, timing_type: TimingType) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(
            {"theatreOwnerId": to_object_id(owner_id), "type": timing_type.value, "isActive": True}
        )

    async def list_special(self, owner_id: Any, day: date) -> List[Dict[str, Any]]:
        cursor = self.collection.find(
            {
                "theatreOwnerId": to_object_id(owner_id),
                "type": TimingType.SPECIAL.value,
                "specialDate": date_to_datetime(day),
                "isActive": True,
            }
        ).sort("createdAt", ASCENDING)
        return await cursor.to_list()

    async def save_template(self, owner_id: Any, timing_type: TimingType, timings: List[str]) -> Dict[str, Any]:
        """
        Create or replace the weekday or weekend template of an owner.

        Returns:
            Stored template
        """
        owner_oid = to_object_id(owner_id)
        now = utcnow()
        with self.translate_errors():
            return await self.collection.find_one_and_update(
                {"theatreOwnerId": owner_oid, "type": timing_type.value},
                {
                    "$set": {"timings": list(timings), "isActive": True, "updatedAt": now},
                    "$setOnInsert": {"description": "", "createdAt": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )

    async def create_special(
        self, owner_id: Any, day: date, timings: List[str], description: str
    ) -> Dict[str, Any]:
        """
        Insert the special timing of one day.

        Raises:
            DuplicateValueError: If the owner already has one for that day
        """
        now = utcnow()
        document = {
            "theatreOwnerId": to_object_id(owner_id),
            "type": TimingType.SPECIAL.value,
            "timings": list(timings),
            "specialDate": date_to_datetime(day),
            "description": description,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        with self.translate_errors():
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("special_timing_created", timing_id=str(result.inserted_id), special_date=day.isoformat())
        return document

    async def update_special(
        self, owner_id: Any, timing_id: Any, fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Update one of the owner's special timings; None when it is not theirs."""
        return await self.collection.find_one_and_update(
            {"_id": to_object_id(timing_id), "theatreOwnerId": to_object_id(owner_id), "type": TimingType.SPECIAL.value},
            {"$set": {**fields, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_special(self, owner_id: Any, timing_id: Any) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_delete(
            {"_id": to_object_id(timing_id), "theatreOwnerId": to_object_id(owner_id), "type": TimingType.SPECIAL.value}
        )
