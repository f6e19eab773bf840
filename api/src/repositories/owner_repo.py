"""
Theatre owner repository.

Owner accounts live in the ``theatre_owners`` collection with unique
username and email indexes.
"""

from typing import Any, Dict, Iterable, Optional

import structlog
from pymongo import ASCENDING, ReturnDocument

from api.src.repositories.base import BaseRepository, to_object_id, utcnow

logger = structlog.get_logger(__name__)


class TheatreOwnerRepository(BaseRepository):
    """Repository for theatre owner accounts."""

    collection_name = "theatre_owners"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("username", ASCENDING)], unique=True)
        await self.collection.create_index([("email", ASCENDING)], unique=True)
        await self.collection.create_index([("isActive", ASCENDING)])

    async def find_active_by_login(self, login: str) -> Optional[Dict[str, Any]]:
        """
        Find an active owner by username or email.

        Args:
            login: Username or email address

        Returns:
            Owner document or None
        """
        return await self.collection.find_one(
            {
                "$or": [{"username": login}, {"email": login.lower()}],
                "isActive": True,
            }
        )

    async def exists(self, username: str, email: str) -> bool:
        found = await self.collection.find_one(
            {"$or": [{"username": username}, {"email": email.lower()}]},
            projection={"_id": 1},
        )
        return found is not None

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new owner.

        Args:
            document: Owner fields; the password must already be hashed

        Returns:
            Inserted document including ``_id``

        Raises:
            DuplicateValueError: If the username or email is taken
        """
        now = utcnow()
        document = {
            "isActive": True,
            "loginAttempts": 0,
            **document,
            "email": document["email"].lower(),
            "createdAt": now,
            "updatedAt": now,
        }
        with self.translate_errors():
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("theatre_owner_created", owner_id=str(result.inserted_id), username=document["username"])
        return document

    async def update(
        self,
        owner_id: Any,
        set_fields: Optional[Dict[str, Any]] = None,
        unset_fields: Iterable[str] = (),
        increment: Optional[Dict[str, int]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Apply a partial update and return the updated document.

        Args:
            owner_id: Owner id
            set_fields: Fields to set
            unset_fields: Fields to remove
            increment: Numeric fields to increment

        Returns:
            Updated document, or None if the owner does not exist
        """
        update: Dict[str, Any] = {"$set": {**(set_fields or {}), "updatedAt": utcnow()}}
        unset = list(unset_fields)
        if unset:
            update["$unset"] = {field: "" for field in unset}
        if increment:
            update["$inc"] = dict(increment)
        return await self.collection.find_one_and_update(
            {"_id": to_object_id(owner_id)},
            update,
            return_document=ReturnDocument.AFTER,
        )
