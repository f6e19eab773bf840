"""
Movie repository.

Listing supports case-insensitive genre/language filters, a free-text
search over title, description, director and cast, and page-based
pagination. Inactive (soft-deleted) movies never appear in listings.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import structlog
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from api.src.repositories.base import BaseRepository, to_object_id, utcnow

logger = structlog.get_logger(__name__)


def build_movie_query(
    genre: Optional[str] = None,
    language: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the MongoDB filter for the public movie listing.

    User input is regex-escaped before it is embedded in a pattern.

    Returns:
        MongoDB query document
    """
    query: Dict[str, Any] = {"isActive": True}
    if genre:
        query["genre"] = {"$regex": re.escape(genre), "$options": "i"}
    if language:
        query["movieLanguage"] = {"$regex": re.escape(language), "$options": "i"}
    if status:
        query["status"] = status
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"title": pattern},
            {"description": pattern},
            {"director": pattern},
            {"cast": pattern},
        ]
    return query


class MovieRepository(BaseRepository):
    """Repository for the movie catalogue."""

    collection_name = "movies"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("createdAt", DESCENDING)])
        await self.collection.create_index([("theatreOwner", ASCENDING)])

    async def list(
        self,
        query: Dict[str, Any],
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Return one page of movies and the total match count.

        Args:
            query: Filter from build_movie_query
            page: 1-based page
            limit: Page size
            sort_by: title | releaseDate | createdAt
            sort_order: asc | desc

        Returns:
            (movies, total)
        """
        direction = DESCENDING if sort_order == "desc" else ASCENDING
        cursor = (
            self.collection.find(query)
            .sort(sort_by, direction)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        movies = await cursor.to_list()
        total = await self.collection.count_documents(query)
        return movies, total

    async def list_by_owner(self, owner_id: Any) -> List[Dict[str, Any]]:
        cursor = self.collection.find(
            {"theatreOwner": to_object_id(owner_id), "isActive": True}
        ).sort("createdAt", DESCENDING)
        return await cursor.to_list()

    async def find_many(self, movie_ids: List[Any]) -> Dict[str, Dict[str, Any]]:
        """Fetch several movies at once, keyed by hex id."""
        ids = [to_object_id(movie_id) for movie_id in movie_ids]
        cursor = self.collection.find({"_id": {"$in": ids}})
        return {str(movie["_id"]): movie async for movie in cursor}

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        document = {**document, "createdAt": now, "updatedAt": now}
        with self.translate_errors():
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("movie_created", movie_id=str(result.inserted_id), title=document.get("title"))
        return document

    async def update(self, movie_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self.translate_errors():
            return await self.collection.find_one_and_update(
                {"_id": to_object_id(movie_id)},
                {"$set": {**fields, "updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )

    async def delete(self, movie_id: Any) -> bool:
        result = await self.collection.delete_one({"_id": to_object_id(movie_id)})
        return result.deleted_count > 0

    async def set_first_show_date(self, movie_id: Any, booking_date: str) -> None:
        """Record the first scheduled show date unless one is already set."""
        await self.collection.update_one(
            {"_id": to_object_id(movie_id), "firstShowDate": {"$in": [None, ""]}},
            {"$set": {"firstShowDate": booking_date, "updatedAt": utcnow()}},
        )
