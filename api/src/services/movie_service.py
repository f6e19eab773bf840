"""
Movie catalogue management.

Theatre owners add, edit and remove their own movies; everyone can browse
the active catalogue.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog

from api.src.errors import ServiceError
from api.src.models.movie import MovieCreate, MovieUpdate
from api.src.models.owner import OWNER_ROLE
from api.src.repositories.base import is_object_id, to_object_id
from api.src.repositories.movie_repo import MovieRepository, build_movie_query
from api.src.repositories.show_repo import ShowRepository

logger = structlog.get_logger(__name__)

# Client field name -> stored field name, where they differ
_RENAMED_FIELDS = {"language": "movieLanguage"}


class MovieError(ServiceError):
    """A catalogue rule rejected the request."""


def movie_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {_RENAMED_FIELDS.get(key, key): value for key, value in payload.items()}


class MovieService:
    """Catalogue queries and owner-scoped writes."""

    def __init__(self, movies: MovieRepository, shows: ShowRepository):
        self.movies = movies
        self.shows = shows

    async def list(
        self,
        genre: Optional[str] = None,
        language: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Dict[str, Any]], int]:
        query = build_movie_query(genre=genre, language=language, status=status, search=search)
        return await self.movies.list(query, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    async def get(self, movie_id: str) -> Dict[str, Any]:
        """
        Raises:
            MovieError: 404 when the movie does not exist
        """
        movie = await self.movies.find_by_id(movie_id) if is_object_id(movie_id) else None
        if movie is None:
            raise MovieError("Movie not found", status_code=404)
        return movie

    async def list_for_owner(self, owner: Dict[str, Any], owner_id: str) -> List[Dict[str, Any]]:
        """
        Raises:
            MovieError: 403 when an owner asks for another owner's movies
        """
        if str(owner["_id"]) != owner_id:
            raise MovieError("Not authorized to access these movies", status_code=403)
        return await self.movies.list_by_owner(owner_id)

    async def showtimes(self, movie_id: str, booking_date: Optional[str] = None) -> List[Dict[str, Any]]:
        movie = await self.get(movie_id)
        return await self.shows.list_active_for_movie(movie["_id"], booking_date)

    async def create(self, owner: Dict[str, Any], request: MovieCreate) -> Dict[str, Any]:
        document = movie_fields(request.to_document())
        document.update(
            {
                "language": "english",
                "theatreOwner": to_object_id(owner["_id"]),
                "createdBy": to_object_id(owner["_id"]),
                "addedBy": OWNER_ROLE,
                "isActive": True,
                "aggregateRating": 0,
                "ratingsCount": 0,
                "firstShowDate": None,
            }
        )
        return await self.movies.create(document)

    def _check_owner(self, movie: Dict[str, Any], owner: Dict[str, Any], action: str) -> None:
        if str(movie.get("theatreOwner")) != str(owner["_id"]):
            logger.warning("movie_access_denied", movie_id=str(movie["_id"]), action=action)
            raise MovieError(f"Not authorized to {action} this movie", status_code=403)

    async def update(self, owner: Dict[str, Any], movie_id: str, request: MovieUpdate) -> Dict[str, Any]:
        movie = await self.get(movie_id)
        self._check_owner(movie, owner, "update")
        fields = movie_fields(request.to_document())
        if not fields:
            return movie
        updated = await self.movies.update(movie["_id"], fields)
        logger.info("movie_updated", movie_id=movie_id, fields=sorted(fields))
        return updated or movie

    async def delete(self, owner: Dict[str, Any], movie_id: str) -> None:
        movie = await self.get(movie_id)
        self._check_owner(movie, owner, "delete")
        await self.movies.delete(movie["_id"])
        logger.info("movie_deleted", movie_id=movie_id)
