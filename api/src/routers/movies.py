"""
Movie catalogue router.

Public endpoints list and read active movies; theatre owners manage their
own movies. Listing sits behind the ``moderate`` rate limit policy.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from api.src.dependencies import (
    PaginationParams,
    get_current_owner,
    get_movie_service,
    get_pagination_params,
)
from api.src.errors import as_http_error
from api.src.models.common import Pagination, success
from api.src.models.movie import MovieCreate, MovieSortField, MovieStatus, MovieUpdate, SortOrder
from api.src.repositories.base import serialize_document
from api.src.services.movie_service import MovieError, MovieService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/movies", tags=["Movies"])


@router.get("", summary="List movies")
@router.get("/", include_in_schema=False)
async def list_movies(
    genre: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    status_filter: Optional[MovieStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    sort_by: MovieSortField = Query(MovieSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    pagination: PaginationParams = Depends(get_pagination_params),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    """
    List active movies.

    **Query Parameters:**
    - genre, language: case-insensitive partial match
    - status: active | inactive | coming_soon
    - search: matches title, description, director and cast
    - sortBy / sortOrder, page / limit
    """
    items, total = await movies.list(
        genre=genre,
        language=language,
        status=status_filter.value if status_filter else None,
        search=search,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
    )
    return success(
        serialize_document(items),
        pagination=Pagination.build(pagination.page, pagination.limit, total, len(items)).to_document(),
    )


@router.get("/theatre-owner/{owner_id}", summary="Movies added by an owner")
async def list_owner_movies(
    owner_id: str,
    owner: Dict[str, Any] = Depends(get_current_owner),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    try:
        items = await movies.list_for_owner(owner, owner_id)
    except MovieError as e:
        raise as_http_error(e)
    return success(serialize_document(items), count=len(items))


@router.get("/{movie_id}", summary="Get a movie")
async def get_movie(movie_id: str, movies: MovieService = Depends(get_movie_service)) -> Dict[str, Any]:
    try:
        movie = await movies.get(movie_id)
    except MovieError as e:
        raise as_http_error(e)
    return success(serialize_document(movie))


@router.get("/{movie_id}/showtimes", summary="Active shows of a movie")
async def get_movie_showtimes(
    movie_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    try:
        shows = await movies.showtimes(movie_id, date)
    except MovieError as e:
        raise as_http_error(e)
    return success(serialize_document(shows), count=len(shows))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add a movie")
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_movie(
    body: MovieCreate,
    owner: Dict[str, Any] = Depends(get_current_owner),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    movie = await movies.create(owner, body)
    return success(serialize_document(movie), message="Movie created successfully")


@router.put("/{movie_id}", summary="Update a movie")
async def update_movie(
    movie_id: str,
    body: MovieUpdate,
    owner: Dict[str, Any] = Depends(get_current_owner),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    try:
        movie = await movies.update(owner, movie_id, body)
    except MovieError as e:
        raise as_http_error(e)
    return success(serialize_document(movie), message="Movie updated successfully")


@router.delete("/{movie_id}", summary="Delete a movie")
async def delete_movie(
    movie_id: str,
    owner: Dict[str, Any] = Depends(get_current_owner),
    movies: MovieService = Depends(get_movie_service),
) -> Dict[str, Any]:
    try:
        await movies.delete(owner, movie_id)
    except MovieError as e:
        raise as_http_error(e)
    return success(message="Movie deleted successfully")
