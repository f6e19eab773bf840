"""
Movie metadata router: TMDB search and a restricted pass-through proxy.

Search results are reduced to the fields the owner's movie form fills in.
The proxy only forwards requests to the TMDB API host.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Query, Response

from api.src.dependencies import get_metadata_service
from api.src.errors import as_http_error
from api.src.models.common import success
from api.src.services.metadata_service import MetadataError, MetadataService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Metadata"])


@router.get("/metadata/search", summary="Search TMDB movies")
async def search_movies(
    query: str = Query("", description="Movie title"),
    page: int = Query(1, ge=1),
    metadata: MetadataService = Depends(get_metadata_service),
) -> Dict[str, Any]:
    try:
        results = await metadata.search(query, page)
    except MetadataError as e:
        raise as_http_error(e)
    return success(results)


@router.get("/metadata/movie/{tmdb_id}", summary="TMDB movie details")
async def movie_details(
    tmdb_id: int,
    metadata: MetadataService = Depends(get_metadata_service),
) -> Dict[str, Any]:
    try:
        movie = await metadata.details(tmdb_id)
    except MetadataError as e:
        raise as_http_error(e)
    return success(movie)


@router.get("/proxy/tmdb", summary="Proxy a TMDB API request")
async def proxy_tmdb(
    url: str = Query("", description="Absolute api.themoviedb.org URL"),
    metadata: MetadataService = Depends(get_metadata_service),
) -> Response:
    """
    Relay the upstream status, content type and body unchanged.

    **Errors:**
    - 400: Missing url parameter / Invalid URL / Host not allowed
    - 502: Upstream fetch failed
    """
    try:
        upstream = await metadata.proxy(url)
    except MetadataError as e:
        raise as_http_error(e)
    return Response(
        content=upstream.body,
        status_code=upstream.status,
        media_type=upstream.content_type,
        headers={"Access-Control-Allow-Origin": "*"},
    )
