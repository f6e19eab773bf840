"""
TMDB movie metadata.

Owners search TMDB when adding a movie so title, overview and poster can be
prefilled. Two surfaces exist:

- ``search`` / ``details`` call TMDB with the server's API key
- ``proxy`` forwards a caller-built TMDB URL (the caller supplies its own
  key), restricted to the TMDB API host and to GET
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import aiohttp
import structlog

from api.src.config import Settings
from api.src.errors import ServiceError

logger = structlog.get_logger(__name__)

ALLOWED_PROXY_HOST = "api.themoviedb.org"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"
USER_AGENT = "BookNView-Server/1.0"


class MetadataError(ServiceError):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code)


@dataclass(frozen=True)
class ProxiedResponse:
    status: int
    content_type: str
    body: bytes


def validate_proxy_url(url: Optional[str]) -> str:
    """
    Check a proxy target.

    Returns:
        The URL unchanged

    Raises:
        MetadataError: 400 "Missing url parameter", "Invalid URL" or "Host not allowed"
    """
    if not url:
        raise MetadataError("Missing url parameter", status_code=400)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise MetadataError("Invalid URL", status_code=400)
    if parsed.hostname != ALLOWED_PROXY_HOST:
        raise MetadataError("Host not allowed", status_code=400)
    return url


def summarize_movie(result: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a TMDB movie record to the fields the movie form uses."""
    poster = result.get("poster_path")
    runtime = result.get("runtime")
    return {
        "tmdbId": result.get("id"),
        "title": result.get("title") or result.get("original_title"),
        "description": result.get("overview"),
        "releaseDate": result.get("release_date"),
        "posterUrl": f"{TMDB_IMAGE_BASE}{poster}" if poster else None,
        "language": result.get("original_language"),
        "genre": ", ".join(g["name"] for g in result.get("genres", []) if g.get("name")) or None,
        "duration": f"{runtime} min" if runtime else None,
        "rating": result.get("vote_average"),
    }


class MetadataService:
    """Async TMDB client backed by one aiohttp session."""

    def __init__(self, settings: Settings):
        self.api_key = settings.tmdb_api_key
        self.base_url = settings.tmdb_base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=settings.tmdb_timeout_seconds)
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
        return self.session

    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.enabled:
            raise MetadataError("Metadata service disabled", status_code=503)
        try:
            async with self._session().get(
                f"{self.base_url}{path}", params={**params, "api_key": self.api_key}
            ) as response:
                if response.status == 404:
                    raise MetadataError("Movie not found on TMDB", status_code=404)
                if response.status >= 400:
                    logger.warning("tmdb_error", path=path, status=response.status)
                    raise MetadataError("TMDB request failed")
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("tmdb_unreachable", path=path, error=str(e))
            raise MetadataError("TMDB request failed")

    async def search(self, query: str, page: int = 1) -> Dict[str, Any]:
        """
        Search TMDB movies by title.

        Returns:
            ``{"page", "totalPages", "totalResults", "results": [summary, ...]}``
        """
        if not query or not query.strip():
            raise MetadataError("query is required", status_code=400)
        payload = await self._get_json("/search/movie", {"query": query.strip(), "page": page})
        return {
            "page": payload.get("page", page),
            "totalPages": payload.get("total_pages", 0),
            "totalResults": payload.get("total_results", 0),
            "results": [summarize_movie(item) for item in payload.get("results", [])],
        }

    async def details(self, tmdb_id: int) -> Dict[str, Any]:
        return summarize_movie(await self._get_json(f"/movie/{tmdb_id}", {}))

    async def proxy(self, url: Optional[str]) -> ProxiedResponse:
        """
        Fetch a TMDB URL on behalf of a browser.

        Raises:
            MetadataError: 400 for a rejected URL, 502 on upstream failure
        """
        target = validate_proxy_url(url)
        try:
            async with self._session().get(target) as response:
                body = await response.read()
                content_type = response.headers.get("Content-Type", "application/json; charset=utf-8")
                return ProxiedResponse(response.status, content_type, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("tmdb_proxy_failed", error=str(e))
            raise MetadataError(str(e) or "Upstream fetch failed")
