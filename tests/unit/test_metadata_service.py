"""
Unit tests for TMDB metadata lookups.

Tests cover:
- Proxy URL validation
- Reducing TMDB records to movie form fields
- Search and details through a stubbed HTTP session
- Disabled service and upstream failures
"""

from typing import Any, Dict, Optional

import aiohttp
import pytest

from api.src.services.metadata_service import (
    MetadataError,
    MetadataService,
    summarize_movie,
    validate_proxy_url,
)


class StubResponse:
    """Async context manager mimicking an aiohttp response."""

    def __init__(self, status: int, payload: Any = None, body: bytes = b"", headers: Optional[Dict[str, str]] = None):
        self.status = status
        self._payload = payload
        self._body = body
        self.headers = headers or {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self):
        return self._payload

    async def read(self):
        return self._body


class StubSession:
    """Records GET calls and replays one canned response or error."""

    closed = False

    def __init__(self, response: StubResponse = None, error: Exception = None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None):
        self.calls.append((url, params))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


@pytest.fixture
def service(make_settings):
    return MetadataService(make_settings(tmdb_api_key="tmdb-key"))


TMDB_MOVIE = {
    "id": 438631,
    "title": "Dune",
    "overview": "Paul Atreides...",
    "release_date": "2021-09-15",
    "poster_path": "/d5NXSklXo0qyIYkgV94XAgMIckC.jpg",
    "original_language": "en",
    "genres": [{"id": 878, "name": "Science Fiction"}, {"id": 12, "name": "Adventure"}],
    "runtime": 155,
    "vote_average": 7.8,
}


# ============================================================================
# PURE HELPERS
# ============================================================================


class TestValidateProxyUrl:
    """Test proxy target checks."""

    def test_allowed(self):
        url = "https://api.themoviedb.org/3/movie/438631?api_key=abc"
        assert validate_proxy_url(url) == url

    @pytest.mark.parametrize(
        "url,message",
        [
            (None, "Missing url parameter"),
            ("", "Missing url parameter"),
            ("not a url", "Invalid URL"),
            ("ftp://api.themoviedb.org/3", "Invalid URL"),
            ("https://evil.example.com/3/movie", "Host not allowed"),
            ("https://image.tmdb.org/t/p/w500/x.jpg", "Host not allowed"),
        ],
    )
    def test_rejected(self, url, message):
        with pytest.raises(MetadataError) as exc_info:
            validate_proxy_url(url)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == message


class TestSummarizeMovie:
    """Test reducing TMDB records."""

    def test_full_record(self):
        summary = summarize_movie(TMDB_MOVIE)
        assert summary == {
            "tmdbId": 438631,
            "title": "Dune",
            "description": "Paul Atreides...",
            "releaseDate": "2021-09-15",
            "posterUrl": "https://image.tmdb.org/t/p/w500/d5NXSklXo0qyIYkgV94XAgMIckC.jpg",
            "language": "en",
            "genre": "Science Fiction, Adventure",
            "duration": "155 min",
            "rating": 7.8,
        }

    def test_search_result_without_details(self):
        summary = summarize_movie({"id": 1, "original_title": "Lokah"})
        assert summary["title"] == "Lokah"
        assert summary["posterUrl"] is None
        assert summary["genre"] is None
        assert summary["duration"] is None


# ============================================================================
# HTTP CALLS
# ============================================================================


class TestMetadataService:
    """Test TMDB calls through a stubbed session."""

    @pytest.mark.asyncio
    async def test_search(self, service):
        session = StubSession(
            StubResponse(200, {"page": 1, "total_pages": 3, "total_results": 42, "results": [TMDB_MOVIE]})
        )
        service.session = session
        result = await service.search("  dune ", page=1)
        assert result["totalPages"] == 3
        assert result["totalResults"] == 42
        assert result["results"][0]["title"] == "Dune"
        url, params = session.calls[0]
        assert url == "https://api.themoviedb.org/3/search/movie"
        assert params == {"query": "dune", "page": 1, "api_key": "tmdb-key"}

    @pytest.mark.asyncio
    async def test_search_requires_query(self, service):
        with pytest.raises(MetadataError) as exc_info:
            await service.search("   ")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_details_not_found(self, service):
        service.session = StubSession(StubResponse(404))
        with pytest.raises(MetadataError) as exc_info:
            await service.details(1)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_upstream_error(self, service):
        service.session = StubSession(StubResponse(500))
        with pytest.raises(MetadataError) as exc_info:
            await service.details(1)
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_unreachable(self, service):
        service.session = StubSession(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(MetadataError, match="TMDB request failed"):
            await service.details(1)

    @pytest.mark.asyncio
    async def test_disabled_without_key(self, settings):
        with pytest.raises(MetadataError) as exc_info:
            await MetadataService(settings).search("dune")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_proxy(self, service):
        service.session = StubSession(
            StubResponse(200, body=b'{"id": 1}', headers={"Content-Type": "application/json"})
        )
        proxied = await service.proxy("https://api.themoviedb.org/3/movie/1?api_key=abc")
        assert (proxied.status, proxied.content_type, proxied.body) == (200, "application/json", b'{"id": 1}')

    @pytest.mark.asyncio
    async def test_proxy_rejects_other_hosts(self, service):
        service.session = StubSession(StubResponse(200))
        with pytest.raises(MetadataError, match="Host not allowed"):
            await service.proxy("https://example.com/")
        assert service.session.calls == []

    @pytest.mark.asyncio
    async def test_close(self, service):
        session = StubSession()
        service.session = session
        await service.close()
        assert session.closed is True
        assert service.session is None
