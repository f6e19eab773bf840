"""
Integration tests for the TMDB metadata endpoints.

Tests cover:
- Search and details through a stubbed TMDB session
- Proxy host restrictions and pass-through responses
- Behaviour without a TMDB key
"""

import pytest

from api.src.services.metadata_service import MetadataService
from tests.conftest import build_settings
from tests.integration.conftest import API


class FakeResponse:
    def __init__(self, status, payload=None, body=b"", content_type="application/json"):
        self.status = status
        self._payload = payload
        self._body = body
        self.headers = {"Content-Type": content_type}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self):
        return self._payload

    async def read(self):
        return self._body


class FakeSession:
    closed = False

    def __init__(self, response):
        self.response = response
        self.urls = []

    def get(self, url, params=None):
        self.urls.append(url)
        return self.response

    async def close(self):
        self.closed = True


@pytest.fixture
def tmdb(app):
    """Install a metadata service with a key and a fake session."""

    def install(response):
        service = MetadataService(build_settings(tmdb_api_key="tmdb-key"))
        service.session = FakeSession(response)
        app.state.services.metadata = service
        return service.session

    return install


class TestMetadataApi:
    """Test metadata lookups over HTTP."""

    def test_search(self, client, tmdb):
        tmdb(FakeResponse(200, {"page": 1, "total_pages": 1, "total_results": 1, "results": [{"id": 7, "title": "Lokah"}]}))
        response = client.get(f"{API}/metadata/search", params={"query": "lokah"})
        assert response.status_code == 200
        assert response.json()["data"]["results"][0]["title"] == "Lokah"

    def test_search_requires_query(self, client, tmdb):
        tmdb(FakeResponse(200, {}))
        response = client.get(f"{API}/metadata/search")
        assert response.status_code == 400
        assert response.json()["error"] == "query is required"

    def test_details_not_found(self, client, tmdb):
        tmdb(FakeResponse(404))
        response = client.get(f"{API}/metadata/movie/1")
        assert response.status_code == 404
        assert response.json()["error"] == "Movie not found on TMDB"

    def test_without_key(self, client):
        response = client.get(f"{API}/metadata/search", params={"query": "dune"})
        assert response.status_code == 503

    def test_proxy(self, client, tmdb):
        session = tmdb(FakeResponse(200, body=b'{"id": 7}'))
        url = "https://api.themoviedb.org/3/movie/7?api_key=abc"
        response = client.get(f"{API}/proxy/tmdb", params={"url": url})
        assert response.status_code == 200
        assert response.json() == {"id": 7}
        assert response.headers["access-control-allow-origin"] == "*"
        assert session.urls == [url]

    def test_proxy_relays_upstream_status(self, client, tmdb):
        tmdb(FakeResponse(401, body=b'{"status_message": "Invalid API key"}'))
        response = client.get(f"{API}/proxy/tmdb", params={"url": "https://api.themoviedb.org/3/movie/7"})
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "url,message",
        [
            ("", "Missing url parameter"),
            ("https://evil.example.com/steal", "Host not allowed"),
        ],
    )
    def test_proxy_rejections(self, client, tmdb, url, message):
        tmdb(FakeResponse(200))
        response = client.get(f"{API}/proxy/tmdb", params={"url": url})
        assert response.status_code == 400
        assert response.json()["error"] == message
