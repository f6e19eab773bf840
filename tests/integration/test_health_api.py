"""
Integration tests for operational endpoints and cross-cutting middleware.

Tests cover:
- Health, readiness and Prometheus metrics endpoints
- Security headers and correlation ids
- CORS preflight for the known frontend origins
- Unknown routes
"""

from fastapi.testclient import TestClient

from api.src.main import create_app
from tests.doubles import in_memory_database
from tests.integration.conftest import API


# ============================================================================
# HEALTH AND READINESS
# ============================================================================


class TestHealth:
    """Test liveness and readiness."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["environment"] == "test"
        assert body["timestamp"]

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"database": "healthy"}}

    def test_not_ready_when_database_unreachable(self, client, db):
        db.database.reachable = False
        response = client.get("/ready")
        assert response.status_code == 503
        assert response.json() == {"status": "not_ready", "checks": {"database": "unhealthy"}}

    def test_health_is_not_rate_limited(self, client):
        response = client.get("/health")
        assert "RateLimit-Limit" not in response.headers


# ============================================================================
# METRICS
# ============================================================================


class TestMetrics:
    """Test the Prometheus endpoint."""

    def test_request_metrics(self, client):
        client.get(f"{API}/movies")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "booknview_http_requests_total{" in response.text
        assert 'method="GET"' in response.text

    def test_rate_limit_rejections_counted(self, client):
        body = {"username": "nobody", "password": "whatever1"}
        for _ in range(11):
            client.post(f"{API}/theatre-owner/login", json=body)
        text = client.get("/metrics").text
        assert 'booknview_rate_limit_rejections_total{policy="auth"} 1.0' in text

    def test_disabled(self, make_settings):
        app = create_app(make_settings(metrics_enabled=False), database=in_memory_database())
        with TestClient(app) as client:
            assert client.get("/metrics").status_code == 404


# ============================================================================
# MIDDLEWARE
# ============================================================================


class TestMiddleware:
    """Test headers added to every response."""

    def test_security_headers(self, client):
        headers = client.get("/health").headers
        assert headers["X-Content-Type-Options"] == "nosniff"
        assert headers["X-Frame-Options"] == "SAMEORIGIN"
        assert headers["Referrer-Policy"] == "no-referrer"
        assert headers["Content-Security-Policy"].startswith("default-src 'self'")
        assert "Strict-Transport-Security" not in headers

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_correlation_id_generated(self, client):
        assert client.get("/health").headers["X-Correlation-ID"]

    def test_general_policy_headers(self, client):
        response = client.get(f"{API}/movies")
        assert response.headers["RateLimit-Limit"] == "1000"
        assert response.headers["RateLimit-Remaining"] == "999"

    def test_cors_preflight(self, client):
        response = client.options(
            f"{API}/movies",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_cors_unknown_origin(self, client):
        response = client.get(f"{API}/movies", headers={"Origin": "https://evil.example.com"})
        assert "access-control-allow-origin" not in response.headers


# ============================================================================
# UNKNOWN ROUTES
# ============================================================================


class TestUnknownRoute:
    """Test the not-found response."""

    def test_unknown_route(self, client):
        response = client.get(f"{API}/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"error": "Route not found", "message": "Cannot GET /api/v1/nothing-here"}
