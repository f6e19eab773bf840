"""
Unit tests for error normalization and the error envelope.

Tests cover:
- Failure kind to status/message mapping
- Firebase error code messages
- Envelope construction with and without stacks
- Central exception handlers on a minimal application
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from api.src.errors import (
    FIREBASE_ERROR_MESSAGES,
    DuplicateValueError,
    IdentityProviderError,
    InvalidTokenError,
    MalformedIdentifierError,
    ServiceError,
    TokenExpiredError,
    ValidationFailedError,
    as_http_error,
    error_envelope,
    firebase_error_message,
    normalize_error,
    register_exception_handlers,
)


# ============================================================================
# NORMALIZATION
# ============================================================================


class TestNormalizeError:
    """Test mapping failures onto status codes and messages."""

    def test_malformed_identifier(self):
        """Test a bad document id reads as a missing resource."""
        result = normalize_error(MalformedIdentifierError("not-an-id"))
        assert (result.status_code, result.message) == (404, "Resource not found")

    def test_duplicate_value(self):
        """Test a unique index violation names the field."""
        result = normalize_error(DuplicateValueError("email"))
        assert (result.status_code, result.message) == (400, "email already exists")

    def test_validation_failed(self):
        """Test validation messages are joined with commas."""
        result = normalize_error(ValidationFailedError(["title is required", "genre is required"]))
        assert (result.status_code, result.message) == (400, "title is required, genre is required")

    def test_token_failures(self):
        """Test token failures map to 401."""
        assert normalize_error(InvalidTokenError("bad signature")).message == "Invalid token"
        assert normalize_error(TokenExpiredError("expired")).message == "Token expired"
        assert normalize_error(InvalidTokenError()).status_code == 401

    def test_identity_provider_known_code(self):
        """Test Firebase codes translate to friendly messages."""
        result = normalize_error(IdentityProviderError("auth/user-token-expired"))
        assert (result.status_code, result.message) == (401, "User token expired")

    def test_identity_provider_unknown_code(self):
        """Test unknown Firebase codes fall back to a generic message."""
        assert normalize_error(IdentityProviderError("auth/something-new")).message == "Authentication error"

    def test_unknown_exception_keeps_message(self):
        """Test unrecognized failures become 500 with their own message."""
        result = normalize_error(RuntimeError("disk full"))
        assert (result.status_code, result.message) == (500, "disk full")

    def test_unknown_exception_without_message(self):
        """Test an empty message becomes "Server Error"."""
        assert normalize_error(RuntimeError()).message == "Server Error"

    def test_firebase_table(self):
        """Test the Firebase message table."""
        assert len(FIREBASE_ERROR_MESSAGES) == 33
        assert firebase_error_message("auth/wrong-password") == "Incorrect password"
        assert firebase_error_message("auth/too-many-requests") == "Too many requests"


# ============================================================================
# ENVELOPE
# ============================================================================


class TestErrorEnvelope:
    """Test the error response body."""

    def test_minimal(self):
        assert error_envelope("Booking not found") == {"success": False, "error": "Booking not found"}

    def test_extra_keys(self):
        """Test extra keys are merged at the top level."""
        body = error_envelope("Some seats are no longer available", data={"conflicts": ["A-1"]})
        assert body["data"] == {"conflicts": ["A-1"]}

    def test_stack(self):
        """Test the stack is attached only when requested."""
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            with_stack = error_envelope("boom", e, include_stack=True)
            without_stack = error_envelope("boom", e)
        assert "RuntimeError: boom" in with_stack["stack"]
        assert "stack" not in without_stack

    def test_service_error_to_http(self):
        """Test service errors carry status, message and data."""
        exc = as_http_error(ServiceError("Seat taken", 409, data={"conflicts": ["B-2"]}))
        assert exc.status_code == 409
        assert exc.detail == {"error": "Seat taken", "data": {"conflicts": ["B-2"]}}


# ============================================================================
# HANDLERS
# ============================================================================


class Payload(BaseModel):
    title: str


def build_app(settings) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app, settings)

    @app.get("/malformed")
    async def malformed():
        raise MalformedIdentifierError("xyz")

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateValueError("username")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("unexpected")

    @app.get("/service")
    async def service():
        raise as_http_error(ServiceError("Show not found", 404))

    @app.post("/validate")
    async def validate(body: Payload):
        return body

    return app


class TestExceptionHandlers:
    """Test the central handlers render the envelope."""

    @pytest.fixture
    def client(self, make_settings):
        return TestClient(build_app(make_settings(environment="development")), raise_server_exceptions=False)

    @pytest.fixture
    def production_client(self, make_settings):
        return TestClient(build_app(make_settings(environment="production")), raise_server_exceptions=False)

    def test_malformed_identifier(self, client):
        response = client.get("/malformed")
        assert response.status_code == 404
        assert response.json()["error"] == "Resource not found"
        assert response.json()["success"] is False

    def test_duplicate(self, client):
        response = client.get("/duplicate")
        assert response.status_code == 400
        assert response.json()["error"] == "username already exists"

    def test_crash_includes_stack_outside_production(self, client):
        """Test development responses carry the stack."""
        response = client.get("/crash")
        assert response.status_code == 500
        assert response.json()["error"] == "unexpected"
        assert "stack" in response.json()

    def test_crash_hides_stack_in_production(self, production_client):
        """Test production responses never carry the stack."""
        response = production_client.get("/crash")
        assert response.status_code == 500
        assert "stack" not in response.json()

    def test_service_error(self, client):
        response = client.get("/service")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Show not found"}

    def test_request_validation(self, client):
        """Test request validation failures become 400 with field messages."""
        response = client.post("/validate", json={})
        assert response.status_code == 400
        assert response.json()["error"].startswith("title:")

    def test_unknown_route(self, client):
        """Test unknown routes get the route-not-found body."""
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"error": "Route not found", "message": "Cannot GET /nowhere"}
