"""
Error taxonomy and normalization.

Collaborators at the edge of the service (repositories, token decoding,
identity provider, request validation) translate their native failures into
``AppError`` subclasses tagged with a ``FailureKind``. ``normalize_error``
maps those kinds onto an HTTP status and message, and
``register_exception_handlers`` renders the error envelope:

    {"success": false, "error": "<message>", "stack": "<trace>"}

The stack is included whenever the environment is not production.
"""

import enum
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src.config import Settings

logger = structlog.get_logger(__name__)


# ============================================================================
# Failure Taxonomy
# ============================================================================

class FailureKind(str, enum.Enum):
    """Closed set of failure categories recognized by the normalizer."""

    MALFORMED_IDENTIFIER = "malformed_identifier"
    DUPLICATE_VALUE = "duplicate_value"
    VALIDATION_FAILED = "validation_failed"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    IDENTITY_PROVIDER = "identity_provider"


class AppError(Exception):
    """Base class for failures produced at a collaborator boundary."""

    kind: FailureKind

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class MalformedIdentifierError(AppError):
    """A path or body identifier is not a valid document id."""

    kind = FailureKind.MALFORMED_IDENTIFIER

    def __init__(self, value: Any = None):
        super().__init__(f"Malformed identifier: {value!r}")
        self.value = value


class DuplicateValueError(AppError):
    """A unique index rejected a write."""

    kind = FailureKind.DUPLICATE_VALUE

    def __init__(self, field: str):
        super().__init__(f"{field} already exists")
        self.field = field


class ValidationFailedError(AppError):
    """One or more fields failed validation."""

    kind = FailureKind.VALIDATION_FAILED

    def __init__(self, messages: Iterable[str]):
        self.messages = [str(message) for message in messages]
        super().__init__(", ".join(self.messages))


class InvalidTokenError(AppError):
    kind = FailureKind.INVALID_TOKEN


class TokenExpiredError(AppError):
    kind = FailureKind.TOKEN_EXPIRED


class IdentityProviderError(AppError):
    """Firebase failure carrying an ``auth/...`` error code."""

    kind = FailureKind.IDENTITY_PROVIDER

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class ServiceError(Exception):
    """
    A business rule rejected the request.

    Services raise subclasses carrying the HTTP status and message the
    client should see; routers turn them into ``HTTPException`` through
    ``as_http_error``.
    """

    def __init__(self, message: str, status_code: int = 400, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data


def as_http_error(exc: ServiceError) -> HTTPException:
    detail: Dict[str, Any] = {"error": exc.message}
    if exc.data is not None:
        detail["data"] = exc.data
    return HTTPException(status_code=exc.status_code, detail=detail)


FIREBASE_ERROR_MESSAGES: Dict[str, str] = {
    "auth/invalid-email": "Invalid email address",
    "auth/user-disabled": "User account has been disabled",
    "auth/user-not-found": "User not found",
    "auth/wrong-password": "Incorrect password",
    "auth/email-already-in-use": "Email is already registered",
    "auth/weak-password": "Password is too weak",
    "auth/operation-not-allowed": "Operation not allowed",
    "auth/invalid-credential": "Invalid credentials",
    "auth/credential-already-in-use": "Credential is already in use",
    "auth/invalid-verification-code": "Invalid verification code",
    "auth/invalid-verification-id": "Invalid verification ID",
    "auth/missing-verification-code": "Missing verification code",
    "auth/missing-verification-id": "Missing verification ID",
    "auth/code-expired": "Verification code has expired",
    "auth/invalid-phone-number": "Invalid phone number",
    "auth/missing-phone-number": "Missing phone number",
    "auth/quota-exceeded": "Quota exceeded",
    "auth/captcha-check-failed": "Captcha check failed",
    "auth/invalid-app-credential": "Invalid app credential",
    "auth/invalid-app-id": "Invalid app ID",
    "auth/invalid-user-token": "Invalid user token",
    "auth/network-request-failed": "Network request failed",
    "auth/requires-recent-login": "Recent login required",
    "auth/too-many-requests": "Too many requests",
    "auth/unauthorized-domain": "Unauthorized domain",
    "auth/user-token-expired": "User token expired",
    "auth/web-storage-unsupported": "Web storage unsupported",
    "auth/invalid-api-key": "Invalid API key",
    "auth/app-not-authorized": "App not authorized",
    "auth/keychain-error": "Keychain error",
    "auth/internal-error": "Internal error",
    "auth/invalid-custom-token": "Invalid custom token",
    "auth/custom-token-mismatch": "Custom token mismatch",
}

FIREBASE_FALLBACK_MESSAGE = "Authentication error"


def firebase_error_message(code: str) -> str:
    """Look up the user-facing message for a Firebase error code."""
    return FIREBASE_ERROR_MESSAGES.get(code, FIREBASE_FALLBACK_MESSAGE)


# ============================================================================
# Normalization
# ============================================================================

@dataclass(frozen=True)
class NormalizedError:
    status_code: int
    message: str


def normalize_error(exc: BaseException) -> NormalizedError:
    """
    Map a failure onto an HTTP status and user-facing message.

    Args:
        exc: Any exception raised while handling a request

    Returns:
        NormalizedError; unrecognized failures become 500 with the original
        message, or "Server Error" when it is empty
    """
    kind = getattr(exc, "kind", None) if isinstance(exc, AppError) else None

    if kind is FailureKind.MALFORMED_IDENTIFIER:
        return NormalizedError(404, "Resource not found")
    if kind is FailureKind.DUPLICATE_VALUE:
        return NormalizedError(400, f"{exc.field} already exists")
    if kind is FailureKind.VALIDATION_FAILED:
        return NormalizedError(400, ", ".join(exc.messages))
    if kind is FailureKind.INVALID_TOKEN:
        return NormalizedError(401, "Invalid token")
    if kind is FailureKind.TOKEN_EXPIRED:
        return NormalizedError(401, "Token expired")
    if kind is FailureKind.IDENTITY_PROVIDER:
        return NormalizedError(401, firebase_error_message(exc.code))

    return NormalizedError(500, str(exc) or "Server Error")


# ============================================================================
# Response Envelope
# ============================================================================

def format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_envelope(
    message: str,
    exc: Optional[BaseException] = None,
    include_stack: bool = False,
    **extra: Any,
) -> Dict[str, Any]:
    """
    Build the error response body.

    Args:
        message: User-facing message
        exc: Original exception, used for the stack
        include_stack: Whether to attach the formatted traceback
        **extra: Additional top-level keys (e.g. ``data``)

    Returns:
        JSON-serializable envelope
    """
    body: Dict[str, Any] = {"success": False, "error": message}
    body.update(extra)
    if include_stack and exc is not None:
        body["stack"] = format_stack(exc)
    return body


def _log_failure(request: Request, exc: BaseException, normalized: NormalizedError) -> None:
    if normalized.status_code >= 500:
        logger.error(
            "request_error",
            method=request.method,
            path=request.url.path,
            status_code=normalized.status_code,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
    else:
        logger.warning(
            "request_error",
            method=request.method,
            path=request.url.path,
            status_code=normalized.status_code,
            error=str(exc),
            error_type=type(exc).__name__,
        )


def _validation_messages(exc: RequestValidationError) -> list:
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        text = error.get("msg", "Invalid value")
        messages.append(f"{field}: {text}" if field else text)
    return messages


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Install the central exception handlers on an application.

    Args:
        app: FastAPI application
        settings: Settings deciding whether stacks are exposed
    """
    include_stack = not settings.is_production

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Handle failures raised at a collaborator boundary."""
        normalized = normalize_error(exc)
        _log_failure(request, exc, normalized)
        return JSONResponse(
            status_code=normalized.status_code,
            content=error_envelope(normalized.message, exc, include_stack),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        failure = ValidationFailedError(_validation_messages(exc))
        normalized = normalize_error(failure)
        _log_failure(request, exc, normalized)
        return JSONResponse(
            status_code=normalized.status_code,
            content=error_envelope(normalized.message, exc, include_stack),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions raised by routers."""
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            logger.warning("route_not_found", method=request.method, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={
                    "error": "Route not found",
                    "message": f"Cannot {request.method} {request.url.path}",
                },
            )

        extra: Dict[str, Any] = {}
        message = exc.detail
        if isinstance(exc.detail, dict):
            extra = {key: value for key, value in exc.detail.items() if key != "error"}
            message = exc.detail.get("error", "Server Error")

        normalized = NormalizedError(exc.status_code, str(message))
        _log_failure(request, exc, normalized)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(normalized.message, **extra),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        normalized = normalize_error(exc)
        _log_failure(request, exc, normalized)
        return JSONResponse(
            status_code=normalized.status_code,
            content=error_envelope(normalized.message, exc, include_stack),
        )
