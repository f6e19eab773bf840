"""
FastAPI dependency injection for settings, services and authentication.

Provides injectable dependencies for:
- The immutable settings value and the repository bundle
- Service instances built once per application (see ``api.src.main.AppState``)
- Theatre owner authentication (JWT bearer token)
- Customer authentication (Firebase ID token)
- Pagination parameters and client information

Nothing here reads module-level globals: everything hangs off
``request.app.state`` so several applications can coexist in one process.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.src.config import Settings
from api.src.database import Database
from api.src.errors import as_http_error
from api.src.middleware.rate_limit import client_address
from api.src.services.auth_service import AuthService, OwnerAuthError
from api.src.services.booking_service import BookingService, Customer
from api.src.services.firebase_service import FirebaseVerifier
from api.src.services.metadata_service import MetadataService
from api.src.services.movie_service import MovieService
from api.src.services.payment_service import PaymentService
from api.src.services.seat_layout_service import SeatLayoutService
from api.src.services.show_service import ShowService
from api.src.services.show_timing_service import ShowTimingService
from api.src.services.upload_service import UploadService
from shared.logging import bind_context

logger = structlog.get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

ACCESS_DENIED = {"error": "Access denied", "message": "No token provided"}


# ============================================================================
# APPLICATION STATE
# ============================================================================


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    """
    Get the repository bundle.

    Raises:
        HTTPException: 503 while the database is not connected
    """
    db = getattr(request.app.state, "db", None)
    if db is None:
        logger.error("database_not_initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialized",
        )
    return db


def _services(request: Request):
    services = getattr(request.app.state, "services", None)
    if services is None or not services.ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready",
        )
    return services


def get_auth_service(request: Request) -> AuthService:
    return _services(request).auth


def get_booking_service(request: Request) -> BookingService:
    return _services(request).bookings


def get_movie_service(request: Request) -> MovieService:
    return _services(request).movies


def get_show_service(request: Request) -> ShowService:
    return _services(request).shows


def get_show_timing_service(request: Request) -> ShowTimingService:
    return _services(request).timings


def get_seat_layout_service(request: Request) -> SeatLayoutService:
    return _services(request).seat_layouts


def get_payment_service(request: Request) -> PaymentService:
    return _services(request).payments


def get_upload_service(request: Request) -> UploadService:
    return _services(request).uploads


def get_metadata_service(request: Request) -> MetadataService:
    return _services(request).metadata


def get_firebase_verifier(request: Request) -> FirebaseVerifier:
    return _services(request).firebase


# ============================================================================
# AUTHENTICATION DEPENDENCIES
# ============================================================================


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract the bearer token from the Authorization header.

    Raises:
        HTTPException: 401 "Access denied" when the header is missing or not Bearer
    """
    if not credentials or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning("auth_missing_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ACCESS_DENIED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_owner(
    token: str = Depends(get_token_from_header),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Resolve the theatre owner behind a JWT.

    Token failures propagate as ``InvalidTokenError`` / ``TokenExpiredError``
    and are normalized to 401 by the central handler.

    Returns:
        Owner document without credential fields

    Raises:
        HTTPException: 403 on a wrong role or deactivated account, 401 when
            the owner no longer exists
    """
    try:
        owner = await auth_service.authenticate(token)
    except OwnerAuthError as e:
        logger.warning("owner_auth_rejected", reason=e.message)
        raise as_http_error(e)

    bind_context(owner_id=str(owner["_id"]))
    return owner


async def get_current_customer(
    token: str = Depends(get_token_from_header),
    verifier: FirebaseVerifier = Depends(get_firebase_verifier),
) -> Customer:
    """
    Resolve the customer behind a Firebase ID token.

    Verification failures propagate as ``IdentityProviderError`` and are
    normalized to 401 with the provider's message.
    """
    claims = await verifier.verify(token)
    bind_context(customer_uid=claims["uid"])
    return Customer(uid=claims["uid"], email=claims.get("email"), name=claims.get("name"))


# ============================================================================
# UTILITY DEPENDENCIES
# ============================================================================


@dataclass
class PaginationParams:
    page: int
    limit: int


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=50, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


def get_client_ip(request: Request, settings: Settings = Depends(get_app_settings)) -> str:
    return client_address(request, settings.forwarding_proxies)
