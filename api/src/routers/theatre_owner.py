"""
Theatre owner authentication router.

Provides REST API endpoints for:
- Owner login (username or email plus password)
- Owner self-registration
- Current owner profile, profile edits and password changes

Login and registration sit behind the ``auth`` rate limit policy.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, status

from api.src.dependencies import get_auth_service, get_client_ip, get_current_owner
from api.src.errors import as_http_error
from api.src.models.common import success
from api.src.models.owner import ChangePasswordRequest, OwnerLoginRequest, OwnerProfileUpdate, OwnerRegisterRequest
from api.src.repositories.base import serialize_document
from api.src.services.auth_service import AuthService, OwnerAuthError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/theatre-owner", tags=["Theatre Owner"])


@router.post("/login", status_code=status.HTTP_200_OK, summary="Theatre owner login")
async def login(
    body: OwnerLoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
) -> Dict[str, Any]:
    """
    Authenticate a theatre owner.

    **Errors:**
    - 401: Invalid username or password
    - 423: Account locked after repeated failures
    """
    logger.info("owner_login_attempt", username=body.username, ip_address=client_ip)
    try:
        result = await auth_service.login(body)
    except OwnerAuthError as e:
        raise as_http_error(e)
    return success(serialize_document(result), message="Login successful")


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register a theatre owner")
async def register(
    body: OwnerRegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Create a theatre owner account and sign it in.

    **Errors:**
    - 400: Password rules not met
    - 409: Username or email already exists
    """
    try:
        result = await auth_service.register(body)
    except OwnerAuthError as e:
        raise as_http_error(e)
    return success(serialize_document(result), message="Theatre owner account created successfully")


@router.get("/me", summary="Current theatre owner")
@router.get("/profile", include_in_schema=False)
async def me(owner: Dict[str, Any] = Depends(get_current_owner)) -> Dict[str, Any]:
    return success({"theatreOwner": serialize_document(owner)})


@router.put("/profile", summary="Update the current owner's profile")
async def update_profile(
    body: OwnerProfileUpdate,
    owner: Dict[str, Any] = Depends(get_current_owner),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Change ownerName, phone, bio or preferences.

    **Errors:**
    - 400: Empty ownerName or phone, bio longer than 500 characters
    """
    try:
        updated = await auth_service.update_profile(owner["_id"], body)
    except OwnerAuthError as e:
        raise as_http_error(e)
    return success({"theatreOwner": serialize_document(updated)}, message="Profile updated successfully")


@router.post("/change-password", summary="Change the current owner's password")
async def change_password(
    body: ChangePasswordRequest,
    owner: Dict[str, Any] = Depends(get_current_owner),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    **Errors:**
    - 400: Current password is incorrect / new password rules not met
    """
    try:
        await auth_service.change_password(owner["_id"], body)
    except OwnerAuthError as e:
        raise as_http_error(e)
    return success(message="Password changed successfully")
