"""
Theatre owner schemas.

Owners authenticate with a username (or email) and password and receive a
JWT carrying the ``theatre_owner`` role.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import EmailStr, Field

from api.src.models.common import CamelModel, SanitizedModel

OWNER_ROLE = "theatre_owner"


class TheatreType(str, Enum):
    SINGLE_SCREEN = "Single Screen"
    MULTIPLEX = "Multiplex"
    DRIVE_IN = "Drive-in"
    IMAX = "IMAX"
    OTHER = "Other"


class OwnerLoginRequest(CamelModel):
    """Login request; ``username`` may also be the account email."""

    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1, description="Password")

    model_config = {
        "json_schema_extra": {
            "example": {"username": "pvrcinemas", "password": "owner123"}
        }
    }


class OwnerRegisterRequest(CamelModel):
    """Self-service registration used by test environments."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., description="Checked against the password rules")
    owner_name: str = Field(..., min_length=1)
    theatre_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class OwnerProfileUpdate(SanitizedModel):
    """Editable profile fields; only the fields sent are changed."""

    owner_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    bio: Optional[str] = Field(default=None, max_length=500)
    preferences: Optional[Dict[str, Any]] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., description="Checked against the password rules")


# Fields never returned to clients
PRIVATE_OWNER_FIELDS = ("password", "loginAttempts", "lockUntil")


def public_owner(document: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credential and lockout fields from an owner document."""
    return {key: value for key, value in document.items() if key not in PRIVATE_OWNER_FIELDS}


class TokenClaims(CamelModel):
    """Claims carried by an owner access token."""

    user_id: str
    username: str
    email: str
    role: str = OWNER_ROLE
    theatre_name: str = ""

    def to_claims(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
