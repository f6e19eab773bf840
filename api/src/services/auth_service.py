"""
Authentication service for theatre owner accounts.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT token creation and validation
- Login with account lockout after repeated failures
- Self-service registration
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple

import structlog
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from api.src.config import Settings
from api.src.errors import InvalidTokenError, ServiceError, TokenExpiredError
from api.src.models.owner import (
    OWNER_ROLE,
    ChangePasswordRequest,
    OwnerLoginRequest,
    OwnerProfileUpdate,
    OwnerRegisterRequest,
    TheatreType,
    TokenClaims,
    public_owner,
)
from api.src.repositories.base import utcnow
from api.src.repositories.owner_repo import TheatreOwnerRepository
from api.src.security import PasswordRequirements, validate_password

logger = structlog.get_logger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(hours=2)

INVALID_CREDENTIALS = "Invalid username or password"
ACCOUNT_LOCKED = "Account is temporarily locked due to too many failed login attempts"
ACCOUNT_EXISTS = "Username or email already exists"
OWNER_NOT_FOUND = "Theatre owner not found"
WRONG_PASSWORD = "Current password is incorrect"


class OwnerAuthError(ServiceError):
    """Login, registration or owner lookup rejected."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code)


def _aware(value: datetime) -> datetime:
    # documents written by older deployments carry naive UTC datetimes
    return value if value.tzinfo else value.replace(tzinfo=utcnow().tzinfo)


def is_locked(owner: Dict[str, Any], now: datetime) -> bool:
    lock_until = owner.get("lockUntil")
    return bool(lock_until and _aware(lock_until) > now)


def failed_login_update(
    owner: Dict[str, Any], now: datetime
) -> Tuple[Dict[str, Any], Iterable[str], Dict[str, int]]:
    """
    Compute the update recording one failed login.

    An expired lock restarts the counter at 1. Reaching the fifth attempt
    locks the account for two hours.

    Args:
        owner: Owner document before the failure
        now: Current time

    Returns:
        Tuple of (fields to set, fields to unset, fields to increment)
    """
    lock_until = owner.get("lockUntil")
    if lock_until and _aware(lock_until) < now:
        return {"loginAttempts": 1}, ("lockUntil",), {}

    set_fields: Dict[str, Any] = {}
    if owner.get("loginAttempts", 0) + 1 >= MAX_LOGIN_ATTEMPTS and not is_locked(owner, now):
        set_fields["lockUntil"] = now + LOCK_DURATION
    return set_fields, (), {"loginAttempts": 1}


class AuthService:
    """Service for theatre owner authentication."""

    def __init__(self, owners: TheatreOwnerRepository, settings: Settings):
        """
        Initialize auth service.

        Args:
            owners: Theatre owner repository
            settings: Application settings (JWT secret, bcrypt rounds)
        """
        self.owners = owners
        self.settings = settings

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.password_bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Stored bcrypt hash

        Returns:
            True if password matches, False otherwise (including unreadable hashes)
        """
        if not hashed_password:
            return False
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except ValueError as e:
            logger.error("password_verify_failed", error=str(e))
            return False

    def create_access_token(self, owner: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token for an owner.

        Args:
            owner: Owner document
            expires_delta: Custom lifetime (defaults to JWT_EXPIRE minutes)

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.settings.jwt_expire_minutes)

        now = utcnow()
        claims = TokenClaims(
            user_id=str(owner["_id"]),
            username=owner["username"],
            email=owner["email"],
            theatre_name=owner.get("theatreName", ""),
        ).to_claims()
        claims.update({"exp": int((now + expires_delta).timestamp()), "iat": int(now.timestamp())})

        token = jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        logger.info(
            "access_token_created",
            owner_id=claims["userId"],
            username=claims["username"],
            expires_in=expires_delta.total_seconds(),
        )
        return token

    def decode_token(self, token: str) -> TokenClaims:
        """
        Decode and validate a JWT token.

        Args:
            token: JWT token string

        Returns:
            Token claims

        Raises:
            TokenExpiredError: If the token is past its expiry
            InvalidTokenError: If the signature or structure is invalid
        """
        try:
            payload = jwt.decode(token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm])
        except ExpiredSignatureError as e:
            logger.warning("token_expired")
            raise TokenExpiredError(str(e))
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            raise InvalidTokenError(str(e))

        try:
            return TokenClaims.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError(f"Malformed claims: {e}")

    async def login(self, request: OwnerLoginRequest, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Authenticate an owner and issue a token.

        Args:
            request: Username (or email) and password
            now: Current time

        Returns:
            Dict with ``token`` and the public ``theatreOwner`` document

        Raises:
            OwnerAuthError: 401 on bad credentials, 423 while locked
        """
        now = now or utcnow()
        owner = await self.owners.find_active_by_login(request.username)
        if owner is None:
            logger.warning("authentication_failed_owner_not_found", username=request.username)
            raise OwnerAuthError(INVALID_CREDENTIALS, 401)

        if is_locked(owner, now):
            logger.warning("authentication_failed_locked", owner_id=str(owner["_id"]))
            raise OwnerAuthError(ACCOUNT_LOCKED, 423)

        if not self.verify_password(request.password, owner.get("password")):
            set_fields, unset_fields, increment = failed_login_update(owner, now)
            await self.owners.update(owner["_id"], set_fields, unset_fields, increment)
            logger.warning(
                "authentication_failed_invalid_password",
                owner_id=str(owner["_id"]),
                locked="lockUntil" in set_fields,
            )
            raise OwnerAuthError(INVALID_CREDENTIALS, 401)

        updated = await self.owners.update(
            owner["_id"],
            {"lastLoginAt": now},
            unset_fields=("loginAttempts", "lockUntil"),
        )
        owner = updated or owner

        logger.info("login_success", owner_id=str(owner["_id"]), username=owner["username"])
        return {"token": self.create_access_token(owner), "theatreOwner": public_owner(owner)}

    async def register(self, request: OwnerRegisterRequest) -> Dict[str, Any]:
        """
        Create an owner account and issue a token.

        Raises:
            OwnerAuthError: 400 if the password breaks the password rules,
                409 if the username or email is taken
        """
        check = validate_password(request.password, PasswordRequirements())
        if not check.valid:
            raise OwnerAuthError(check.message, 400)

        if await self.owners.exists(request.username, request.email):
            raise OwnerAuthError(ACCOUNT_EXISTS, 409)

        owner = await self.owners.create(
            {
                "username": request.username,
                "email": request.email,
                "password": self.hash_password(request.password),
                "ownerName": request.owner_name,
                "theatreName": request.theatre_name,
                "phone": request.phone,
                "theatreType": TheatreType.SINGLE_SCREEN.value,
                "screenCount": 1,
                "seatingCapacity": 100,
            }
        )
        return {"token": self.create_access_token(owner), "theatreOwner": public_owner(owner)}

    async def authenticate(self, token: str) -> Dict[str, Any]:
        """
        Resolve the owner behind a bearer token.

        Returns:
            Public owner document

        Raises:
            TokenExpiredError, InvalidTokenError: On a bad token
            OwnerAuthError: 403 on a wrong role or deactivated account,
                401 when the owner no longer exists
        """
        claims = self.decode_token(token)
        if claims.role != OWNER_ROLE:
            raise OwnerAuthError("Theatre owner access required", 403)

        owner = await self.owners.find_by_id(claims.user_id)
        if owner is None:
            raise OwnerAuthError(OWNER_NOT_FOUND, 401)
        if not owner.get("isActive", True):
            raise OwnerAuthError("Account is deactivated", 403)
        return public_owner(owner)

    async def update_profile(self, owner_id: Any, request: OwnerProfileUpdate) -> Dict[str, Any]:
        """
        Change the owner's name, phone, bio or preferences.

        Returns:
            Public owner document after the update

        Raises:
            OwnerAuthError: 404 when the owner no longer exists
        """
        fields = request.to_document()
        owner = await self.owners.update(owner_id, fields)
        if owner is None:
            raise OwnerAuthError(OWNER_NOT_FOUND, 404)
        logger.info("owner_profile_updated", owner_id=str(owner_id), fields=sorted(fields))
        return public_owner(owner)

    async def change_password(
        self, owner_id: Any, request: ChangePasswordRequest, now: Optional[datetime] = None
    ) -> None:
        """
        Replace the owner's password after checking the current one.

        Raises:
            OwnerAuthError: 400 on a wrong current password or when the new
                one breaks the password rules, 404 when the owner is gone
        """
        owner = await self.owners.find_by_id(owner_id)
        if owner is None:
            raise OwnerAuthError(OWNER_NOT_FOUND, 404)

        if not self.verify_password(request.current_password, owner.get("password")):
            logger.warning("password_change_rejected", owner_id=str(owner_id))
            raise OwnerAuthError(WRONG_PASSWORD, 400)

        check = validate_password(request.new_password, PasswordRequirements())
        if not check.valid:
            raise OwnerAuthError(check.message, 400)

        await self.owners.update(
            owner_id,
            {"password": self.hash_password(request.new_password), "passwordChangedAt": now or utcnow()},
        )
        logger.info("owner_password_changed", owner_id=str(owner_id))
