"""
Customer identity via Firebase ID tokens.

Tokens are verified with google-auth against Google's published signing
certificates, with the Firebase project id as audience. Verification is
blocking (certificate fetch), so it runs in Starlette's threadpool.

Without a complete service account configuration the verifier is disabled:
development environments get a fixed mock user, everything else is refused.
"""

from typing import Any, Dict, Optional

import structlog
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings
from api.src.errors import IdentityProviderError

logger = structlog.get_logger(__name__)

DEV_USER: Dict[str, Any] = {"uid": "dev-user", "email": "dev@booknview.local", "name": "Dev User"}


class FirebaseVerifier:
    """Verifies Firebase ID tokens for customer routes."""

    def __init__(self, settings: Settings, transport: Optional[google_requests.Request] = None):
        self.settings = settings
        self.project_id = settings.firebase_project_id
        self.enabled = settings.firebase_service_account is not None
        self.allow_mock = settings.is_development
        self._transport = transport
        if not self.enabled:
            logger.warning(
                "firebase_disabled",
                mock_user=self.allow_mock,
                reason="Firebase service account not configured",
            )

    @property
    def transport(self) -> google_requests.Request:
        if self._transport is None:
            self._transport = google_requests.Request()
        return self._transport

    def _verify_sync(self, token: str) -> Dict[str, Any]:
        return id_token.verify_firebase_token(token, self.transport, audience=self.project_id)

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify an ID token and return its claims.

        Args:
            token: Firebase ID token from the Authorization header

        Returns:
            Decoded claims; ``uid`` is always present

        Raises:
            IdentityProviderError: With an ``auth/...`` code on any failure
        """
        if not self.enabled:
            if self.allow_mock:
                return dict(DEV_USER)
            raise IdentityProviderError("auth/operation-not-allowed", "Firebase not configured")

        try:
            claims = await run_in_threadpool(self._verify_sync, token)
        except google_exceptions.TransportError as e:
            logger.error("firebase_verify_unreachable", error=str(e))
            raise IdentityProviderError("auth/network-request-failed", str(e))
        except ValueError as e:
            message = str(e)
            if "expired" in message.lower() or "too late" in message.lower():
                raise IdentityProviderError("auth/user-token-expired", message)
            logger.warning("firebase_verify_failed", error=message)
            raise IdentityProviderError("auth/invalid-user-token", message)

        if claims is None:
            raise IdentityProviderError("auth/invalid-user-token", "Empty token claims")
        claims.setdefault("uid", claims.get("user_id") or claims.get("sub"))
        return claims
