"""
Razorpay payment gateway client.

Orders are created through the Razorpay SDK, whose blocking calls run in
Starlette's threadpool. Checkout results are verified locally: the signature
is HMAC-SHA256 of ``"{order_id}|{payment_id}"`` keyed with the key secret.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional

import razorpay
import razorpay.errors
import requests
import structlog
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings
from api.src.errors import ServiceError
from shared.metrics import BookingMetrics

logger = structlog.get_logger(__name__)

GATEWAY_ERRORS = (
    razorpay.errors.BadRequestError,
    razorpay.errors.GatewayError,
    razorpay.errors.ServerError,
    requests.RequestException,
)


class PaymentNotConfigured(ServiceError):
    """Raised when the gateway credentials are missing."""

    def __init__(self) -> None:
        super().__init__("Payment gateway not configured", status_code=503)


class PaymentGatewayError(ServiceError):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code)


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def amount_in_paise(total: float) -> int:
    return int(round(float(total) * 100))


class PaymentService:
    """Creates Razorpay orders and verifies checkout signatures."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[razorpay.Client] = None,
        metrics: Optional[BookingMetrics] = None,
    ):
        """
        Initialize the payment client.

        Args:
            settings: Settings carrying the Razorpay credentials and base URL
            client: Razorpay SDK client (built from the credentials when omitted)
            metrics: Business metrics for gateway outcomes
        """
        self.key_id = settings.razorpay_key_id
        self.key_secret = settings.razorpay_key_secret
        self.configured = settings.payments_configured
        self.metrics = metrics
        self.client = client
        if self.client is None and self.configured:
            self.client = razorpay.Client(
                auth=(self.key_id, self.key_secret),
                base_url=settings.razorpay_base_url.rstrip("/"),
            )
        if not self.configured:
            logger.warning("payments_disabled", reason="Razorpay credentials not configured")

    def _require_configured(self) -> None:
        if not self.configured:
            raise PaymentNotConfigured()

    def _record(self, operation: str, outcome: str) -> None:
        if self.metrics:
            self.metrics.payments.labels(operation=operation, outcome=outcome).inc()

    async def create_order(
        self,
        amount: int,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a Razorpay order.

        Args:
            amount: Amount in the smallest currency unit (paise)
            currency: ISO currency code
            receipt: Merchant receipt reference
            notes: Free-form key/value notes

        Returns:
            Order object returned by Razorpay (``id``, ``amount``, ``currency``, ...)

        Raises:
            PaymentNotConfigured: Without credentials
            PaymentGatewayError: 400 for a non-positive amount, 502 when the
                gateway rejects the request or is unreachable
        """
        self._require_configured()
        if amount <= 0:
            raise PaymentGatewayError("Amount must be greater than zero", status_code=400)

        payload = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes or {}}
        try:
            order = await run_in_threadpool(self.client.order.create, payload)
        except GATEWAY_ERRORS as e:
            self._record("create_order", "failed")
            logger.error("razorpay_order_failed", error_type=type(e).__name__, error=str(e)[:500])
            raise PaymentGatewayError("Failed to create payment order")

        self._record("create_order", "success")
        logger.info("razorpay_order_created", order_id=order.get("id"), amount=amount, receipt=receipt)
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check a checkout signature in constant time.

        Raises:
            PaymentNotConfigured: Without credentials
        """
        self._require_configured()
        expected = compute_signature(order_id, payment_id, self.key_secret)
        valid = hmac.compare_digest(expected, signature or "")
        self._record("verify", "success" if valid else "failed")
        if not valid:
            logger.warning("payment_signature_mismatch", order_id=order_id, payment_id=payment_id)
        return valid
