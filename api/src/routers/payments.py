"""
Payment router: Razorpay order creation and checkout verification.

The client creates an order for an existing booking, runs the Razorpay
checkout widget with the returned key id, then posts the widget's callback
fields to ``/verify``.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends

from api.src.dependencies import get_booking_service, get_current_customer, get_payment_service
from api.src.errors import ServiceError, as_http_error
from api.src.models.common import success
from api.src.models.payment import OrderRequest, VerifyRequest
from api.src.services.booking_service import BookingService, Customer
from api.src.services.payment_service import PaymentService, amount_in_paise

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/order", summary="Create a payment order for a booking")
async def create_order(
    body: OrderRequest,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
    payments: PaymentService = Depends(get_payment_service),
) -> Dict[str, Any]:
    """
    Create a Razorpay order for the booking total.

    **Errors:**
    - 404: Booking not found
    - 502: Failed to create payment order
    - 503: Payment gateway not configured
    """
    try:
        booking = await bookings.get(customer, body.booking_id)
        order = await payments.create_order(
            amount_in_paise(booking["pricing"]["totalAmount"]),
            receipt=booking["bookingId"],
            notes={"bookingId": booking["bookingId"], "user": customer.uid},
        )
        await bookings.attach_order(booking, order["id"])
    except ServiceError as e:
        raise as_http_error(e)

    return success({"order": order, "keyId": payments.key_id, "bookingId": booking["bookingId"]})


@router.post("/verify", summary="Verify a checkout signature")
async def verify_payment(
    body: VerifyRequest,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
    payments: PaymentService = Depends(get_payment_service),
) -> Dict[str, Any]:
    """
    Mark the booking paid once the gateway signature checks out.

    **Errors:**
    - 400: Payment signature verification failed, or the order was not
      created for this booking
    - 404: Booking not found
    """
    try:
        booking = await bookings.get(customer, body.booking_id)
        if not payments.verify_signature(
            body.razorpay_order_id, body.razorpay_payment_id, body.razorpay_signature
        ):
            raise ServiceError("Payment signature verification failed")
        await bookings.mark_paid(booking, body.razorpay_order_id, body.razorpay_payment_id)
    except ServiceError as e:
        raise as_http_error(e)

    return success({"bookingId": booking["bookingId"]}, message="Payment verified")
