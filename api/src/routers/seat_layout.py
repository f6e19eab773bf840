"""
Seat layout router: live availability and seat booking for one screening.

Every route sits behind the ``seat-layout`` rate limit policy (30 requests
per minute per client).
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, status

from api.src.dependencies import get_booking_service, get_current_customer, get_seat_layout_service
from api.src.errors import as_http_error
from api.src.models.booking import SeatBookingRequest
from api.src.models.common import success
from api.src.repositories.base import serialize_document
from api.src.services.booking_service import BookingError, BookingService, Customer
from api.src.services.seat_layout_service import SeatLayoutService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/seat-layout", tags=["Seat Layout"])


@router.get("/{screen_id}/{booking_date}/{showtime}", summary="Seat layout with live availability")
async def live_layout(
    screen_id: str,
    booking_date: str,
    showtime: str,
    layouts: SeatLayoutService = Depends(get_seat_layout_service),
) -> Dict[str, Any]:
    try:
        layout = await layouts.live_layout(screen_id, booking_date, showtime)
    except BookingError as e:
        raise as_http_error(e)
    return success(serialize_document(layout))


@router.get("/{screen_id}/{booking_date}/{showtime}/live", summary="Live availability for polling")
async def live_snapshot(
    screen_id: str,
    booking_date: str,
    showtime: str,
    layouts: SeatLayoutService = Depends(get_seat_layout_service),
) -> Dict[str, Any]:
    try:
        snapshot = await layouts.live_snapshot(screen_id, booking_date, showtime)
    except BookingError as e:
        raise as_http_error(e)
    return success(serialize_document(snapshot))


@router.post(
    "/{screen_id}/{booking_date}/{showtime}/book",
    status_code=status.HTTP_201_CREATED,
    summary="Book seats",
)
async def book_seats(
    screen_id: str,
    booking_date: str,
    showtime: str,
    body: SeatBookingRequest,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    """
    Book seats after checking them against confirmed bookings.

    **Errors:**
    - 400: Past or invalid date
    - 404: Screen layout not found
    - 409: Some seats are no longer available (``data.conflicts`` lists them)
    """
    try:
        result = await bookings.book_seats(customer, screen_id, booking_date, showtime, body)
    except BookingError as e:
        raise as_http_error(e)
    return success(result, message="Booking confirmed")
