"""
Customer booking router.

All routes require a customer ID token. Bookings are addressed by their
public ``BK...`` reference or by document id.
"""

import datetime as dt
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query, status

from api.src.dependencies import (
    PaginationParams,
    get_booking_service,
    get_current_customer,
    get_pagination_params,
)
from api.src.errors import as_http_error
from api.src.models.booking import BookingCreate, BookingSortField, BookingStatus, CancelRequest
from api.src.models.common import Pagination, success
from api.src.models.movie import SortOrder
from api.src.repositories.base import serialize_document
from api.src.services.booking_service import BookingError, BookingService, Customer

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a booking")
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_booking(
    body: BookingCreate,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    """
    Create a booking from a client-assembled payload.

    Pricing and tickets are computed server side; the payment starts out
    ``pending``.
    """
    booking = await bookings.create(customer, body)
    logger.info("booking_created", booking_id=booking["bookingId"])
    return success(serialize_document(booking), message="Booking created successfully")


@router.get("", summary="List the customer's bookings")
@router.get("/", include_in_schema=False)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    sort_by: BookingSortField = Query(BookingSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    pagination: PaginationParams = Depends(get_pagination_params),
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    """
    **Query Parameters:**
    - status: booking status filter
    - startDate / endDate: show date window (YYYY-MM-DD, inclusive)
    - sortBy: createdAt | showtime.date | pricing.totalAmount
    """
    items, total = await bookings.list(
        customer,
        status=status_filter.value if status_filter else None,
        start_date=start_date,
        end_date=end_date,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
    )
    return success(
        serialize_document(items),
        pagination=Pagination.build(pagination.page, pagination.limit, total, len(items)).to_document(),
    )


@router.get("/{booking_id}", summary="Get a booking")
async def get_booking(
    booking_id: str,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    try:
        booking = await bookings.get(customer, booking_id)
    except BookingError as e:
        raise as_http_error(e)
    return success(serialize_document(booking))


@router.get("/{booking_id}/ticket", summary="Ticket data for a booking")
async def get_ticket(
    booking_id: str,
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    try:
        ticket = await bookings.ticket(customer, booking_id)
    except BookingError as e:
        raise as_http_error(e)
    return success(serialize_document(ticket))


@router.patch("/{booking_id}/cancel", summary="Cancel a booking")
async def cancel_booking(
    booking_id: str,
    body: Optional[CancelRequest] = Body(None),
    customer: Customer = Depends(get_current_customer),
    bookings: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    """
    Cancel a confirmed booking at least two hours before the show.

    A 10% cancellation fee is withheld from completed payments.

    **Errors:**
    - 400: Booking cannot be cancelled
    - 404: Booking not found
    """
    try:
        booking, refund, fee = await bookings.cancel(customer, booking_id, body.reason if body else None)
    except BookingError as e:
        raise as_http_error(e)
    return success(
        {
            "booking": serialize_document(booking),
            "refundAmount": refund,
            "cancellationFee": fee,
        },
        message="Booking cancelled successfully",
    )
