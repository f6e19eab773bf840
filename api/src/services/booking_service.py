"""
Booking domain logic.

Pure helpers (ids, pricing, tickets, cancellation rules, seat keys) plus
``BookingService``, which orchestrates them with the repositories for the
booking, seat-booking and cancellation endpoints.

Pricing:
    subtotal = seat total + snack total
    taxes    = CGST 9% + SGST 9% + service fee 2% of subtotal, plus a flat
               convenience fee of 20
    total    = subtotal + taxes - discount
"""

import random
import re
import string
import time
from dataclasses import dataclass
from datetime import date, datetime, time as dtime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from api.src.errors import ServiceError
from api.src.models.booking import BookingCreate, SeatBookingRequest
from api.src.repositories.base import date_to_datetime, utcnow
from api.src.repositories.booking_repo import BookingRepository
from api.src.repositories.layout_repo import ScreenLayoutRepository
from api.src.repositories.movie_repo import MovieRepository
from api.src.repositories.show_repo import ShowRepository
from api.src.services.email_service import EmailService
from shared.metrics import BookingMetrics
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

CGST_RATE = 0.09
SGST_RATE = 0.09
SERVICE_FEE_RATE = 0.02
CONVENIENCE_FEE = 20

CANCELLATION_FEE_RATE = 0.10
CANCELLATION_CUTOFF = timedelta(hours=2)

_BASE36 = string.digits + string.ascii_uppercase
_TWELVE_HOUR = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"^(\d{1,2}):(\d{2})$")
_COMPACT_SEAT = re.compile(r"^([A-Z])(\d+)$")
_SEAT_DIGITS = re.compile(r"^[0-9]+$")
UNBOOKABLE_SEAT_STATUSES = ("blocked", "deleted")


class BookingError(ServiceError):
    """A booking rule rejected the request."""


# ============================================================================
# Pure helpers
# ============================================================================

def generate_booking_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """
    Generate a booking reference such as ``BK12345678A1B2``.

    Args:
        now_ms: Epoch milliseconds (defaults to the current time)
        rng: Random source for the suffix

    Returns:
        "BK" + last 8 digits of the timestamp + 4 base36 characters
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random
    suffix = "".join(rng.choice(_BASE36) for _ in range(4))
    return f"BK{str(now_ms)[-8:]}{suffix}"


def calculate_pricing(
    seats: Iterable[Dict[str, Any]],
    snacks: Iterable[Dict[str, Any]] = (),
    discount: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Compute the pricing block of a booking.

    Args:
        seats: Seat entries with ``price``
        snacks: Snack entries with ``totalPrice``
        discount: Discount block with ``amount`` (optional)

    Returns:
        Pricing document (seatTotal, snackTotal, subtotal, taxes, discount,
        totalAmount)
    """
    discount = dict(discount or {})
    discount.setdefault("amount", 0)

    seat_total = sum(float(seat.get("price") or 0) for seat in seats)
    snack_total = sum(float(snack.get("totalPrice") or 0) for snack in snacks)
    subtotal = seat_total + snack_total

    taxes = {
        "cgst": subtotal * CGST_RATE,
        "sgst": subtotal * SGST_RATE,
        "serviceFee": subtotal * SERVICE_FEE_RATE,
        "convenienceFee": CONVENIENCE_FEE,
    }
    total = subtotal + sum(taxes.values()) - float(discount["amount"] or 0)

    return {
        "seatTotal": seat_total,
        "snackTotal": snack_total,
        "subtotal": subtotal,
        "taxes": taxes,
        "discount": discount,
        "totalAmount": total,
    }


def generate_tickets(booking_id: str, seats: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One ticket per seat, numbered from 1."""
    return [
        {
            "ticketNumber": f"{booking_id}-{index + 1}",
            "qrCode": f"{booking_id}-{seat.get('seatNumber')}",
            "downloadUrl": None,
            "isUsed": False,
        }
        for index, seat in enumerate(seats)
    ]


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_show_datetime(show_date: Any, show_time: Optional[str]) -> datetime:
    """
    Combine a show date and a display time into a UTC datetime.

    Accepts "7:00 PM" and "19:00" style times. Anything else falls back to
    midnight of the show date.

    Args:
        show_date: date, datetime or YYYY-MM-DD string
        show_time: Display time

    Returns:
        Timezone-aware datetime
    """
    day = _as_date(show_date)
    clock = dtime.min
    text = (show_time or "").strip()

    match = _TWELVE_HOUR.search(text)
    if match:
        hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        if hours < 24 and minutes < 60:
            clock = dtime(hours, minutes)
    else:
        match = _TWENTY_FOUR_HOUR.match(text)
        if match and int(match.group(1)) < 24 and int(match.group(2)) < 60:
            clock = dtime(int(match.group(1)), int(match.group(2)))

    return datetime.combine(day, clock, tzinfo=timezone.utc)


def is_cancellable(booking: Dict[str, Any], now: datetime) -> bool:
    """A booking can be cancelled while confirmed and more than 2 hours before the show."""
    if booking.get("status") != "confirmed":
        return False
    showtime = booking.get("showtime") or {}
    starts_at = parse_show_datetime(showtime.get("date"), showtime.get("time"))
    return starts_at - now > CANCELLATION_CUTOFF


def cancel(booking: Dict[str, Any], reason: Optional[str], now: datetime) -> Dict[str, Any]:
    """
    Compute the fields that cancel a booking.

    Args:
        booking: Booking document
        reason: Customer supplied reason
        now: Current time

    Returns:
        Dotted-path update with status, cancellation block and refund amount

    Raises:
        BookingError: If the booking is not confirmed or the show is too close
    """
    if booking.get("status") != "confirmed":
        raise BookingError("Only confirmed bookings can be cancelled")
    if not is_cancellable(booking, now):
        raise BookingError("Booking cannot be cancelled (less than 2 hours before show)")

    total = float((booking.get("pricing") or {}).get("totalAmount") or 0)
    fee = total * CANCELLATION_FEE_RATE
    return {
        "status": "cancelled",
        "cancellation": {
            "cancelledAt": now,
            "reason": reason or "Cancelled by user",
            "cancelledBy": "user",
            "refundEligible": True,
            "cancellationFee": fee,
        },
        "payment.refundAmount": total - fee,
    }


def seat_key(row: Any, number: Any) -> str:
    """Key of a seat map seat, e.g. ``seat_key("AA", 3) == "AA-3"``."""
    return f"{row}-{number}"


def normalize_seat_key(seat: Dict[str, Any]) -> Optional[str]:
    """
    Key a booked seat the way seat maps key their seats ("A-1").

    With a row, "{row}{number}" or a bare number becomes "{row}-{number}",
    so multi-letter rows key correctly. Without one, "A1" becomes "A-1".
    Anything else is returned unchanged.
    """
    seat_number = seat.get("seatNumber") or seat.get("number") or seat.get("seat")
    if seat_number is None or seat_number == "":
        return None
    seat_number = str(seat_number)
    row = str(seat.get("row") or seat.get("rowLabel") or "")
    if row:
        rest = seat_number[len(row):] if seat_number.startswith(row) else seat_number
        if _SEAT_DIGITS.match(rest):
            return seat_key(row, int(rest))
        return seat_key(row, seat_number)
    match = _COMPACT_SEAT.match(seat_number)
    if match:
        return seat_key(match.group(1), match.group(2))
    return seat_number


def booked_seat_keys(bookings: Iterable[Dict[str, Any]]) -> set:
    keys = set()
    for booking in bookings:
        for seat in booking.get("seats") or []:
            key = normalize_seat_key(seat)
            if key:
                keys.add(key)
    return keys


# ============================================================================
# Service
# ============================================================================

@dataclass
class Customer:
    """Authenticated customer as established by the identity provider."""

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class BookingService:
    """Creates, lists and cancels customer bookings."""

    def __init__(
        self,
        bookings: BookingRepository,
        layouts: ScreenLayoutRepository,
        shows: ShowRepository,
        movies: Optional[MovieRepository] = None,
        email: Optional[EmailService] = None,
        metrics: Optional[BookingMetrics] = None,
    ):
        self.bookings = bookings
        self.layouts = layouts
        self.shows = shows
        self.movies = movies
        self.email = email
        self.metrics = metrics

    @trace_function("booking.create")
    async def create(self, customer: Customer, request: BookingCreate) -> Dict[str, Any]:
        """
        Persist a booking assembled by the client.

        Pricing and tickets are always computed server side.

        Returns:
            Stored booking
        """
        payload = request.to_document()
        booking_id = generate_booking_id()
        seats = payload["seats"]
        showtime = dict(payload["showtime"])
        showtime["date"] = date_to_datetime(request.showtime.date)

        document = {
            "bookingId": booking_id,
            "firebaseUid": customer.uid,
            "movie": payload["movie"],
            "theatre": payload["theatre"],
            "showtime": showtime,
            "seats": seats,
            "snacks": payload.get("snacks", []),
            "pricing": calculate_pricing(seats, payload.get("snacks", []), payload.get("discount")),
            "payment": {**payload.get("payment", {}), "status": "pending", "refundAmount": 0},
            "status": "confirmed",
            "tickets": generate_tickets(booking_id, seats),
            "contactInfo": payload["contactInfo"],
            "metadata": {"source": "web"},
        }
        booking = await self.bookings.create(document)
        if self.metrics:
            self.metrics.bookings_created.labels(channel="booking").inc()
        return booking

    async def list(self, customer: Customer, **filters: Any) -> Tuple[List[Dict[str, Any]], int]:
        return await self.bookings.list_for_customer(customer.uid, **filters)

    async def get(self, customer: Customer, reference: str) -> Dict[str, Any]:
        """
        Raises:
            BookingError: 404 when the customer has no such booking
        """
        booking = await self.bookings.find_for_customer(customer.uid, reference)
        if booking is None:
            raise BookingError("Booking not found", status_code=404)
        return booking

    async def attach_order(self, booking: Dict[str, Any], order_id: str) -> Dict[str, Any]:
        """Record a freshly created gateway order on the booking."""
        updated = await self.bookings.update(
            booking["_id"],
            {
                "payment.method": "upi",
                "payment.provider": "Razorpay",
                "payment.status": "pending",
                "payment.transactionId": order_id,
            },
        )
        logger.info("payment_order_attached", booking_id=booking["bookingId"], order_id=order_id)
        return updated or booking

    async def mark_paid(
        self,
        booking: Dict[str, Any],
        order_id: str,
        payment_id: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Mark a booking's payment completed.

        Tickets are generated when the booking has none yet.

        Raises:
            BookingError: When ``order_id`` is not the order created for this booking
        """
        if (booking.get("payment") or {}).get("transactionId") != order_id:
            logger.warning("payment_order_mismatch", booking_id=booking["bookingId"], order_id=order_id)
            raise BookingError("Payment order does not match this booking")
        fields: Dict[str, Any] = {
            "payment.status": "completed",
            "payment.provider": "Razorpay",
            "payment.paymentId": payment_id,
            "payment.transactionId": order_id,
            "payment.paidAt": now or utcnow(),
        }
        if not booking.get("tickets"):
            fields["tickets"] = generate_tickets(booking["bookingId"], booking.get("seats") or [])
        updated = await self.bookings.update(booking["_id"], fields)
        logger.info("payment_completed", booking_id=booking["bookingId"], payment_id=payment_id)
        return updated or booking

    async def ticket(self, customer: Customer, reference: str) -> Dict[str, Any]:
        """
        Ticket data for a booking (QR payloads included).

        Raises:
            BookingError: 404 for an unknown booking, 400 once it is cancelled
        """
        booking = await self.get(customer, reference)
        if booking.get("status") == "cancelled":
            raise BookingError("Cannot download ticket for cancelled booking")
        tickets = booking.get("tickets") or []
        return {
            "bookingId": booking["bookingId"],
            "movie": booking.get("movie"),
            "theatre": booking.get("theatre"),
            "showtime": booking.get("showtime"),
            "seats": booking.get("seats", []),
            "contactInfo": booking.get("contactInfo"),
            "tickets": tickets,
            "qrCodes": [ticket.get("qrCode") for ticket in tickets],
        }

    async def cancel(
        self,
        customer: Customer,
        reference: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Dict[str, Any], float, float]:
        """
        Cancel a booking.

        Returns:
            (updated booking, refund amount, cancellation fee)
        """
        booking = await self.get(customer, reference)
        update = cancel(booking, reason, now or utcnow())
        updated = await self.bookings.update(booking["_id"], update)
        if self.metrics:
            self.metrics.bookings_cancelled.inc()
        logger.info("booking_cancelled", booking_id=booking["bookingId"])
        return updated, update["payment.refundAmount"], update["cancellation"]["cancellationFee"]

    @trace_function("booking.book_seats")
    async def book_seats(
        self,
        customer: Customer,
        screen_id: str,
        booking_date: str,
        showtime: str,
        request: SeatBookingRequest,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Book seats on a screening after checking live availability.

        Repeated seats are booked once. Every seat must be bookable on the
        screen layout, and its price is taken from the layout.

        Args:
            customer: Authenticated customer
            screen_id: Screen id
            booking_date: YYYY-MM-DD
            showtime: Display time of the screening
            request: Requested seats and contact details
            today: Current date (defaults to today in UTC)

        Returns:
            {"bookingId", "totalAmount", "currency"}

        Raises:
            BookingError: 400 for past dates or seats missing from the layout,
                404 without a layout, 409 when any requested seat is already taken
        """
        today = today or utcnow().date()
        try:
            show_day = _as_date(booking_date)
        except ValueError:
            raise BookingError("Invalid booking date")
        if show_day < today:
            raise BookingError("Cannot book seats for past dates")

        layout = await self.layouts.find_by_screen(screen_id)
        if layout is None:
            raise BookingError("Screen layout not found", status_code=404)

        show = await self.shows.find_show(screen_id, show_day.isoformat(), showtime)
        movie: Dict[str, Any] = {}
        if show and self.movies is not None:
            movie = await self.movies.find_by_id(show["movieId"]) or {}

        bookable = {
            seat_key(seat.get("rowLabel"), seat.get("number")): seat
            for seat in layout.get("seats") or []
            if seat.get("isActive", True) and seat.get("status") not in UNBOOKABLE_SEAT_STATUSES
        }
        requested: Dict[str, Any] = {}
        for seat in request.seats:
            requested.setdefault(seat_key(seat.row_label, seat.number), seat)
        invalid = [key for key in requested if key not in bookable]
        if invalid:
            raise BookingError("Some seats do not exist on this screen", data={"invalid": invalid})

        taken = booked_seat_keys(
            await self.bookings.list_confirmed_for_show(screen_id, show_day, showtime)
        )
        conflicts = [key for key in requested if key in taken]
        if conflicts:
            logger.info("seat_conflict", screen_id=screen_id, date=booking_date, showtime=showtime, conflicts=conflicts)
            raise BookingError(
                "Some seats are no longer available", status_code=409, data={"conflicts": conflicts}
            )

        booking_id = generate_booking_id()
        seats = [
            {
                "seatNumber": f"{seat.row_label}{seat.number}",
                "row": seat.row_label,
                "seatType": "regular",
                "price": float(bookable[key].get("price") or 0),
            }
            for key, seat in requested.items()
        ]
        pricing = calculate_pricing(seats)
        contact = request.contact_details

        document = {
            "bookingId": booking_id,
            "firebaseUid": customer.uid,
            "movie": {
                "movieId": str(show["movieId"]) if show else "",
                "title": movie.get("title") or "Movie",
                "poster": movie.get("posterUrl") or "",
            },
            "theatre": {
                "theatreId": str(layout.get("theatreId") or ""),
                "name": layout.get("screenName") or "Theatre",
                "screen": {"screenNumber": screen_id, "screenType": "2D"},
            },
            "showtime": {
                "date": date_to_datetime(show_day),
                "time": showtime,
                "showId": str(show["_id"]) if show else None,
            },
            "seats": seats,
            "snacks": [],
            "pricing": pricing,
            "payment": {"method": "upi", "status": "pending", "refundAmount": 0},
            "status": "confirmed",
            "tickets": generate_tickets(booking_id, seats),
            "contactInfo": {
                "email": contact.email,
                "phone": f"{contact.country_code}{contact.mobile_number}",
                "name": contact.email.split("@")[0],
            },
            "metadata": {"source": "web"},
        }
        booking = await self.bookings.create(document)
        if self.metrics:
            self.metrics.bookings_created.labels(channel="seat_layout").inc()

        if self.email is not None:
            await self.email.send_booking_confirmation(booking)

        return {"bookingId": booking_id, "totalAmount": pricing["totalAmount"], "currency": "INR"}
