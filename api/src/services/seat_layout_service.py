"""Live seat availability for a single screening."""

from datetime import date
from typing import Any, Dict, Optional

import structlog

from api.src.models.screen import ScreenLayoutPayload
from api.src.repositories.base import utcnow
from api.src.repositories.booking_repo import BookingRepository
from api.src.repositories.layout_repo import ScreenLayoutRepository
from api.src.services.booking_service import BookingError, _as_date, booked_seat_keys, seat_key

logger = structlog.get_logger(__name__)


class SeatLayoutService:
    """Screen layouts and their per-show availability."""

    def __init__(self, layouts: ScreenLayoutRepository, bookings: BookingRepository):
        self.layouts = layouts
        self.bookings = bookings

    async def save_layout(self, screen_id: str, payload: ScreenLayoutPayload, updated_by: Any = None) -> Dict[str, Any]:
        """
        Create or replace a screen's layout.

        The seats array is replaced wholesale.
        """
        fields = payload.to_document()
        fields["updatedBy"] = updated_by
        layout = await self.layouts.upsert(screen_id, fields)
        logger.info("screen_layout_saved", screen_id=screen_id, seats=len(fields.get("seats", [])))
        return layout

    async def find_layout(self, screen_id: str) -> Optional[Dict[str, Any]]:
        return await self.layouts.find_by_screen(screen_id)

    async def get_layout(self, screen_id: str) -> Dict[str, Any]:
        layout = await self.find_layout(screen_id)
        if layout is None:
            raise BookingError("Screen layout not found", status_code=404)
        return layout

    async def live_layout(
        self,
        screen_id: str,
        booking_date: str,
        showtime: str,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Layout of a screen with each seat marked booked or available.

        Args:
            screen_id: Screen id
            booking_date: YYYY-MM-DD
            showtime: Display time of the screening
            today: Current date (defaults to today in UTC)

        Returns:
            Layout document whose seats carry ``liveStatus``

        Raises:
            BookingError: 400 for past or invalid dates, 404 without a layout
        """
        today = today or utcnow().date()
        try:
            show_day = _as_date(booking_date)
        except ValueError:
            raise BookingError("Invalid booking date")
        if show_day < today:
            raise BookingError("Cannot access seat layout for past dates")

        layout = await self.get_layout(screen_id)
        taken = booked_seat_keys(
            await self.bookings.list_confirmed_for_show(screen_id, show_day, showtime)
        )

        seats = [
            {
                **seat,
                "liveStatus": "booked" if seat_key(seat.get("rowLabel"), seat.get("number")) in taken else "available",
            }
            for seat in layout.get("seats") or []
        ]
        return {**layout, "seats": seats}

    async def live_snapshot(
        self,
        screen_id: str,
        booking_date: str,
        showtime: str,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """``live_layout`` plus counters and a ``lastUpdated`` timestamp for polling clients."""
        layout = await self.live_layout(screen_id, booking_date, showtime, today)
        seats = layout["seats"]
        reserved = sorted(
            seat_key(seat.get("rowLabel"), seat.get("number")) for seat in seats if seat["liveStatus"] == "booked"
        )
        return {
            **layout,
            "reservedSeats": reserved,
            "totalSeats": len(seats),
            "availableSeats": len(seats) - len(reserved),
            "lastUpdated": utcnow().isoformat(),
        }
