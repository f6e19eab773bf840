"""
Outbound email.

Booking confirmations are sent over SMTP with STARTTLS. smtplib is blocking,
so sends run in Starlette's threadpool. When credentials are missing the
service only logs what it would have sent. A failed send is logged and
reported to the caller as ``False``; it never raises.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict

import structlog
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings

logger = structlog.get_logger(__name__)


def _format_show_date(value: Any) -> str:
    if hasattr(value, "strftime"):
        return value.strftime("%A, %d %B %Y")
    return str(value or "")


def render_booking_confirmation(booking: Dict[str, Any], frontend_url: str) -> str:
    """Render the HTML body of a booking confirmation."""
    seats = ", ".join(
        f"{seat.get('seatNumber')} (₹{seat.get('price', 0):.0f})" for seat in booking.get("seats", [])
    )
    movie = booking.get("movie") or {}
    theatre = booking.get("theatre") or {}
    showtime = booking.get("showtime") or {}
    total = (booking.get("pricing") or {}).get("totalAmount", 0)
    contact = booking.get("contactInfo") or {}

    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333;">
        <h1>Booking Confirmed!</h1>
        <p>Dear <strong>{contact.get('name') or 'Valued Customer'}</strong>,</p>
        <p>Thank you for choosing BookNView! Your movie ticket booking has been confirmed.</p>
        <table>
          <tr><td><b>Booking ID</b></td><td>{booking.get('bookingId')}</td></tr>
          <tr><td><b>Movie</b></td><td>{movie.get('title', '')}</td></tr>
          <tr><td><b>Theatre</b></td><td>{theatre.get('name', '')}</td></tr>
          <tr><td><b>Date</b></td><td>{_format_show_date(showtime.get('date'))}</td></tr>
          <tr><td><b>Time</b></td><td>{showtime.get('time', '')}</td></tr>
          <tr><td><b>Seats</b></td><td>{seats}</td></tr>
          <tr><td><b>Total</b></td><td>₹{total:.2f}</td></tr>
        </table>
        <p>Please arrive at least 15 minutes before the show.</p>
        <p><a href="{frontend_url}/bookings">View your bookings</a></p>
      </body>
    </html>
    """


class EmailService:
    """SMTP sender for transactional mail."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.enabled = settings.email_configured
        self.sender = settings.email_from or settings.email_user
        if not self.enabled:
            logger.warning("email_disabled", reason="EMAIL_USER/EMAIL_PASS not configured")

    def _send_sync(self, recipient: str, subject: str, html: str) -> None:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"BookNView <{self.sender}>"
        message["To"] = recipient
        message.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.settings.email_host, self.settings.email_port, timeout=30) as server:
            server.starttls()
            server.login(self.settings.email_user, self.settings.email_pass)
            server.sendmail(self.sender, [recipient], message.as_string())

    async def send(self, recipient: str, subject: str, html: str) -> bool:
        """
        Send one HTML email.

        Args:
            recipient: Destination address
            subject: Subject line
            html: HTML body

        Returns:
            True when the message was handed to the SMTP server
        """
        if not self.enabled:
            logger.info("email_skipped", recipient=recipient, subject=subject)
            return False
        try:
            await run_in_threadpool(self._send_sync, recipient, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", recipient=recipient, subject=subject, error=str(e))
            return False
        logger.info("email_sent", recipient=recipient, subject=subject)
        return True

    async def send_booking_confirmation(self, booking: Dict[str, Any]) -> bool:
        recipient = (booking.get("contactInfo") or {}).get("email")
        if not recipient:
            logger.warning("email_missing_recipient", booking_id=booking.get("bookingId"))
            return False
        return await self.send(
            recipient,
            "Your Movie Tickets are Confirmed!",
            render_booking_confirmation(booking, self.settings.frontend_url),
        )
