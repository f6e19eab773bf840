"""Booking schemas."""

import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import EmailStr, Field

from api.src.models.common import CamelModel, SanitizedModel


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"
    NETBANKING = "netbanking"
    CASH = "cash"


class SeatType(str, Enum):
    REGULAR = "regular"
    PREMIUM = "premium"
    RECLINER = "recliner"
    VIP = "vip"


class SnackCategory(str, Enum):
    POPCORN = "popcorn"
    BEVERAGE = "beverage"
    CANDY = "candy"
    COMBO = "combo"
    FOOD = "food"


class BookingSortField(str, Enum):
    CREATED_AT = "createdAt"
    SHOW_DATE = "showtime.date"
    TOTAL_AMOUNT = "pricing.totalAmount"


class BookedMovie(CamelModel):
    movie_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    poster: Optional[str] = None
    genre: List[str] = Field(default_factory=list)
    duration: Optional[int] = None
    rating: Optional[str] = None
    language: Optional[str] = None


class BookedScreen(CamelModel):
    screen_number: Optional[str] = None
    screen_type: str = "2D"


class BookedTheatre(CamelModel):
    theatre_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location: Optional[dict] = None
    screen: BookedScreen = Field(default_factory=BookedScreen)


class BookedShowtime(CamelModel):
    date: dt.date
    time: str = Field(..., min_length=1)
    show_id: Optional[str] = None


class BookedSeat(CamelModel):
    seat_number: str = Field(..., min_length=1)
    row: Optional[str] = None
    seat_type: SeatType = SeatType.REGULAR
    price: float = Field(..., ge=0)


class BookedSnack(CamelModel):
    item_id: Optional[str] = None
    name: str
    category: SnackCategory
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)
    total_price: float = Field(..., ge=0)
    size: Optional[str] = None


class Discount(CamelModel):
    amount: float = Field(default=0, ge=0)
    coupon_code: Optional[str] = None
    description: Optional[str] = None


class ContactInfo(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None


class PaymentChoice(CamelModel):
    method: PaymentMethod = PaymentMethod.UPI
    provider: Optional[str] = None


class BookingCreate(SanitizedModel):
    """Body of ``POST /bookings``."""

    movie: BookedMovie
    theatre: BookedTheatre
    showtime: BookedShowtime
    seats: List[BookedSeat] = Field(..., min_length=1)
    snacks: List[BookedSnack] = Field(default_factory=list)
    discount: Discount = Field(default_factory=Discount)
    payment: PaymentChoice = Field(default_factory=PaymentChoice)
    contact_info: ContactInfo


class SeatSelection(CamelModel):
    row_label: str = Field(..., min_length=1)
    number: int
    # Display only; the booked price comes from the screen layout
    price: Optional[float] = Field(default=None, ge=0)


class ContactDetails(CamelModel):
    email: EmailStr
    mobile_number: str = Field(..., min_length=10, max_length=10)
    country_code: str = Field(..., min_length=1)


class SeatBookingRequest(SanitizedModel):
    """Body of ``POST /seat-layout/{screenId}/{bookingDate}/{showtime}/book``."""

    seats: List[SeatSelection] = Field(..., min_length=1)
    contact_details: ContactDetails


class CancelRequest(SanitizedModel):
    reason: Optional[str] = Field(default=None, max_length=500)
