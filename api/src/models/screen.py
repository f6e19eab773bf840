"""Screen layout and show scheduling schemas."""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from api.src.models.common import CamelModel, SanitizedModel


class SeatTier(str, Enum):
    BASE = "Base"
    PREMIUM = "Premium"
    VIP = "VIP"


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED = "blocked"
    DELETED = "deleted"


class ShowStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class LayoutMeta(CamelModel):
    rows: int = Field(..., ge=1)
    columns: int = Field(..., ge=1)
    aisles: List[int] = Field(default_factory=list)


class SeatClass(CamelModel):
    class_name: str
    price: float
    color: Optional[str] = None
    tier: SeatTier = SeatTier.BASE
    rows: str = Field(..., description='Row range, e.g. "A-C"')


class Seat(CamelModel):
    row_label: str
    number: int
    x: float = 0
    y: float = 0
    class_name: str
    price: float
    color: Optional[str] = None
    tier: SeatTier = SeatTier.BASE
    status: SeatStatus = SeatStatus.AVAILABLE
    is_active: bool = True


class ScreenLayoutPayload(SanitizedModel):
    """Body of ``POST /screens/{id}/layout``; replaces the whole seat map."""

    theatre_id: Optional[str] = None
    screen_name: Optional[str] = None
    meta: LayoutMeta
    seat_classes: List[SeatClass] = Field(default_factory=list)
    seats: List[Seat] = Field(default_factory=list)
    updated_by: Optional[str] = None


class ShowScheduleRequest(SanitizedModel):
    """Body of ``POST /screens/{id}/shows``."""

    movie_id: Optional[str] = None
    booking_date: Optional[str] = Field(default=None, description="YYYY-MM-DD; defaults to today")
    showtimes: List[str] = Field(default_factory=list)
    status: ShowStatus = ShowStatus.ACTIVE
    max_days: Optional[int] = Field(default=None, description="Requested advance window")
    theatre_id: Optional[str] = None
