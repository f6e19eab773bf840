"""Show timing templates: weekday, weekend and date-specific showtimes."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import Field

from api.src.models.common import SanitizedModel


class TimingType(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    SPECIAL = "special"


class TimingsRequest(SanitizedModel):
    """Body of the weekday and weekend endpoints."""

    timings: List[str]


class SpecialTimingRequest(SanitizedModel):
    timings: List[str]
    special_date: date
    description: str = ""


class SpecialTimingUpdate(SanitizedModel):
    """Replaces the timings; the description changes only when sent."""

    timings: List[str]
    description: Optional[str] = Field(default=None)
