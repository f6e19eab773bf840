"""Movie catalogue schemas."""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from api.src.models.common import SanitizedModel, split_csv


class MovieStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMING_SOON = "coming_soon"


class MovieFormat(str, Enum):
    TWO_D = "2D"
    THREE_D = "3D"


class MovieSortField(str, Enum):
    TITLE = "title"
    RELEASE_DATE = "releaseDate"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class MovieCreate(SanitizedModel):
    """Body of ``POST /movies``."""

    title: str = Field(..., min_length=1)
    genre: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1, description='Free text, e.g. "2h 30m"')
    poster_url: Optional[str] = None
    status: MovieStatus = MovieStatus.ACTIVE
    showtimes: List[str] = Field(default_factory=list)
    description: str = ""
    director: str = ""
    cast: List[str] = Field(default_factory=list)
    language: str = Field(default="English", description="Spoken language")
    release_date: str = ""
    format: MovieFormat = MovieFormat.TWO_D
    advance_booking_enabled: bool = False

    @field_validator("showtimes", "cast", mode="before")
    @classmethod
    def accept_csv(cls, v):
        return split_csv(v)


class MovieUpdate(SanitizedModel):
    """Body of ``PUT /movies/{movieId}``; omitted fields keep their value."""

    title: Optional[str] = Field(default=None, min_length=1)
    genre: Optional[str] = Field(default=None, min_length=1)
    duration: Optional[str] = Field(default=None, min_length=1)
    poster_url: Optional[str] = None
    status: Optional[MovieStatus] = None
    showtimes: Optional[List[str]] = None
    description: Optional[str] = None
    director: Optional[str] = None
    cast: Optional[List[str]] = None
    language: Optional[str] = None
    release_date: Optional[str] = None
    format: Optional[MovieFormat] = None
    advance_booking_enabled: Optional[bool] = None

    @field_validator("showtimes", "cast", mode="before")
    @classmethod
    def accept_csv(cls, v):
        if v is None or v == "":
            return None
        return split_csv(v)
