"""
Show timing templates.

Owners keep one list of showtimes for weekdays, one for weekends and any
number of date-specific extras. The showtimes available on a day are the
template for that day type merged with the day's special timings.
"""

from datetime import date
from typing import Any, Dict, List

import structlog

from api.src.errors import DuplicateValueError, ServiceError
from api.src.models.show_timing import SpecialTimingRequest, SpecialTimingUpdate, TimingType
from api.src.repositories.show_timing_repo import ShowTimingRepository

logger = structlog.get_logger(__name__)

NOT_AUTHORIZED = "Not authorized"
SPECIAL_NOT_FOUND = "Special timing not found"
SPECIAL_EXISTS = "Special timing already exists for this date"


class ShowTimingError(ServiceError):
    """A timing request was rejected."""


def day_type(day: date) -> TimingType:
    """Saturday and Sunday use the weekend template."""
    return TimingType.WEEKEND if day.weekday() >= 5 else TimingType.WEEKDAY


def merge_timings(base: List[str], specials: List[List[str]]) -> List[str]:
    """Union of the base and special showtimes, sorted, without repeats."""
    merged = set(base)
    for timings in specials:
        merged.update(timings)
    return sorted(merged)


class ShowTimingService:
    """Service for owner showtime templates."""

    def __init__(self, timings: ShowTimingRepository):
        self.timings = timings

    @staticmethod
    def check_owner(owner: Dict[str, Any], owner_id: str) -> None:
        """
        Only the owner named in the path may read or change its timings.

        Raises:
            ShowTimingError: 403 for anyone else
        """
        if str(owner["_id"]) != str(owner_id):
            logger.warning("show_timing_access_denied", owner_id=str(owner["_id"]), target=owner_id)
            raise ShowTimingError(NOT_AUTHORIZED, 403)

    async def list_timings(self, owner_id: Any) -> List[Dict[str, Any]]:
        return await self.timings.list_active(owner_id)

    async def available(self, owner_id: Any, day: date) -> Dict[str, Any]:
        """
        Showtimes an owner offers on one day.

        Returns:
            Dict with date, dayType, baseTimings, specialTimings and the
            merged allAvailable list
        """
        kind = day_type(day)
        template = await self.timings.find_template(owner_id, kind)
        specials = await self.timings.list_special(owner_id, day)
        base = template["timings"] if template else []
        return {
            "date": day.isoformat(),
            "dayType": kind.value,
            "baseTimings": base,
            "specialTimings": [
                {"id": special["_id"], "timings": special["timings"], "description": special.get("description", "")}
                for special in specials
            ],
            "allAvailable": merge_timings(base, [special["timings"] for special in specials]),
        }

    async def save_template(self, owner_id: Any, kind: TimingType, timings: List[str]) -> Dict[str, Any]:
        template = await self.timings.save_template(owner_id, kind, timings)
        logger.info("show_timing_template_saved", owner_id=str(owner_id), type=kind.value, count=len(timings))
        return template

    async def create_special(self, owner_id: Any, request: SpecialTimingRequest) -> Dict[str, Any]:
        """
        Add the special timing of one day.

        Raises:
            ShowTimingError: 400 if the day already has one
        """
        try:
            return await self.timings.create_special(
                owner_id, request.special_date, request.timings, request.description
            )
        except DuplicateValueError:
            raise ShowTimingError(SPECIAL_EXISTS)

    async def update_special(self, owner_id: Any, timing_id: str, request: SpecialTimingUpdate) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"timings": request.timings}
        if request.description is not None:
            fields["description"] = request.description
        updated = await self.timings.update_special(owner_id, timing_id, fields)
        if updated is None:
            raise ShowTimingError(SPECIAL_NOT_FOUND, 404)
        return updated

    async def delete_special(self, owner_id: Any, timing_id: str) -> None:
        deleted = await self.timings.delete_special(owner_id, timing_id)
        if deleted is None:
            raise ShowTimingError(SPECIAL_NOT_FOUND, 404)
        logger.info("special_timing_deleted", timing_id=timing_id)
