"""
Show timings router.

Weekday, weekend and special-day showtime templates of a theatre owner.
Every endpoint requires the owner's token; the ``owner_id`` path segment
must be the caller's own id.
"""

from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from api.src.dependencies import get_current_owner, get_show_timing_service
from api.src.errors import as_http_error
from api.src.models.common import success
from api.src.models.show_timing import SpecialTimingRequest, SpecialTimingUpdate, TimingsRequest, TimingType
from api.src.repositories.base import serialize_document
from api.src.services.show_timing_service import ShowTimingError, ShowTimingService

router = APIRouter(prefix="/show-timings", tags=["Show Timings"])


@router.get("/owner/{owner_id}", summary="List an owner's show timings")
async def list_timings(
    owner_id: str,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    """Active timings ordered by type, then special date."""
    try:
        timings.check_owner(owner, owner_id)
    except ShowTimingError as e:
        raise as_http_error(e)
    return success(serialize_document(await timings.list_timings(owner["_id"])))


@router.get("/owner/{owner_id}/available/{day}", summary="Showtimes available on a day")
async def available_timings(
    owner_id: str,
    day: date,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    try:
        timings.check_owner(owner, owner_id)
    except ShowTimingError as e:
        raise as_http_error(e)
    return success(serialize_document(await timings.available(owner["_id"], day)))


async def _save_template(
    owner: Dict[str, Any],
    owner_id: str,
    kind: TimingType,
    body: TimingsRequest,
    timings: ShowTimingService,
) -> Dict[str, Any]:
    try:
        timings.check_owner(owner, owner_id)
    except ShowTimingError as e:
        raise as_http_error(e)
    template = await timings.save_template(owner["_id"], kind, body.timings)
    return success(serialize_document(template))


@router.post("/owner/{owner_id}/weekday", summary="Save weekday timings")
async def save_weekday(
    owner_id: str,
    body: TimingsRequest,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    return await _save_template(owner, owner_id, TimingType.WEEKDAY, body, timings)


@router.post("/owner/{owner_id}/weekend", summary="Save weekend timings")
async def save_weekend(
    owner_id: str,
    body: TimingsRequest,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    return await _save_template(owner, owner_id, TimingType.WEEKEND, body, timings)


@router.post("/owner/{owner_id}/special", status_code=status.HTTP_201_CREATED, summary="Add a special timing")
async def create_special(
    owner_id: str,
    body: SpecialTimingRequest,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    """
    **Errors:**
    - 400: The day already has a special timing
    - 403: Not the caller's own timings
    """
    try:
        timings.check_owner(owner, owner_id)
        special = await timings.create_special(owner["_id"], body)
    except ShowTimingError as e:
        raise as_http_error(e)
    return success(serialize_document(special))


@router.put("/special/{timing_id}", summary="Update a special timing")
async def update_special(
    timing_id: str,
    body: SpecialTimingUpdate,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    try:
        special = await timings.update_special(owner["_id"], timing_id, body)
    except ShowTimingError as e:
        raise as_http_error(e)
    return success(serialize_document(special))


@router.delete("/special/{timing_id}", summary="Delete a special timing")
async def delete_special(
    timing_id: str,
    owner: Dict[str, Any] = Depends(get_current_owner),
    timings: ShowTimingService = Depends(get_show_timing_service),
) -> Dict[str, Any]:
    try:
        await timings.delete_special(owner["_id"], timing_id)
    except ShowTimingError as e:
        raise as_http_error(e)
    return success(message="Special timing deleted")
