"""
Screen router: seat map editing and show scheduling.

Screens are identified by free-form string ids chosen by the owner's
dashboard. Show management requires a theatre owner token.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from api.src.dependencies import get_current_owner, get_seat_layout_service, get_show_service
from api.src.errors import as_http_error
from api.src.models.common import success
from api.src.models.screen import ScreenLayoutPayload, ShowScheduleRequest
from api.src.repositories.base import serialize_document
from api.src.services.seat_layout_service import SeatLayoutService
from api.src.services.show_service import ShowError, ShowService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/screens", tags=["Screens"])


# ============================================================================
# SEAT LAYOUT
# ============================================================================


@router.post("/{screen_id}/layout", summary="Save a screen's seat layout")
async def save_layout(
    screen_id: str,
    body: ScreenLayoutPayload,
    layouts: SeatLayoutService = Depends(get_seat_layout_service),
) -> Dict[str, Any]:
    """Create or replace the seat layout; the seats array is replaced in full."""
    layout = await layouts.save_layout(screen_id, body, updated_by=body.updated_by)
    return success(serialize_document(layout))


@router.get("/{screen_id}/layout", summary="Get a screen's seat layout")
async def get_layout(
    screen_id: str,
    layouts: SeatLayoutService = Depends(get_seat_layout_service),
) -> Dict[str, Any]:
    """Returns ``data: null`` when the screen has no layout yet."""
    layout = await layouts.find_layout(screen_id)
    return success(serialize_document(layout))


# ============================================================================
# SHOWS
# ============================================================================


@router.get("/{screen_id}/shows", summary="List shows on a screen")
async def list_shows(
    screen_id: str,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    owner: Dict[str, Any] = Depends(get_current_owner),
    shows: ShowService = Depends(get_show_service),
) -> Dict[str, Any]:
    items = await shows.list_for_screen(screen_id, date)
    return success(serialize_document(items))


@router.post("/{screen_id}/shows", summary="Assign a movie to a screen")
async def schedule_show(
    screen_id: str,
    body: ShowScheduleRequest,
    owner: Dict[str, Any] = Depends(get_current_owner),
    shows: ShowService = Depends(get_show_service),
) -> Dict[str, Any]:
    """
    Create or update the show for (screen, date, movie).

    **Errors:**
    - 400: movieId is required / Movie not found / date outside the
      advance window / advance booking not enabled
    """
    try:
        show = await shows.schedule(owner["_id"], screen_id, body)
    except ShowError as e:
        raise as_http_error(e)
    return success(serialize_document(show))


@router.delete("/{screen_id}/shows/{show_id}", summary="Delete a show")
async def delete_show(
    screen_id: str,
    show_id: str,
    owner: Dict[str, Any] = Depends(get_current_owner),
    shows: ShowService = Depends(get_show_service),
) -> Dict[str, Any]:
    try:
        await shows.delete(show_id)
    except ShowError as e:
        raise as_http_error(e)
    return success(message="Show deleted")
