"""
Show scheduling.

Owners assign a movie to a screen for one calendar day with a list of
showtimes. The day must fall inside the advance booking window (default 3
days, never more than 14) and, for unreleased movies, advance booking must
be enabled on the movie.

A daily cleanup job marks shows from past days inactive.
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog

from api.src.config import ADVANCE_WINDOW_CEILING_DAYS
from api.src.errors import ServiceError
from api.src.models.screen import ShowScheduleRequest
from api.src.repositories.base import is_object_id, to_object_id, utcnow
from api.src.repositories.movie_repo import MovieRepository
from api.src.repositories.show_repo import ShowRepository
from shared.metrics import BookingMetrics

logger = structlog.get_logger(__name__)

# Movie fields attached to each show in responses
SHOW_MOVIE_FIELDS = ("title", "posterUrl", "duration", "releaseDate", "advanceBookingEnabled", "firstShowDate")


class ShowError(ServiceError):
    """A scheduling rule rejected the request."""


def resolve_advance_window(requested: Optional[int], default: int) -> int:
    """Requested window (or the default), capped at 14 days."""
    window = default if requested is None else requested
    return min(window, ADVANCE_WINDOW_CEILING_DAYS)


def parse_release_date(value: Any) -> Optional[date]:
    """Parse a movie's free-text release date; unparseable values count as unset."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def validate_show_date(
    booking_date: date,
    today: date,
    movie: Dict[str, Any],
    allowed: int,
) -> None:
    """
    Check that a show may be scheduled on ``booking_date``.

    Args:
        booking_date: Requested day
        today: Current day
        movie: Movie document (releaseDate, advanceBookingEnabled)
        allowed: Advance window in days

    Raises:
        ShowError: When the date is outside the window or before release
            without advance booking
    """
    diff_days = (booking_date - today).days

    release = parse_release_date(movie.get("releaseDate"))
    if release is not None and booking_date < release:
        if not movie.get("advanceBookingEnabled"):
            raise ShowError(
                f"Advance booking is not enabled for this movie. Release date: {movie.get('releaseDate')}"
            )

    if diff_days < 0 or diff_days > allowed:
        raise ShowError(f"bookingDate out of allowed range (0..{allowed} days)")


def movie_summary(movie: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if movie is None:
        return None
    summary = {"_id": movie["_id"]}
    summary.update({field: movie.get(field) for field in SHOW_MOVIE_FIELDS})
    return summary


class ShowService:
    """Schedules, lists and deletes screen shows."""

    def __init__(
        self,
        shows: ShowRepository,
        movies: MovieRepository,
        default_window: int = 3,
        metrics: Optional[BookingMetrics] = None,
    ):
        self.shows = shows
        self.movies = movies
        self.default_window = default_window
        self.metrics = metrics

    async def _with_movies(self, shows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        movie_ids = list({str(show["movieId"]) for show in shows if show.get("movieId")})
        movies = await self.movies.find_many(movie_ids) if movie_ids else {}
        return [
            {**show, "movieId": movie_summary(movies.get(str(show.get("movieId")))) or show.get("movieId")}
            for show in shows
        ]

    async def schedule(
        self,
        owner_id: Any,
        screen_id: str,
        request: ShowScheduleRequest,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Create or update the show for (screen, day, movie).

        Args:
            owner_id: Scheduling owner
            screen_id: Screen id
            request: Movie, day, showtimes and requested window
            today: Current day (defaults to today in UTC)

        Returns:
            Stored show with its movie summary attached

        Raises:
            ShowError: On a missing or unknown movie or a rejected date
        """
        today = today or utcnow().date()
        if not request.movie_id:
            raise ShowError("movieId is required")

        movie = await self.movies.find_by_id(request.movie_id) if is_object_id(request.movie_id) else None
        if movie is None:
            raise ShowError("Movie not found")

        try:
            booking_date = date.fromisoformat(request.booking_date[:10]) if request.booking_date else today
        except ValueError:
            raise ShowError("bookingDate must be YYYY-MM-DD")

        allowed = resolve_advance_window(request.max_days, self.default_window)
        validate_show_date(booking_date, today, movie, allowed)

        day = booking_date.isoformat()
        if not movie.get("firstShowDate"):
            await self.movies.set_first_show_date(movie["_id"], day)

        show = await self.shows.upsert(
            screen_id,
            day,
            movie["_id"],
            {
                "theatreOwnerId": to_object_id(owner_id),
                "theatreId": to_object_id(request.theatre_id) if is_object_id(request.theatre_id) else None,
                "showtimes": list(request.showtimes),
                "status": request.status.value,
            },
        )
        logger.info("show_scheduled", screen_id=screen_id, movie_id=str(movie["_id"]), booking_date=day)
        return (await self._with_movies([show]))[0]

    async def list_for_screen(self, screen_id: str, booking_date: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._with_movies(await self.shows.list_for_screen(screen_id, booking_date))

    async def list_for_movie(self, movie_id: str, booking_date: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.shows.list_active_for_movie(movie_id, booking_date)

    async def delete(self, show_id: str) -> None:
        """
        Raises:
            ShowError: 404 when the show does not exist
        """
        if not await self.shows.delete(show_id):
            raise ShowError("Show not found", status_code=404)
        logger.info("show_deleted", show_id=show_id)

    async def cleanup_past_shows(self, today: Optional[date] = None) -> int:
        """
        Deactivate every active show dated before today.

        Returns:
            Number of shows deactivated
        """
        today = today or utcnow().date()
        count = await self.shows.deactivate_before(today.isoformat())
        if self.metrics:
            self.metrics.shows_deactivated.inc(count)
        logger.info("past_shows_deactivated", count=count, before=today.isoformat())
        return count


def seconds_until_hour(now: datetime, hour: int) -> float:
    """Seconds from ``now`` until the next occurrence of ``hour``:00."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class CleanupScheduler:
    """Runs ``ShowService.cleanup_past_shows`` once a day at a fixed hour."""

    def __init__(self, service: ShowService, hour: int = 2):
        self.service = service
        self.hour = hour
        self._task: Optional[asyncio.Task] = None

    async def _run(self) -> None:
        while True:
            delay = seconds_until_hour(datetime.now().astimezone(), self.hour)
            logger.debug("cleanup_scheduled", seconds=round(delay))
            await asyncio.sleep(delay)
            try:
                await self.service.cleanup_past_shows()
            except Exception as e:
                logger.error("cleanup_failed", error=str(e), exc_info=True)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="show-cleanup")
            logger.info("cleanup_scheduler_started", hour=self.hour)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("cleanup_scheduler_stopped")
