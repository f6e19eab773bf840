"""
MongoDB connection management.

``Database`` owns the ``AsyncMongoClient`` for the process and exposes one
repository per collection. It is created in the application lifespan and
stored on ``app.state.db``.
"""

from typing import Optional

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from api.src.config import Settings
from api.src.repositories.booking_repo import BookingRepository
from api.src.repositories.layout_repo import ScreenLayoutRepository
from api.src.repositories.movie_repo import MovieRepository
from api.src.repositories.owner_repo import TheatreOwnerRepository
from api.src.repositories.show_repo import ShowRepository
from api.src.repositories.show_timing_repo import ShowTimingRepository

logger = structlog.get_logger(__name__)


class Database:
    """Repositories bound to one database."""

    def __init__(self, database: AsyncDatabase, client: Optional[AsyncMongoClient] = None):
        """
        Initialize repositories.

        Args:
            database: pymongo async database handle
            client: Owning client, closed by ``close()`` when given
        """
        self.client = client
        self.database = database
        self.owners = TheatreOwnerRepository(database[TheatreOwnerRepository.collection_name])
        self.movies = MovieRepository(database[MovieRepository.collection_name])
        self.layouts = ScreenLayoutRepository(database[ScreenLayoutRepository.collection_name])
        self.shows = ShowRepository(database[ShowRepository.collection_name])
        self.timings = ShowTimingRepository(database[ShowTimingRepository.collection_name])
        self.bookings = BookingRepository(database[BookingRepository.collection_name])

    @classmethod
    def connect(cls, settings: Settings, uri: Optional[str] = None) -> "Database":
        """
        Create a client from settings.

        The client connects lazily; call ``ping()`` to verify reachability.

        Args:
            settings: Application settings
            uri: Override of ``settings.mongodb_uri`` (used by the test suite)

        Returns:
            Database
        """
        client: AsyncMongoClient = AsyncMongoClient(
            uri or settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            tz_aware=True,
            appname=settings.app_name,
        )
        logger.info("mongodb_client_created", database=settings.mongodb_database)
        return cls(client[settings.mongodb_database], client)

    async def ensure_indexes(self) -> None:
        for repository in (self.owners, self.movies, self.layouts, self.shows, self.timings, self.bookings):
            await repository.ensure_indexes()
        logger.info("mongodb_indexes_ensured")

    async def ping(self) -> bool:
        """Return True when the server answers a ping."""
        try:
            await self.database.command("ping")
            return True
        except Exception as e:
            logger.warning("mongodb_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            logger.info("mongodb_client_closed")
