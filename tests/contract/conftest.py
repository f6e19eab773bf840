"""Contract tests reuse the in-memory application fixtures."""

from tests.integration.conftest import app, client, db, movie, owner_headers, screen  # noqa: F401
