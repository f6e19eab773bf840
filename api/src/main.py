"""
FastAPI application entry point for the BookNView API.

This module provides the application factory with:
- Health, readiness and metrics endpoints
- Theatre owner, movie, screen, show timing, seat layout, booking, payment,
  upload and metadata routers under the versioned API prefix
- Structured request logging with correlation ids
- Prometheus metrics
- OpenTelemetry distributed tracing (opt-in)
- CORS, security headers and policy-driven rate limiting
- MongoDB connection management and the nightly show cleanup
- Graceful startup and shutdown
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from api.src.config import Settings, get_settings
from api.src.database import Database
from api.src.errors import register_exception_handlers
from api.src.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    build_limiter,
)
from api.src.repositories.base import utcnow
from api.src.routers import (
    bookings,
    metadata,
    movies,
    payments,
    screens,
    seat_layout,
    show_timings,
    theatre_owner,
    upload,
)
from api.src.security import (
    CORS_ALLOWED_HEADERS,
    CORS_ALLOWED_METHODS,
    build_cors_origins,
    build_rate_limit_policies,
    build_security_headers,
)
from api.src.services.auth_service import AuthService
from api.src.services.booking_service import BookingService
from api.src.services.email_service import EmailService
from api.src.services.firebase_service import FirebaseVerifier
from api.src.services.metadata_service import MetadataService
from api.src.services.movie_service import MovieService
from api.src.services.payment_service import PaymentService
from api.src.services.seat_layout_service import SeatLayoutService
from api.src.services.show_service import CleanupScheduler, ShowService
from api.src.services.show_timing_service import ShowTimingService
from api.src.services.upload_service import UploadService
from shared.logging import configure_logging
from shared.metrics import APIMetrics, get_metrics_handler, setup_metrics
from shared.tracing import configure_tracing, instrument_app

logger = structlog.get_logger(__name__)


# ============================================================================
# Application State
# ============================================================================

class AppState:
    """Service container shared by every request of one application."""

    def __init__(self, settings: Settings, metrics: Optional[APIMetrics] = None):
        self.settings = settings
        self.metrics = metrics
        self.ready = False
        self.auth: Optional[AuthService] = None
        self.bookings: Optional[BookingService] = None
        self.movies: Optional[MovieService] = None
        self.shows: Optional[ShowService] = None
        self.timings: Optional[ShowTimingService] = None
        self.seat_layouts: Optional[SeatLayoutService] = None
        self.payments: Optional[PaymentService] = None
        self.uploads: Optional[UploadService] = None
        self.metadata: Optional[MetadataService] = None
        self.firebase: Optional[FirebaseVerifier] = None
        self.scheduler: Optional[CleanupScheduler] = None

    def bind(self, db: Database) -> None:
        """Build every service on top of the repository bundle."""
        settings = self.settings
        booking_metrics = self.metrics.bookings if self.metrics else None

        self.auth = AuthService(db.owners, settings)
        self.bookings = BookingService(
            db.bookings,
            db.layouts,
            db.shows,
            movies=db.movies,
            email=EmailService(settings),
            metrics=booking_metrics,
        )
        self.movies = MovieService(db.movies, db.shows)
        self.shows = ShowService(
            db.shows,
            db.movies,
            default_window=settings.advance_window_default,
            metrics=booking_metrics,
        )
        self.timings = ShowTimingService(db.timings)
        self.seat_layouts = SeatLayoutService(db.layouts, db.bookings)
        self.payments = PaymentService(settings, metrics=booking_metrics)
        self.uploads = UploadService(settings)
        self.metadata = MetadataService(settings)
        self.firebase = FirebaseVerifier(settings)
        self.ready = True
        logger.info("services_initialized")

    async def close(self) -> None:
        self.ready = False
        if self.scheduler is not None:
            await self.scheduler.stop()
            self.scheduler = None
        if self.metadata is not None:
            await self.metadata.close()


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - MongoDB client creation and index setup (skipped when a database was
      injected into ``create_app``)
    - Service initialization
    - The nightly show cleanup task
    - Graceful shutdown and resource cleanup
    """
    settings: Settings = app.state.settings
    state: AppState = app.state.services
    owns_database = app.state.db is None

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        if owns_database:
            db = Database.connect(settings)
            if await db.ping():
                await db.ensure_indexes()
            else:
                logger.error("mongodb_unreachable_at_startup")
            app.state.db = db
            state.bind(db)

        if settings.cleanup_enabled and state.shows is not None:
            state.scheduler = CleanupScheduler(state.shows, hour=settings.cleanup_hour)
            state.scheduler.start()

        logger.info("application_started", environment=settings.environment)
        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    finally:
        logger.info("application_shutting_down")
        await state.close()
        if owns_database and app.state.db is not None:
            await app.state.db.close()
            app.state.db = None
        logger.info("application_shutdown_complete")


# ============================================================================
# FastAPI Application
# ============================================================================

def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build a configured application.

    Args:
        settings: Settings to use (defaults to the process-wide settings)
        database: Repository bundle to serve from; when given, services are
            bound immediately and the lifespan does not connect to MongoDB

    Returns:
        FastAPI application
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment,
    )

    if settings.is_production and settings.uses_default_jwt_secret:
        logger.warning("default_jwt_secret_in_production")

    registry = CollectorRegistry()
    metrics = setup_metrics(registry) if settings.metrics_enabled else None

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Movie ticket booking API: movies, screens, shows, bookings and payments.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = database
    app.state.services = AppState(settings, metrics)
    if database is not None:
        app.state.services.bind(database)

    # ========================================================================
    # Middleware (last added runs first)
    # ========================================================================

    app.add_middleware(
        RateLimitMiddleware,
        limiter=build_limiter(settings.rate_limit_storage_uri, enabled=settings.rate_limit_enabled),
        policies=build_rate_limit_policies(settings),
        api_prefix=settings.api_prefix,
        trusted_proxies=settings.forwarding_proxies,
        metrics=metrics,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_cors_origins(settings.cors_origin),
        allow_credentials=True,
        allow_methods=list(CORS_ALLOWED_METHODS),
        allow_headers=list(CORS_ALLOWED_HEADERS),
    )
    if settings.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware, headers=build_security_headers(settings))
    app.add_middleware(RequestLoggingMiddleware, metrics=metrics)

    if settings.tracing_enabled:
        provider = configure_tracing(
            settings.app_name,
            endpoint=settings.otlp_endpoint,
            sampling_rate=settings.tracing_sample_rate,
            environment=settings.environment,
            service_version=settings.app_version,
        )
        instrument_app(app, provider)
        logger.info("tracing_initialized", endpoint=settings.otlp_endpoint)

    register_exception_handlers(app, settings)

    # ========================================================================
    # Health, Readiness and Metrics
    # ========================================================================

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns basic health status without checking dependencies.
        """
        return {
            "status": "OK",
            "environment": settings.environment,
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request) -> JSONResponse:
        """Readiness check: the database answers a ping."""
        db = request.app.state.db
        database_ok = db is not None and await db.ping()
        all_healthy = database_ok and request.app.state.services.ready
        return JSONResponse(
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if all_healthy else "not_ready",
                "checks": {"database": "healthy" if database_ok else "unhealthy"},
            },
        )

    if metrics is not None:
        render_metrics = get_metrics_handler(registry)

        @app.get("/metrics", tags=["Monitoring"])
        async def metrics_endpoint() -> Response:
            """Prometheus metrics endpoint."""
            return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)

    # ========================================================================
    # API Router Registration
    # ========================================================================

    for module in (theatre_owner, movies, screens, show_timings, seat_layout, bookings, payments, upload, metadata):
        app.include_router(module.router, prefix=settings.api_prefix)

    return app


def run() -> None:
    """
    Run the application with Uvicorn.

    Console entry point ``booknview-api``.
    """
    settings = get_settings()
    logger.info("starting_uvicorn_server", host=settings.host, port=settings.port)
    uvicorn.run(
        "api.src.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    run()
