"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Server and environment (port, API version, environment name)
- Database connections (MongoDB)
- Authentication (JWT for theatre owners, Firebase for customers)
- Third-party integrations (Razorpay, Cloudinary, TMDB, SMTP)
- Security settings (rate limiting, CORS, headers)
- Show scheduling and maintenance jobs
- Logging and monitoring

Environment variable names match the names the service has always been
deployed with (no prefix). Several settings accept more than one name; the
first name that is set wins. The settings object is immutable once built:
the entrypoint builds it once and hands it to ``create_app``.
"""

from functools import lru_cache
from typing import Any, Dict, FrozenSet, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "change-this-secret-key-in-production-minimum-32-chars"

ADVANCE_WINDOW_CEILING_DAYS = 14


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # Server Settings
    # =========================================================================

    app_name: str = Field(
        default="BookNView API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_version: str = Field(
        default="v1",
        description="API version segment used in the URL prefix"
    )
    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
        description="Environment: development|test|staging|production"
    )
    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=5000,
        description="API bind port",
        gt=0,
        lt=65536
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Public URL of the web frontend (used in emails)"
    )

    # =========================================================================
    # Database Settings (MongoDB)
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/booknview",
        validation_alias=AliasChoices("MONGODB_URI", "MONGO_URI"),
        description="MongoDB connection string"
    )
    mongodb_test_uri: Optional[str] = Field(
        default=None,
        description="MongoDB connection string used by the integration suite"
    )
    mongodb_database: str = Field(
        default="booknview",
        description="Database name"
    )
    mongodb_timeout_ms: int = Field(
        default=5000,
        description="Server selection timeout (milliseconds)",
        gt=0
    )

    # =========================================================================
    # JWT Authentication Settings (theatre owners)
    # =========================================================================

    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret key for JWT token signing (MUST be changed in production)",
        min_length=32
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    jwt_expire_minutes: int = Field(
        default=7 * 24 * 60,
        validation_alias=AliasChoices("JWT_EXPIRE_MINUTES", "JWT_EXPIRE"),
        description="Theatre owner token lifetime in minutes",
        gt=0
    )
    password_bcrypt_rounds: int = Field(
        default=12,
        description="BCrypt hash rounds",
        ge=4,
        le=14
    )

    # =========================================================================
    # Firebase (customer identity provider)
    # =========================================================================

    firebase_project_id: Optional[str] = Field(default=None, description="Firebase project id")
    firebase_private_key_id: Optional[str] = Field(default=None)
    firebase_private_key: Optional[str] = Field(
        default=None,
        description="Service account private key; literal \\n sequences are converted"
    )
    firebase_client_email: Optional[str] = Field(default=None)
    firebase_client_id: Optional[str] = Field(default=None)
    firebase_auth_uri: str = Field(default="https://accounts.google.com/o/oauth2/auth")
    firebase_token_uri: str = Field(default="https://oauth2.googleapis.com/token")

    # =========================================================================
    # Outbound Email
    # =========================================================================

    email_host: str = Field(default="smtp.gmail.com", description="SMTP host")
    email_port: int = Field(default=587, description="SMTP port (STARTTLS)", gt=0, lt=65536)
    email_user: Optional[str] = Field(default=None, description="SMTP username")
    email_pass: Optional[str] = Field(default=None, description="SMTP password")
    email_from: Optional[str] = Field(default=None, description="From address (defaults to EMAIL_USER)")

    # =========================================================================
    # CORS and Uploads
    # =========================================================================

    cors_origin: Optional[str] = Field(
        default=None,
        description="Extra allowed CORS origin appended to the built-in list"
    )
    max_file_size: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum upload size in bytes",
        gt=0
    )
    upload_path: str = Field(
        default="uploads",
        description="Default storage folder for uploaded media"
    )

    # =========================================================================
    # Payment Gateway (Razorpay)
    # =========================================================================

    razorpay_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RAZORPAY_KEY_ID", "RZP_KEY_ID", "RAZORPAY_ID"),
        description="Razorpay key id"
    )
    razorpay_key_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RAZORPAY_KEY_SECRET", "RZP_KEY_SECRET", "RAZORPAY_SECRET"),
        description="Razorpay key secret"
    )
    razorpay_base_url: str = Field(
        default="https://api.razorpay.com/v1",
        description="Razorpay REST API base URL"
    )

    # =========================================================================
    # Media Storage (Cloudinary)
    # =========================================================================

    cloudinary_url: Optional[str] = Field(
        default=None,
        description="cloudinary://<api_key>:<api_secret>@<cloud_name>"
    )
    cloudinary_cloud_name: Optional[str] = Field(default=None)
    cloudinary_api_key: Optional[str] = Field(default=None)
    cloudinary_api_secret: Optional[str] = Field(default=None)

    # =========================================================================
    # Movie Metadata (TMDB)
    # =========================================================================

    tmdb_api_key: Optional[str] = Field(
        default=None,
        description="TMDB API key; metadata lookups are disabled without it"
    )
    tmdb_base_url: str = Field(
        default="https://api.themoviedb.org/3",
        description="TMDB API base URL"
    )
    tmdb_timeout_seconds: float = Field(default=30.0, gt=0)

    # =========================================================================
    # Show Scheduling
    # =========================================================================

    max_advance_days: int = Field(
        default=3,
        description="Default advance booking window in days",
        ge=0
    )
    cleanup_enabled: bool = Field(
        default=True,
        description="Run the daily past-show cleanup job"
    )
    cleanup_hour: int = Field(
        default=2,
        description="Local hour at which the cleanup job runs",
        ge=0,
        le=23
    )

    # =========================================================================
    # Rate Limiting Settings
    # =========================================================================

    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting"
    )
    rate_limit_storage_uri: str = Field(
        default="memory://",
        description="limits storage URI (memory://, redis://host:port)"
    )
    rate_limit_window_ms: Optional[int] = Field(
        default=None,
        description="Override of the general policy window (milliseconds)",
        gt=0
    )
    rate_limit_max_requests: Optional[int] = Field(
        default=None,
        description="Override of the general policy quota",
        gt=0
    )

    # =========================================================================
    # Security Headers
    # =========================================================================

    security_headers_enabled: bool = Field(
        default=True,
        description="Enable security headers (CSP, X-Frame-Options, etc.)"
    )
    security_hsts_max_age: int = Field(
        default=15552000,
        description="HSTS max age (seconds)"
    )
    trusted_proxies: bool = Field(
        default=False,
        description="Trust X-Forwarded-For when identifying the client address"
    )
    trusted_proxy_addresses: str = Field(
        default="127.0.0.1,::1",
        description="Comma-separated proxy addresses whose X-Forwarded-For header is honoured"
    )

    # =========================================================================
    # Monitoring and Observability
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Expose Prometheus metrics on /metrics"
    )
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing"
    )
    otlp_endpoint: str = Field(
        default="http://localhost:4318/v1/traces",
        description="OTLP/HTTP traces endpoint"
    )
    tracing_sample_rate: float = Field(
        default=0.1,
        description="Trace sampling rate (0.0-1.0)",
        ge=0.0,
        le=1.0
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "test", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Validate JWT algorithm is a supported HMAC algorithm."""
        allowed = ["HS256", "HS384", "HS512"]
        if v not in allowed:
            raise ValueError(f"jwt_algorithm must be one of {allowed}, got: {v}")
        return v

    @field_validator("firebase_private_key")
    @classmethod
    def unescape_private_key(cls, v: Optional[str]) -> Optional[str]:
        """Convert escaped newlines coming from single-line env files."""
        if v is None:
            return v
        return v.replace("\\n", "\n")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def api_prefix(self) -> str:
        """URL prefix of every versioned route, e.g. /api/v1."""
        return f"/api/{self.api_version}"

    @property
    def uses_default_jwt_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    @property
    def advance_window_default(self) -> int:
        """Configured advance window, clamped to the hard ceiling."""
        return min(self.max_advance_days, ADVANCE_WINDOW_CEILING_DAYS)

    @property
    def forwarding_proxies(self) -> FrozenSet[str]:
        """Peers allowed to name the client in X-Forwarded-For (empty when disabled)."""
        if not self.trusted_proxies:
            return frozenset()
        return frozenset(
            address.strip() for address in self.trusted_proxy_addresses.split(",") if address.strip()
        )

    @property
    def payments_configured(self) -> bool:
        return bool(self.razorpay_key_id and self.razorpay_key_secret)

    @property
    def email_configured(self) -> bool:
        """SMTP credentials are present and not template placeholders."""
        if not self.email_user or not self.email_pass:
            return False
        return "your_" not in self.email_user and "your_" not in self.email_pass

    @property
    def firebase_service_account(self) -> Optional[Dict[str, Any]]:
        """
        Service account info for the identity provider.

        Returns:
            Service account mapping, or None when any required field is missing
        """
        required = {
            "project_id": self.firebase_project_id,
            "private_key_id": self.firebase_private_key_id,
            "private_key": self.firebase_private_key,
            "client_email": self.firebase_client_email,
            "client_id": self.firebase_client_id,
        }
        if not all(required.values()):
            return None
        return {
            "type": "service_account",
            **required,
            "auth_uri": self.firebase_auth_uri,
            "token_uri": self.firebase_token_uri,
        }

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,   # empty aliases do not shadow later ones
        populate_by_name=True,
        validate_default=True,
        frozen=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Only the process entrypoint calls this; everything else receives the
    settings object explicitly.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear settings cache (useful for testing)."""
    get_settings.cache_clear()
