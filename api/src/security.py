"""
Security policy table.

Declarative security configuration for the API:
- Rate limit policies and the URL prefixes they guard
- CORS allow-lists
- Content-Security-Policy directives and the static hardening headers
- Password and file upload rules with their validators
- Input sanitization

Everything here is immutable and built at import time. The only runtime
input is ``Settings``, which may override the general rate limit window and
quota and add one CORS origin.
"""

import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from api.src.config import Settings


# =============================================================================
# Rate Limiting
# =============================================================================


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named quota applied per client address."""

    name: str
    window_seconds: int
    max_requests: int
    message: str
    standard_headers: bool = False
    legacy_headers: bool = False

    @property
    def limit_value(self) -> str:
        """Limit in the string notation understood by slowapi/limits."""
        return f"{self.max_requests} per {self.window_seconds} second"


GENERAL_POLICY = RateLimitPolicy(
    name="general",
    window_seconds=15 * 60,
    max_requests=1000,
    message="Too many requests from this IP, please try again later.",
    standard_headers=True,
)

STRICT_POLICY = RateLimitPolicy(
    name="strict",
    window_seconds=15 * 60,
    max_requests=50,
    message="Too many booking requests from this IP, please try again later.",
)

SEAT_LAYOUT_POLICY = RateLimitPolicy(
    name="seat-layout",
    window_seconds=60,
    max_requests=30,
    message="Too many seat layout requests from this IP, please try again later.",
)

AUTH_POLICY = RateLimitPolicy(
    name="auth",
    window_seconds=15 * 60,
    max_requests=10,
    message="Too many authentication attempts, please try again later.",
)

MODERATE_POLICY = RateLimitPolicy(
    name="moderate",
    window_seconds=15 * 60,
    max_requests=200,
    message="Too many requests from this IP, please try again later.",
)

RATE_LIMIT_POLICIES: Dict[str, RateLimitPolicy] = {
    policy.name: policy
    for policy in (GENERAL_POLICY, STRICT_POLICY, SEAT_LAYOUT_POLICY, AUTH_POLICY, MODERATE_POLICY)
}

# (path prefix, policy name); "{api}" expands to the versioned API prefix
RATE_LIMIT_ROUTES: Tuple[Tuple[str, str], ...] = (
    ("/api/", "general"),
    ("{api}/bookings", "strict"),
    ("{api}/seat-layout", "seat-layout"),
    ("{api}/theatre-owner/login", "auth"),
    ("{api}/theatre-owner/register", "auth"),
    ("{api}/movies", "moderate"),
)

RATE_LIMIT_EXEMPT_PATHS: Tuple[str, ...] = ("/health", "/ready", "/metrics")


def build_rate_limit_policies(settings: Settings) -> Dict[str, RateLimitPolicy]:
    """
    Resolve the policy table for one process.

    Only the general policy is tunable from the environment.

    Args:
        settings: Application settings

    Returns:
        Mapping of policy name to policy
    """
    policies = dict(RATE_LIMIT_POLICIES)
    general = policies["general"]
    if settings.rate_limit_window_ms is not None:
        general = dataclasses.replace(
            general, window_seconds=max(1, settings.rate_limit_window_ms // 1000)
        )
    if settings.rate_limit_max_requests is not None:
        general = dataclasses.replace(general, max_requests=settings.rate_limit_max_requests)
    policies["general"] = general
    return policies


def _matches_prefix(path: str, prefix: str) -> bool:
    base = prefix.rstrip("/")
    return path == base or path.startswith(base + "/")


def select_policies(
    path: str,
    api_prefix: str,
    policies: Dict[str, RateLimitPolicy],
) -> List[RateLimitPolicy]:
    """
    Return every policy that guards a request path, outermost first.

    Args:
        path: Request path
        api_prefix: Versioned API prefix, e.g. /api/v1
        policies: Policy table from build_rate_limit_policies

    Returns:
        Policies that must all admit the request (empty for exempt paths)
    """
    if path.rstrip("/") in RATE_LIMIT_EXEMPT_PATHS:
        return []

    selected: List[RateLimitPolicy] = []
    for template, name in RATE_LIMIT_ROUTES:
        prefix = template.format(api=api_prefix)
        policy = policies.get(name)
        if policy is not None and _matches_prefix(path, prefix) and policy not in selected:
            selected.append(policy)
    return selected


# =============================================================================
# CORS
# =============================================================================

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:5175",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:5174",
    "http://127.0.0.1:5175",
    "https://booknview.vercel.app",
    "https://frontend-booknview.vercel.app",
)

CORS_ALLOWED_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")

CORS_ALLOWED_HEADERS: Tuple[str, ...] = (
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Cache-Control",
    "Pragma",
    "Expires",
)


def build_cors_origins(extra_origin: Optional[str] = None) -> List[str]:
    """Built-in origins plus the optional configured one."""
    origins = list(DEFAULT_CORS_ORIGINS)
    if extra_origin and extra_origin not in origins:
        origins.append(extra_origin)
    return origins


# =============================================================================
# Security Headers
# =============================================================================

CONTENT_SECURITY_POLICY_DIRECTIVES: Dict[str, Tuple[str, ...]] = {
    "defaultSrc": ("'self'",),
    "styleSrc": ("'self'", "'unsafe-inline'", "https://fonts.googleapis.com"),
    "fontSrc": ("'self'", "https://fonts.gstatic.com"),
    "imgSrc": ("'self'", "data:", "https:", "blob:"),
    "scriptSrc": ("'self'",),
    "connectSrc": ("'self'", "https://api.razorpay.com", "https://api.cloudinary.com"),
    "frameSrc": ("'self'", "https://js.razorpay.com"),
    "objectSrc": ("'none'",),
    "upgradeInsecureRequests": (),
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def build_content_security_policy(
    directives: Dict[str, Sequence[str]] = CONTENT_SECURITY_POLICY_DIRECTIVES,
) -> str:
    """
    Render CSP directives into a header value.

    Keys are camelCase directive names; an empty source list renders the bare
    directive (e.g. ``upgrade-insecure-requests``).
    """
    parts = []
    for name, sources in directives.items():
        directive = _CAMEL_BOUNDARY.sub("-", name).lower()
        parts.append(" ".join([directive, *sources]) if sources else directive)
    return "; ".join(parts)


def build_security_headers(settings: Settings) -> Dict[str, str]:
    """
    Headers added to every response.

    Cross-Origin-Embedder-Policy is never sent; HSTS only in production.
    """
    headers = {
        "Content-Security-Policy": build_content_security_policy(),
        "Cross-Origin-Opener-Policy": "same-origin-allow-popups",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Origin-Agent-Cluster": "?1",
        "Referrer-Policy": "no-referrer",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Download-Options": "noopen",
        "X-Frame-Options": "SAMEORIGIN",
        "X-Permitted-Cross-Domain-Policies": "none",
        "X-XSS-Protection": "0",
    }
    if settings.is_production:
        headers["Strict-Transport-Security"] = (
            f"max-age={settings.security_hsts_max_age}; includeSubDomains"
        )
    return headers


# =============================================================================
# Validators
# =============================================================================


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validator; message is set only when invalid."""

    valid: bool
    message: Optional[str] = None


@dataclass(frozen=True)
class PasswordRequirements:
    min_length: int = 6
    max_length: int = 128
    require_numbers: bool = True
    require_uppercase: bool = False
    require_lowercase: bool = False
    require_special_chars: bool = False


@dataclass(frozen=True)
class FileUploadRules:
    max_file_size: int = 10 * 1024 * 1024
    allowed_types: Tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png", "application/pdf")
    max_files: int = 10

    @property
    def max_file_size_mb(self) -> int:
        return self.max_file_size // (1024 * 1024)


PASSWORD_REQUIREMENTS = PasswordRequirements()
FILE_UPLOAD_RULES = FileUploadRules()

_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
_ASCII_DIGIT = re.compile(r"[0-9]")


def validate_password(
    password: str,
    requirements: PasswordRequirements = PASSWORD_REQUIREMENTS,
) -> ValidationResult:
    """
    Check a password against the configured strength rules.

    The maximum length is a stated bound for clients; it is not checked here.

    Args:
        password: Candidate password
        requirements: Rule set (defaults to the service-wide rules)

    Returns:
        ValidationResult with the first failing rule's message
    """
    if len(password) < requirements.min_length:
        return ValidationResult(
            False, f"Password must be at least {requirements.min_length} characters long"
        )
    if requirements.require_numbers and not _ASCII_DIGIT.search(password):
        return ValidationResult(False, "Password must contain at least one number")
    if requirements.require_uppercase and not any(ch.isupper() for ch in password):
        return ValidationResult(False, "Password must contain at least one uppercase letter")
    if requirements.require_lowercase and not any(ch.islower() for ch in password):
        return ValidationResult(False, "Password must contain at least one lowercase letter")
    if requirements.require_special_chars and not _SPECIAL_CHARS.search(password):
        return ValidationResult(False, "Password must contain at least one special character")
    return ValidationResult(True)


def validate_file_upload(file: Any, rules: FileUploadRules = FILE_UPLOAD_RULES) -> ValidationResult:
    """
    Check an uploaded file's size and declared media type.

    Args:
        file: Object with ``size`` (bytes) and ``content_type`` attributes,
            such as a Starlette ``UploadFile``
        rules: Upload rules (defaults to the service-wide rules)

    Returns:
        ValidationResult; size is checked before type
    """
    size = getattr(file, "size", None) or 0
    if size > rules.max_file_size:
        return ValidationResult(False, f"File size must be less than {rules.max_file_size_mb}MB")

    content_type = getattr(file, "content_type", None)
    if content_type not in rules.allowed_types:
        return ValidationResult(False, f"File type {content_type} is not allowed")
    return ValidationResult(True)


# =============================================================================
# Sanitization
# =============================================================================


def sanitize_input(value: Any) -> Any:
    """
    Strip angle brackets and surrounding whitespace from text.

    Non-string values pass through unchanged. This is a denylist filter for
    stored display text, not an injection defence.
    """
    if isinstance(value, str):
        return value.replace("<", "").replace(">", "").strip()
    return value


def sanitize_payload(payload: Any) -> Any:
    """Apply sanitize_input to every string inside nested dicts and lists."""
    if isinstance(payload, dict):
        return {key: sanitize_payload(item) for key, item in payload.items()}
    if isinstance(payload, list):
        return [sanitize_payload(item) for item in payload]
    return sanitize_input(payload)
