# gateway/transport/security.py
"""
Security utilities for the worker-facing API.

Security features:
- Constant-time worker token comparison (timing attack prevention)
- Token entropy validation (weak token detection at startup)
- Header sanitization before logging
- Security headers on every response
"""
import hmac

from fastapi import Depends, Request

from gateway.config import Settings, get_settings, settings as startup_settings
from gateway.core.errors import AuthRejectedError
from gateway.infra.logging_config import get_logger
from gateway.infra.metrics import GatewayMetrics

logger = get_logger(__name__)

WORKER_TOKEN_HEADER = "x-frigg-worker-token"

# Minimum token length for security (32 bytes = 256 bits)
MIN_TOKEN_LENGTH = 32
WEAK_TOKEN_PATTERNS = [
    "password", "secret", "token", "admin", "test", "demo", "frigg",
    "123456", "000000", "111111", "aaaaaa",
]


def validate_token_strength(token: str, token_name: str = "token") -> list[str]:
    """
    Validate that a token meets minimum security requirements.
    Returns list of warnings (empty if token is strong).
    """
    warnings = []

    if len(token) < MIN_TOKEN_LENGTH:
        warnings.append(
            f"{token_name} is too short ({len(token)} chars). "
            f"Minimum recommended: {MIN_TOKEN_LENGTH} chars"
        )

    token_lower = token.lower()
    for pattern in WEAK_TOKEN_PATTERNS:
        if pattern in token_lower:
            warnings.append(
                f"{token_name} contains weak pattern '{pattern}'. "
                "Use a cryptographically random token"
            )
            break

    has_upper = any(c.isupper() for c in token)
    has_lower = any(c.islower() for c in token)
    has_digit = any(c.isdigit() for c in token)

    if not (has_upper and has_lower and has_digit):
        warnings.append(
            f"{token_name} has low character diversity. "
            "Recommended: mix of uppercase, lowercase, and numbers"
        )

    return warnings


def check_configured_tokens() -> None:
    """Log warnings for a missing or weak worker token. Called at startup."""
    if not startup_settings.frigg_worker_token:
        logger.warning("SECURITY: FRIGG_WORKER_TOKEN is not set, all fetch requests will get 403")
        return

    for warning in validate_token_strength(startup_settings.frigg_worker_token, "FRIGG_WORKER_TOKEN"):
        logger.warning(f"SECURITY: {warning}")


def verify_worker_token(presented: str | None, expected: str | None) -> bool:
    """True only if both tokens are non-empty and equal."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())


async def require_worker_token(
    request: Request,
    current: Settings = Depends(get_settings),
) -> None:
    """
    FastAPI dependency guarding worker endpoints.

    Runs before any version or queue logic. The token is read from the
    current settings on every call so a rotated token applies immediately.
    """
    presented = request.headers.get(WORKER_TOKEN_HEADER)
    if not verify_worker_token(presented, current.frigg_worker_token):
        GatewayMetrics.auth_rejected()
        logger.warning("Worker token rejected")
        raise AuthRejectedError("missing or invalid worker token")


# Headers that should NEVER be logged (contain secrets)
SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "set-cookie",
    WORKER_TOKEN_HEADER,
}


def sanitize_headers_for_logging(headers: dict) -> dict:
    """Redact secret-bearing headers, keeping the fact that they were sent."""
    sanitized = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            sanitized[key] = "***REDACTED***"
        else:
            sanitized[key] = value
    return sanitized


class SecurityHeaders:
    """OWASP recommended headers for API responses."""

    @staticmethod
    def add_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # Job payloads must never be cached by intermediaries
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        if startup_settings.is_production or startup_settings.is_staging:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        if "Server" in response.headers:
            del response.headers["Server"]

        return response
